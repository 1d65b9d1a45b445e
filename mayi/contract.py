from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, NamedTuple, Optional

from .meld import Meld


@dataclass(frozen=True)
class Contract:
    """The melds a player must lay down together the first time they go down in a round."""

    class Error(Exception):
        pass

    class InvalidRound(Error):
        pass

    round_number: int
    sets: int
    runs: int

    def __post_init__(self):
        if not isinstance(self.sets, int) or self.sets < 0:
            raise TypeError("Number of sets must be a non-negative integer.")
        if not isinstance(self.runs, int) or self.runs < 0:
            raise TypeError("Number of runs must be a non-negative integer.")

    @property
    def min_cards(self) -> int:
        return 3 * self.sets + 4 * self.runs

    @classmethod
    def from_dict(cls, d: dict) -> "Contract":
        return cls(d["roundNumber"], d["sets"], d["runs"])

    def to_dict(self) -> dict:
        return {"roundNumber": self.round_number, "sets": self.sets, "runs": self.runs}

    def __str__(self):
        return "%d sets / %d runs" % (self.sets, self.runs)


CONTRACTS = MappingProxyType({
    1: Contract(1, sets=2, runs=0),
    2: Contract(2, sets=1, runs=1),
    3: Contract(3, sets=0, runs=2),
    4: Contract(4, sets=3, runs=0),
    5: Contract(5, sets=2, runs=1),
    6: Contract(6, sets=1, runs=2),
})

FIRST_ROUND = min(CONTRACTS)
LAST_ROUND = max(CONTRACTS)


def contract_for_round(round_number: int) -> Contract:
    try:
        return CONTRACTS[round_number]
    except (KeyError, TypeError):
        raise Contract.InvalidRound(
            "Round must be between %d and %d, got %s" % (FIRST_ROUND, LAST_ROUND, round_number)
        )


class ContractResult(NamedTuple):
    valid: bool
    error: Optional[str] = None

    def __bool__(self):
        return self.valid


def validate_contract_melds(contract: Contract, melds: Iterable[Meld]) -> ContractResult:
    """Check proposed melds against a contract.

    The number of sets and runs must match the contract exactly; a meld longer than the
    minimum still counts once.  Every meld must be valid for its declared type and no card
    may be used twice.
    """
    melds = list(melds)
    sets = sum(1 for meld in melds if meld.is_set)
    runs = sum(1 for meld in melds if meld.is_run)
    if sets != contract.sets:
        return ContractResult(False, "Contract requires %d set(s), got %d" % (contract.sets, sets))
    if runs != contract.runs:
        return ContractResult(False, "Contract requires %d run(s), got %d" % (contract.runs, runs))
    for meld in melds:
        if not meld.is_valid:
            return ContractResult(False, "Meld declared as %s is invalid: %s" % (meld.kind, meld))
    seen = set()
    for meld in melds:
        for card in meld.cards:
            if card.id in seen:
                return ContractResult(False, "Card %s appears in more than one meld" % card.id)
            seen.add(card.id)
    return ContractResult(True)
