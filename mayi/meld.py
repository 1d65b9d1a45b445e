"""Melds and the rules that make a group of cards a legal set or run.

A meld is a tagged variant: `Meld.SET` or `Meld.RUN` over a shared, ordered tuple of cards.
Run cards are kept low-to-high so that each position maps to exactly one rank; a wild at
position i stands in for the rank `low + i`.  Sets have no meaningful order.
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .common import Card, Rank


class WildCount(NamedTuple):
    wilds: int
    naturals: int


def count_wilds_and_naturals(cards: Iterable[Card]) -> WildCount:
    wilds = naturals = 0
    for card in cards:
        if card.is_wild:
            wilds += 1
        else:
            naturals += 1
    return WildCount(wilds, naturals)


def wilds_outnumber_naturals(cards: Iterable[Card]) -> bool:
    wilds, naturals = count_wilds_and_naturals(cards)
    return wilds > naturals


def set_rank(cards: Iterable[Card]) -> Optional[int]:
    """The rank of a set, taken from its first natural card."""
    for card in cards:
        if card.is_natural:
            return card.rank
    return None


def is_valid_set(cards: Sequence[Card]) -> bool:
    """At least 3 cards, every natural of one rank, wilds never outnumbering naturals."""
    if len(cards) < 3:
        return False
    if wilds_outnumber_naturals(cards):
        return False
    naturals = [card for card in cards if card.is_natural]
    if not naturals:
        return False
    return all(card.rank == naturals[0].rank for card in naturals)


class RunBounds(NamedTuple):
    low: int
    high: int
    suit: int


def run_bounds(cards: Sequence[Card]) -> Optional[RunBounds]:
    """Low and high rank of a run as laid out, anchored on its first natural card.

    Returns None for a run with no naturals.  Does not check validity.
    """
    for position, card in enumerate(cards):
        if card.is_natural:
            low = card.rank - position
            return RunBounds(low, low + len(cards) - 1, card.suit)
    return None


def is_valid_run(cards: Sequence[Card]) -> bool:
    """At least 4 cards of one suit, ascending and contiguous in the order given.

    Wilds fill exactly the slot they occupy.  Aces are high only and nothing wraps, so a
    run spans at most 3..A.
    """
    if len(cards) < 4:
        return False
    if wilds_outnumber_naturals(cards):
        return False
    bounds = run_bounds(cards)
    if bounds is None:
        return False
    if bounds.low < Rank.RUN_MIN or bounds.high > Rank.MAX:
        return False
    for position, card in enumerate(cards):
        if card.is_wild:
            continue
        if card.suit != bounds.suit:
            return False
        if card.rank != bounds.low + position:
            return False
    return True


def normalize_run(cards: Sequence[Card]) -> Optional[List[Card]]:
    """Arrange cards given in any order into an ascending run, or None if impossible.

    Naturals are sorted, wilds fill the gaps between them and any wilds left over go on
    the high end first, spilling to the low end when the run would pass the ace.
    """
    wilds = [card for card in cards if card.is_wild]
    naturals = sorted((card for card in cards if card.is_natural), key=lambda card: card.rank)
    if len(cards) < 4 or not naturals or len(wilds) > len(naturals):
        return None
    if len({card.suit for card in naturals}) != 1:
        return None
    if len({card.rank for card in naturals}) != len(naturals):
        return None
    lowest, highest = naturals[0].rank, naturals[-1].rank
    spare = len(wilds) - (highest - lowest + 1 - len(naturals))
    if spare < 0:
        return None
    for below in range(spare + 1):
        low, high = lowest - below, highest + spare - below
        if low < Rank.RUN_MIN or high > Rank.MAX:
            continue
        by_rank = {card.rank: card for card in naturals}
        remaining = iter(wilds)
        return [by_rank.get(rank) or next(remaining) for rank in range(low, high + 1)]
    return None


@dataclass(frozen=True)
class MeldProposal:
    """A meld a player proposes to lay down, by card id."""

    kind: str
    card_ids: Tuple[str, ...]

    @classmethod
    def set(cls, *card_ids: str) -> "MeldProposal":
        return cls(Meld.SET, tuple(card_ids))

    @classmethod
    def run(cls, *card_ids: str) -> "MeldProposal":
        return cls(Meld.RUN, tuple(card_ids))

    @classmethod
    def from_dict(cls, d: dict) -> "MeldProposal":
        # malformed proposals are left for the turn to reject
        return cls(d.get("type", ""), tuple(d.get("cardIds") or ()))


@dataclass(frozen=True)
class Meld:
    """A set or run on the table."""

    class Error(Exception):
        pass

    class InvalidKind(Error):
        pass

    SET = "set"
    RUN = "run"

    id: str
    kind: str
    cards: Tuple[Card, ...]
    owner_id: str

    def __post_init__(self):
        if self.kind not in (self.SET, self.RUN):
            raise self.InvalidKind("Unknown meld kind: %s" % self.kind)
        object.__setattr__(self, "cards", tuple(self.cards))

    @property
    def is_set(self) -> bool:
        return self.kind == self.SET

    @property
    def is_run(self) -> bool:
        return self.kind == self.RUN

    @property
    def is_valid(self) -> bool:
        return VALIDATORS[self.kind](self.cards)

    @property
    def card_ids(self) -> List[str]:
        return [card.id for card in self.cards]

    def with_cards(self, cards: Iterable[Card]) -> "Meld":
        return replace(self, cards=tuple(cards))

    def index_of(self, card_id: str) -> Optional[int]:
        for index, card in enumerate(self.cards):
            if card.id == card_id:
                return index
        return None

    @classmethod
    def from_dict(cls, d: dict) -> "Meld":
        return cls(d["id"], d["type"], tuple(Card.from_dict(c) for c in d["cards"]), d["ownerId"])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind,
            "cards": [card.to_dict() for card in self.cards],
            "ownerId": self.owner_id,
        }

    def __str__(self):
        return "%s(%s)" % (self.kind.capitalize(), " ".join("%s" % card for card in self.cards))


VALIDATORS: Dict[str, Callable[[Sequence[Card]], bool]] = {
    Meld.SET: is_valid_set,
    Meld.RUN: is_valid_run,
}


def is_valid_meld(kind: str, cards: Sequence[Card]) -> bool:
    try:
        return VALIDATORS[kind](cards)
    except KeyError:
        return False

