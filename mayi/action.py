"""Commands players send to the engine, and the outcome of sending one.

Commands are plain values.  The machines never raise for a gameplay mistake: they answer
every command with an `Outcome`, and a rejected command leaves their state untouched.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .meld import MeldProposal


@dataclass(frozen=True)
class Outcome:
    accepted: bool
    error: Optional[str] = None
    # set when a stock draw was refused only because the stock ran out
    stock_empty: bool = False

    @classmethod
    def ok(cls) -> "Outcome":
        return cls(True)

    @classmethod
    def rejected(cls, error: str, stock_empty: bool = False) -> "Outcome":
        return cls(False, error, stock_empty)

    def __bool__(self):
        return self.accepted


class Rejected(Exception):
    """Raised by guards inside a machine; converted to an Outcome by its send()."""

    def __init__(self, error: str, stock_empty: bool = False) -> None:
        super().__init__(error)
        self.error = error
        self.stock_empty = stock_empty


@dataclass(frozen=True)
class DrawFromStock:
    player_id: str

    def __str__(self):
        return "Player %s draws from stock" % self.player_id


@dataclass(frozen=True)
class DrawFromDiscard:
    player_id: str

    def __str__(self):
        return "Player %s draws from discard" % self.player_id


@dataclass(frozen=True)
class SkipLayDown:
    player_id: str

    def __str__(self):
        return "Player %s skips laying down" % self.player_id


@dataclass(frozen=True)
class LayDown:
    player_id: str
    melds: Tuple[MeldProposal, ...]

    def __str__(self):
        return "Player %s lays down %s" % (
            self.player_id,
            " / ".join("%s[%s]" % (m.kind, ",".join(m.card_ids)) for m in self.melds),
        )


@dataclass(frozen=True)
class LayOff:
    player_id: str
    card_id: str
    meld_id: str
    position: Optional[str] = None

    def __str__(self):
        return "Player %s lays off %s on %s" % (self.player_id, self.card_id, self.meld_id)


@dataclass(frozen=True)
class SwapJoker:
    player_id: str
    joker_card_id: str
    meld_id: str
    replacement_card_id: str

    def __str__(self):
        return "Player %s swaps %s for joker %s in %s" % (
            self.player_id,
            self.replacement_card_id,
            self.joker_card_id,
            self.meld_id,
        )


@dataclass(frozen=True)
class Discard:
    player_id: str
    card_id: str

    def __str__(self):
        return "Player %s discards %s" % (self.player_id, self.card_id)


@dataclass(frozen=True)
class EndTurnStuck:
    player_id: str

    def __str__(self):
        return "Player %s ends turn stuck" % self.player_id


@dataclass(frozen=True)
class GoOut:
    player_id: str
    # (card_id, meld_id) pairs applied in order
    lay_offs: Tuple[Tuple[str, str], ...]

    def __str__(self):
        return "Player %s goes out laying off %s" % (
            self.player_id,
            ", ".join("%s->%s" % pair for pair in self.lay_offs),
        )


@dataclass(frozen=True)
class CallMayI:
    player_id: str

    def __str__(self):
        return "Player %s calls May I" % self.player_id


@dataclass(frozen=True)
class ReorderHand:
    player_id: str
    card_ids: Tuple[str, ...]

    def __str__(self):
        return "Player %s reorders their hand" % self.player_id
