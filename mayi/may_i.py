"""The May I window.

When a card is discarded, every eligible player may call "May I" to claim it out of turn.
The window stays open until the player whose turn it is draws:

  * drawing the discard closes the window for them, with no penalty, and voids every claim;
  * drawing from the stock passes, and pending claims are resolved at once.

Claims are resolved by seating, not by who called first: walking forward from the seat after
the current player (skipping the discarder), the first claimant reached wins the discard plus
a blind penalty card from the stock.
"""

from dataclasses import dataclass, field
import logging
from typing import Iterable, List, Optional

from .action import CallMayI, DrawFromDiscard, DrawFromStock, Outcome, Rejected
from .common import Card


log = logging.getLogger(__name__)


def claim_priority(
    player_order: List[str], current_player_index: int, discarded_by_player_id: Optional[str]
) -> List[str]:
    """Players in the order their claims win, excluding the current player and the discarder."""
    priority = []
    for offset in range(1, len(player_order)):
        player_id = player_order[(current_player_index + offset) % len(player_order)]
        if player_id != discarded_by_player_id:
            priority.append(player_id)
    return priority


def resolve_by_priority(claimants: Iterable[str], priority: List[str]) -> Optional[str]:
    claimants = set(claimants)
    for player_id in priority:
        if player_id in claimants:
            return player_id
    return None


@dataclass
class MayIResult:
    CURRENT_PLAYER_CLAIMED = "CURRENT_PLAYER_CLAIMED"
    MAY_I_RESOLVED = "MAY_I_RESOLVED"
    NO_CLAIMS = "NO_CLAIMS"

    type: str
    winner_id: Optional[str]
    discarded_card: Card
    winner_received: List[Card] = field(default_factory=list)
    penalty_card: Optional[Card] = None
    updated_stock: List[Card] = field(default_factory=list)


class MayIWindow:
    OPEN = "open"
    RESOLVING_CLAIMS = "resolvingClaims"
    RESOLVED = "resolved"
    CLOSED_NO_CLAIM = "closedNoClaim"
    CLOSED_BY_CURRENT_PLAYER = "closedByCurrentPlayer"

    FINAL_STATES = (RESOLVED, CLOSED_NO_CLAIM, CLOSED_BY_CURRENT_PLAYER)

    def __init__(
        self,
        discarded_card: Card,
        discarded_by_player_id: Optional[str],
        current_player_id: str,
        current_player_index: int,
        player_order: Iterable[str],
        stock: Iterable[Card],
        down_player_ids: Iterable[str] = (),
    ) -> None:
        self.discarded_card = discarded_card
        self.discarded_by_player_id = discarded_by_player_id
        self.current_player_id = current_player_id
        self.current_player_index = current_player_index
        self.player_order: List[str] = list(player_order)
        # the stock as of the current player's draw; the penalty card comes off its top
        self.stock: List[Card] = list(stock)
        self.down_player_ids = frozenset(down_player_ids)
        self.claimants: List[str] = []
        self.current_player_claimed = False
        self.current_player_passed = False
        self.winner_id: Optional[str] = None
        self.penalty_card: Optional[Card] = None
        self.state = self.OPEN

    @property
    def is_open(self) -> bool:
        return self.state == self.OPEN

    @property
    def is_final(self) -> bool:
        return self.state in self.FINAL_STATES

    def can_call(self, player_id: str) -> bool:
        try:
            self._check_call(player_id)
        except Rejected:
            return False
        return True

    def _check_call(self, player_id: str) -> None:
        if player_id not in self.player_order:
            raise Rejected("Unknown player %s" % player_id)
        if player_id == self.discarded_by_player_id:
            raise Rejected("Players cannot claim their own discard")
        if player_id == self.current_player_id:
            raise Rejected("The current player takes the discard by drawing it")
        if player_id in self.down_player_ids:
            raise Rejected("Players who are down cannot call May I")
        if player_id in self.claimants:
            raise Rejected("Already called May I")

    def send(self, event) -> Outcome:
        try:
            if not self.is_open:
                raise Rejected("May I window is closed")
            if isinstance(event, CallMayI):
                self._check_call(event.player_id)
                self.claimants.append(event.player_id)
                log.info("Player %s calls May I on %s", event.player_id, self.discarded_card)
            elif isinstance(event, (DrawFromDiscard, DrawFromStock)):
                if event.player_id != self.current_player_id:
                    raise Rejected("Only the current player closes the window by drawing")
                if isinstance(event, DrawFromDiscard):
                    self.current_player_claimed = True
                    self.state = self.CLOSED_BY_CURRENT_PLAYER
                else:
                    self.current_player_passed = True
                    self.state = self.RESOLVING_CLAIMS
                    self._resolve()
            else:
                raise Rejected("%s is not a May I event" % type(event).__name__)
        except Rejected as e:
            log.debug("Rejected %s: %s", event, e.error)
            return Outcome.rejected(e.error)
        return Outcome.ok()

    def _resolve(self) -> None:
        if not self.claimants:
            self.state = self.CLOSED_NO_CLAIM
            return
        priority = claim_priority(
            self.player_order, self.current_player_index, self.discarded_by_player_id
        )
        self.winner_id = resolve_by_priority(self.claimants, priority)
        if self.stock:
            self.penalty_card = self.stock.pop(0)
        self.state = self.RESOLVED
        log.info(
            "May I on %s goes to %s (claimants: %s)",
            self.discarded_card,
            self.winner_id,
            ", ".join(self.claimants),
        )

    def result(self) -> Optional[MayIResult]:
        if self.state == self.CLOSED_BY_CURRENT_PLAYER:
            return MayIResult(
                MayIResult.CURRENT_PLAYER_CLAIMED,
                winner_id=self.current_player_id,
                discarded_card=self.discarded_card,
                winner_received=[self.discarded_card],
                updated_stock=list(self.stock),
            )
        if self.state == self.RESOLVED:
            received = [self.discarded_card]
            if self.penalty_card is not None:
                received.append(self.penalty_card)
            return MayIResult(
                MayIResult.MAY_I_RESOLVED,
                winner_id=self.winner_id,
                discarded_card=self.discarded_card,
                winner_received=received,
                penalty_card=self.penalty_card,
                updated_stock=list(self.stock),
            )
        if self.state == self.CLOSED_NO_CLAIM:
            return MayIResult(
                MayIResult.NO_CLAIMS,
                winner_id=None,
                discarded_card=self.discarded_card,
                updated_stock=list(self.stock),
            )
        return None

    @classmethod
    def from_dict(cls, d: dict) -> "MayIWindow":
        window = cls(
            discarded_card=Card.from_dict(d["discardedCard"]),
            discarded_by_player_id=d["discardedByPlayerId"],
            current_player_id=d["currentPlayerId"],
            current_player_index=d["currentPlayerIndex"],
            player_order=d["playerOrder"],
            stock=[Card.from_dict(c) for c in d["stock"]],
            down_player_ids=d["downPlayerIds"],
        )
        window.claimants = list(d["claimants"])
        window.current_player_claimed = d["currentPlayerClaimed"]
        window.current_player_passed = d["currentPlayerPassed"]
        window.winner_id = d["winnerId"]
        window.penalty_card = Card.from_dict(d["penaltyCard"]) if d["penaltyCard"] else None
        window.state = d["state"]
        return window

    def to_dict(self) -> dict:
        return {
            "discardedCard": self.discarded_card.to_dict(),
            "discardedByPlayerId": self.discarded_by_player_id,
            "currentPlayerId": self.current_player_id,
            "currentPlayerIndex": self.current_player_index,
            "playerOrder": list(self.player_order),
            "stock": [card.to_dict() for card in self.stock],
            "downPlayerIds": sorted(self.down_player_ids),
            "claimants": list(self.claimants),
            "currentPlayerClaimed": self.current_player_claimed,
            "currentPlayerPassed": self.current_player_passed,
            "winnerId": self.winner_id,
            "penaltyCard": self.penalty_card.to_dict() if self.penalty_card else None,
            "state": self.state,
        }
