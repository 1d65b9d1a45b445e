"""The round orchestrator.

A round deals fresh hands, then runs one TurnMachine per player in seat order until
somebody goes out.  Between turns the round owns the hands, piles and table; while a turn
is in progress it copies the turn's state back after every accepted command.

Every discard (and the card flipped after dealing) opens a May I window for the next
player's turn.  The window closes on that player's draw:

  * a draw from the discard pile takes the card and voids all claims;
  * a draw from the stock is applied first, then the claims are settled against what is
    left of the stock.
"""

from dataclasses import dataclass, field
import logging
import random
from typing import Dict, Iterator, List, Optional

from .action import (
    CallMayI,
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    Outcome,
    ReorderHand,
)
from .common import Card, Deck, hand_score
from .contract import contract_for_round
from .hand import Hand
from .may_i import MayIResult, MayIWindow
from .meld import Meld
from .turn import TurnMachine


log = logging.getLogger(__name__)


HAND_SIZE = 11


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    is_down: bool = False
    total_score: int = 0

    @classmethod
    def from_dict(cls, d: dict) -> "Player":
        return cls(
            id=d["id"],
            name=d["name"],
            hand=[Card.from_dict(c) for c in d["hand"]],
            is_down=d["isDown"],
            total_score=d["totalScore"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "hand": [card.to_dict() for card in self.hand],
            "isDown": self.is_down,
            "totalScore": self.total_score,
        }


@dataclass
class RoundRecord:
    round_number: int
    scores: Dict[str, int]
    winner_id: Optional[str]

    @classmethod
    def from_dict(cls, d: dict) -> "RoundRecord":
        return cls(d["roundNumber"], dict(d["scores"]), d["winnerId"])

    def to_dict(self) -> dict:
        return {"roundNumber": self.round_number, "scores": dict(self.scores), "winnerId": self.winner_id}

    def __str__(self):
        return "Round %d won by %s: %s" % (
            self.round_number,
            self.winner_id,
            " ".join("%s=%d" % (pid, score) for pid, score in self.scores.items()),
        )


class RoundMachine:
    DEALING = "dealing"
    ACTIVE = "active"
    SCORING = "scoring"

    def __init__(
        self,
        round_number: int,
        players: List[Player],
        dealer_index: int = 0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.round_number = round_number
        self.contract = contract_for_round(round_number)
        self.players = players
        self.dealer_index = dealer_index
        self.rng = rng or random.Random()
        self.current_player_index = (dealer_index + 1) % len(players)
        self.stock: List[Card] = []
        self.discard: List[Card] = []
        self.table: List[Meld] = []
        self.turn: Optional[TurnMachine] = None
        self.may_i: Optional[MayIWindow] = None
        self.winner_id: Optional[str] = None
        self.record: Optional[RoundRecord] = None
        self.state = self.DEALING

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def player_ids(self) -> List[str]:
        return [player.id for player in self.players]

    @property
    def deck_size(self) -> int:
        decks, jokers = Deck.config(len(self.players))
        return 52 * decks + jokers

    def player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def iter_cards(self) -> Iterator[Card]:
        """Every card in play: hands, stock, discard pile and table."""
        for player in self.players:
            yield from player.hand
        yield from self.stock
        yield from self.discard
        for meld in self.table:
            yield from meld.cards

    def deal(self) -> None:
        if self.state != self.DEALING:
            raise ValueError("Round %d has already been dealt" % self.round_number)
        deck = Deck.for_players(len(self.players), prefix=str(self.round_number))
        deck.shuffle(self.rng)
        for player in self.players:
            player.hand = []
            player.is_down = False
        for _ in range(HAND_SIZE):
            for offset in range(1, len(self.players) + 1):
                self.players[(self.dealer_index + offset) % len(self.players)].hand.append(deck.pop())
        self.discard = [deck.pop()]
        self.stock = list(deck)
        self.table = []
        self.state = self.ACTIVE
        log.info(
            "Round %d (%s) dealt by %s, %s flipped",
            self.round_number,
            self.contract,
            self.players[self.dealer_index].id,
            self.discard[0],
        )
        self._start_turn(discarded_by_player_id=None, open_window=True)

    def send(self, event) -> Outcome:
        if self.state != self.ACTIVE:
            return self._reject(event, "Round %d is not being played" % self.round_number)
        if isinstance(event, CallMayI):
            return self._call_may_i(event)
        if isinstance(event, ReorderHand) and event.player_id != self.current_player.id:
            return self._reorder_hand(event)

        outcome = self.turn.send(event)
        if outcome.stock_empty and self._reshuffle():
            outcome = self.turn.send(event)
        if not outcome:
            return outcome
        if isinstance(event, (DrawFromStock, DrawFromDiscard)) and self.may_i is not None:
            self._close_may_i(event)
        self._sync_turn()
        if self.turn.is_final:
            self._end_turn(discarded=isinstance(event, Discard))
        return outcome

    def _reject(self, event, error: str) -> Outcome:
        log.debug("Rejected %s: %s", event, error)
        return Outcome.rejected(error)

    def _call_may_i(self, event: CallMayI) -> Outcome:
        if self.may_i is None or not self.may_i.is_open:
            return self._reject(event, "There is no discard to call May I on")
        return self.may_i.send(event)

    def _reorder_hand(self, event: ReorderHand) -> Outcome:
        player = self.player(event.player_id)
        if player is None:
            return self._reject(event, "Unknown player %s" % event.player_id)
        hand = Hand(player.hand)
        try:
            hand.reorder(list(event.card_ids))
        except Hand.Error as e:
            return self._reject(event, str(e))
        player.hand = list(hand)
        return Outcome.ok()

    def _reshuffle(self) -> bool:
        """Turn every discard but the top one into a fresh stock."""
        turn = self.turn
        if len(turn.discard) <= 1:
            log.warning(
                "Round %d: stock and discard pile are exhausted, nothing to reshuffle",
                self.round_number,
            )
            return False
        top, rest = turn.discard[0], turn.discard[1:]
        self.rng.shuffle(rest)
        turn.stock = rest
        turn.discard = [top]
        log.info("Round %d: reshuffled %d discards into the stock", self.round_number, len(rest))
        return True

    def _close_may_i(self, event) -> None:
        window = self.may_i
        self.may_i = None
        window.stock = list(self.turn.stock)
        window.send(event)
        result = window.result()
        if result is None or result.type != MayIResult.MAY_I_RESOLVED:
            return
        card = self.turn.discard.pop(0)
        if card.id != result.discarded_card.id:
            raise ValueError("May I card %s is not on top of the discard pile" % result.discarded_card)
        self.turn.stock = list(result.updated_stock)
        self.player(result.winner_id).hand.extend(result.winner_received)

    def _sync_turn(self) -> None:
        output = self.turn.output()
        player = self.current_player
        player.hand = output.hand
        player.is_down = output.is_down
        self.stock = output.stock
        self.discard = output.discard
        self.table = output.table

    def _start_turn(self, discarded_by_player_id: Optional[str], open_window: bool) -> None:
        player = self.current_player
        self.turn = TurnMachine(
            player.id,
            player.hand,
            self.stock,
            self.discard,
            self.table,
            self.round_number,
            is_down=player.is_down,
        )
        self.may_i = None
        if open_window and self.discard:
            self.may_i = MayIWindow(
                discarded_card=self.discard[0],
                discarded_by_player_id=discarded_by_player_id,
                current_player_id=player.id,
                current_player_index=self.current_player_index,
                player_order=self.player_ids,
                stock=self.stock,
                down_player_ids=[p.id for p in self.players if p.is_down],
            )

    def _end_turn(self, discarded: bool) -> None:
        player = self.current_player
        if self.turn.state == TurnMachine.WENT_OUT:
            self.winner_id = player.id
            self.turn = None
            self.may_i = None
            self._score()
            return
        self.current_player_index = (self.current_player_index + 1) % len(self.players)
        self._start_turn(discarded_by_player_id=player.id if discarded else None, open_window=discarded)

    def _score(self) -> None:
        scores = {}
        for player in self.players:
            scores[player.id] = 0 if player.id == self.winner_id else hand_score(player.hand)
            player.total_score += scores[player.id]
        self.record = RoundRecord(self.round_number, scores, self.winner_id)
        self.state = self.SCORING
        log.info("%s", self.record)

    @classmethod
    def from_dict(cls, d: dict, players: List[Player], rng: Optional[random.Random] = None) -> "RoundMachine":
        round_ = cls(d["roundNumber"], players, d["dealerIndex"], rng)
        round_.current_player_index = d["currentPlayerIndex"]
        round_.stock = [Card.from_dict(c) for c in d["stock"]]
        round_.discard = [Card.from_dict(c) for c in d["discard"]]
        round_.table = [Meld.from_dict(m) for m in d["table"]]
        round_.turn = TurnMachine.from_dict(d["turn"]) if d["turn"] else None
        round_.may_i = MayIWindow.from_dict(d["mayI"]) if d["mayI"] else None
        round_.winner_id = d["winnerId"]
        round_.record = RoundRecord.from_dict(d["record"]) if d["record"] else None
        round_.state = d["state"]
        return round_

    def to_dict(self) -> dict:
        return {
            "roundNumber": self.round_number,
            "dealerIndex": self.dealer_index,
            "currentPlayerIndex": self.current_player_index,
            "stock": [card.to_dict() for card in self.stock],
            "discard": [card.to_dict() for card in self.discard],
            "table": [meld.to_dict() for meld in self.table],
            "turn": self.turn.to_dict() if self.turn else None,
            "mayI": self.may_i.to_dict() if self.may_i else None,
            "winnerId": self.winner_id,
            "record": self.record.to_dict() if self.record else None,
            "state": self.state,
        }
