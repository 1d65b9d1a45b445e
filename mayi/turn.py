"""The state machine for a single player's turn.

    awaitingDraw --draw--> drawn --skip / lay down--> awaitingDiscard --discard--> turnComplete
                              |                                           |
                              +---- hand emptied (lay down, lay off) -----+--> wentOut

The machine owns copies of the hand, stock, discard pile and table for the duration of the
turn.  Every command is validated in full before anything is touched, so a rejected command
leaves the machine exactly as it was.
"""

from dataclasses import dataclass
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .action import (
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    EndTurnStuck,
    GoOut,
    LayDown,
    LayOff,
    Outcome,
    Rejected,
    ReorderHand,
    SkipLayDown,
    SwapJoker,
)
from .common import Card
from .contract import LAST_ROUND, contract_for_round, validate_contract_melds
from .hand import Hand
from .layoff import can_lay_off, can_swap_joker, lay_off, lay_off_position, swap_joker
from .meld import Meld


log = logging.getLogger(__name__)


@dataclass
class TurnOutput:
    player_id: str
    hand: List[Card]
    stock: List[Card]
    discard: List[Card]
    table: List[Meld]
    is_down: bool
    went_out: bool


class TurnMachine:
    AWAITING_DRAW = "awaitingDraw"
    DRAWN = "drawn"
    AWAITING_DISCARD = "awaitingDiscard"
    TURN_COMPLETE = "turnComplete"
    WENT_OUT = "wentOut"

    STATES = (AWAITING_DRAW, DRAWN, AWAITING_DISCARD, TURN_COMPLETE, WENT_OUT)
    FINAL_STATES = (TURN_COMPLETE, WENT_OUT)

    def __init__(
        self,
        player_id: str,
        hand: Iterable[Card],
        stock: Iterable[Card],
        discard: Iterable[Card],
        table: Iterable[Meld],
        round_number: int,
        is_down: bool = False,
        laid_down_this_turn: bool = False,
        has_drawn: bool = False,
        state: str = AWAITING_DRAW,
    ) -> None:
        if state not in self.STATES:
            raise ValueError("Unknown turn state: %s" % state)
        self.player_id = player_id
        self.hand = Hand(hand)
        self.stock: List[Card] = list(stock)
        self.discard: List[Card] = list(discard)
        self.table: List[Meld] = list(table)
        self.round_number = round_number
        self.contract = contract_for_round(round_number)
        self.is_down = is_down
        self.laid_down_this_turn = laid_down_this_turn
        self.has_drawn = has_drawn
        self.state = state
        self.last_error: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.state in self.FINAL_STATES

    @property
    def is_last_round(self) -> bool:
        # the last round lets a player keep playing after going down, but not go out by discarding
        return self.round_number == LAST_ROUND

    @property
    def may_lay_off(self) -> bool:
        return can_lay_off(self.is_down, self.laid_down_this_turn, self.has_drawn)

    @property
    def may_go_out(self) -> bool:
        # in the last round a player may go out on the turn they go down
        laid_down = self.laid_down_this_turn and not self.is_last_round
        return can_lay_off(self.is_down, laid_down, self.has_drawn)

    @property
    def may_swap_joker(self) -> bool:
        return (
            self.has_drawn
            and not self.laid_down_this_turn
            and self.state in (self.DRAWN, self.AWAITING_DISCARD)
        )

    @property
    def is_stuck(self) -> bool:
        """Down in the last round, holding one card that fits nowhere on the table."""
        if not (self.is_last_round and self.is_down and len(self.hand) == 1):
            return False
        if self.state not in (self.DRAWN, self.AWAITING_DISCARD):
            return False
        (card,) = self.hand
        # going out is over once the player has skipped to discarding
        can_still_go_out = self.state == self.DRAWN and self.may_go_out
        return not (can_still_go_out and any(lay_off_position(card, meld) for meld in self.table))

    def send(self, event) -> Outcome:
        handler = self._HANDLERS.get(type(event))
        try:
            if handler is None:
                raise Rejected("%s is not a turn command" % type(event).__name__)
            if event.player_id != self.player_id:
                raise Rejected("It is not %s's turn" % event.player_id)
            if self.is_final:
                raise Rejected("Turn is already over")
            handler(self, event)
        except Rejected as e:
            self.last_error = e.error
            log.debug("Rejected %s in %s: %s", event, self.state, e.error)
            return Outcome.rejected(e.error, stock_empty=e.stock_empty)
        self.last_error = None
        return Outcome.ok()

    def output(self) -> TurnOutput:
        return TurnOutput(
            player_id=self.player_id,
            hand=list(self.hand),
            stock=list(self.stock),
            discard=list(self.discard),
            table=list(self.table),
            is_down=self.is_down,
            went_out=self.hand.empty,
        )

    # guards

    def _require_state(self, *states: str) -> None:
        if self.state not in states:
            raise Rejected("Not allowed while %s" % self.state)

    def _require_card(self, card_id: str) -> Card:
        card = self.hand.find(card_id)
        if card is None:
            raise Rejected("Card %s is not in hand" % card_id)
        return card

    def _require_meld(self, meld_id: str) -> Tuple[int, Meld]:
        for index, meld in enumerate(self.table):
            if meld.id == meld_id:
                return index, meld
        raise Rejected("No meld %s on the table" % meld_id)

    def _next_meld_id(self, offset: int = 0) -> str:
        # the table only grows during a round, so its length numbers melds uniquely
        return "meld-%d-%d" % (self.round_number, len(self.table) + offset)

    def _finish_if_empty(self) -> bool:
        if self.hand.empty:
            self.state = self.WENT_OUT
            log.info("Player %s went out", self.player_id)
            return True
        return False

    # transitions

    def _draw_from_stock(self, event: DrawFromStock) -> None:
        self._require_state(self.AWAITING_DRAW)
        if not self.stock:
            raise Rejected("Stock is empty", stock_empty=True)
        self.hand.put_card(self.stock.pop(0))
        self.has_drawn = True
        self.state = self.DRAWN

    def _draw_from_discard(self, event: DrawFromDiscard) -> None:
        self._require_state(self.AWAITING_DRAW)
        if not self.discard:
            raise Rejected("Discard pile is empty")
        if self.is_down:
            raise Rejected("Players who are down must draw from the stock")
        self.hand.put_card(self.discard.pop(0))
        self.has_drawn = True
        self.state = self.DRAWN

    def _skip_lay_down(self, event: SkipLayDown) -> None:
        self._require_state(self.DRAWN)
        self.state = self.AWAITING_DISCARD

    def _lay_down(self, event: LayDown) -> None:
        self._require_state(self.DRAWN)
        if self.is_down:
            raise Rejected("Already down this round")
        if not event.melds:
            raise Rejected("No melds proposed")
        card_ids = [card_id for proposal in event.melds for card_id in proposal.card_ids]
        if len(set(card_ids)) != len(card_ids):
            raise Rejected("A card is used more than once")
        melds = []
        for offset, proposal in enumerate(event.melds):
            cards = [self._require_card(card_id) for card_id in proposal.card_ids]
            try:
                melds.append(Meld(self._next_meld_id(offset), proposal.kind, cards, self.player_id))
            except Meld.InvalidKind as e:
                raise Rejected(str(e))
        result = validate_contract_melds(self.contract, melds)
        if not result.valid:
            raise Rejected(result.error)

        self.hand.take_cards(card_ids)
        self.table.extend(melds)
        self.is_down = True
        self.laid_down_this_turn = True
        log.info("Player %s is down with %s", self.player_id, " ".join(map(str, melds)))
        if self._finish_if_empty():
            return
        self.state = self.DRAWN if self.is_last_round else self.AWAITING_DISCARD

    def _lay_off(self, event: LayOff) -> None:
        self._require_state(self.DRAWN)
        if not self.may_lay_off:
            raise Rejected("Laying off requires being down since an earlier turn")
        card = self._require_card(event.card_id)
        index, meld = self._require_meld(event.meld_id)
        if lay_off_position(card, meld, event.position) is None:
            raise Rejected("%s does not fit %s" % (card, meld))

        self.hand.take_cards([card.id])
        self.table[index] = lay_off(card, meld, event.position)
        self._finish_if_empty()

    def _swap_joker(self, event: SwapJoker) -> None:
        if not self.may_swap_joker:
            raise Rejected("Jokers may only be swapped after drawing and before laying down")
        replacement = self._require_card(event.replacement_card_id)
        index, meld = self._require_meld(event.meld_id)
        if not can_swap_joker(meld, event.joker_card_id, replacement):
            raise Rejected("%s cannot replace joker %s" % (replacement, event.joker_card_id))

        self.hand.take_cards([replacement.id])
        self.table[index], joker = swap_joker(meld, event.joker_card_id, replacement)
        self.hand.put_card(joker)

    def _discard(self, event: Discard) -> None:
        self._require_state(self.AWAITING_DISCARD)
        card = self._require_card(event.card_id)
        if self.is_last_round and self.is_down and len(self.hand) == 1:
            raise Rejected("The last card cannot be discarded to go out in the last round")

        self.hand.take_cards([card.id])
        self.discard.insert(0, card)
        if not self._finish_if_empty():
            self.state = self.TURN_COMPLETE

    def _end_turn_stuck(self, event: EndTurnStuck) -> None:
        self._require_state(self.DRAWN, self.AWAITING_DISCARD)
        if not (self.is_last_round and self.is_down and len(self.hand) == 1):
            raise Rejected("Only a down player holding one card in the last round can be stuck")
        if not self.is_stuck:
            raise Rejected("%s can still be laid off" % self.hand.cards[0])
        self.state = self.TURN_COMPLETE

    def _go_out(self, event: GoOut) -> None:
        self._require_state(self.DRAWN)
        if not self.may_go_out:
            raise Rejected("Going out requires being down since an earlier turn, except in the last round")
        if len(event.lay_offs) != len(self.hand):
            raise Rejected("Going out must lay off every card in hand")
        table = list(self.table)
        remaining = self.hand.copy()
        for card_id, meld_id in event.lay_offs:
            card = remaining.find(card_id)
            if card is None:
                raise Rejected("Card %s is not in hand" % card_id)
            for index, meld in enumerate(table):
                if meld.id == meld_id:
                    break
            else:
                raise Rejected("No meld %s on the table" % meld_id)
            if lay_off_position(card, meld) is None:
                raise Rejected("%s does not fit %s" % (card, meld))
            remaining.take_cards([card_id])
            table[index] = lay_off(card, meld)

        self.hand = remaining
        self.table = table
        self._finish_if_empty()

    def _reorder_hand(self, event: ReorderHand) -> None:
        try:
            self.hand.reorder(list(event.card_ids))
        except Hand.Error as e:
            raise Rejected(str(e))

    _HANDLERS: Dict[type, Callable[["TurnMachine", object], None]] = {
        DrawFromStock: _draw_from_stock,
        DrawFromDiscard: _draw_from_discard,
        SkipLayDown: _skip_lay_down,
        LayDown: _lay_down,
        LayOff: _lay_off,
        SwapJoker: _swap_joker,
        Discard: _discard,
        EndTurnStuck: _end_turn_stuck,
        GoOut: _go_out,
        ReorderHand: _reorder_hand,
    }

    @classmethod
    def from_dict(cls, d: dict) -> "TurnMachine":
        return cls(
            player_id=d["playerId"],
            hand=[Card.from_dict(c) for c in d["hand"]],
            stock=[Card.from_dict(c) for c in d["stock"]],
            discard=[Card.from_dict(c) for c in d["discard"]],
            table=[Meld.from_dict(m) for m in d["table"]],
            round_number=d["roundNumber"],
            is_down=d["isDown"],
            laid_down_this_turn=d["laidDownThisTurn"],
            has_drawn=d["hasDrawn"],
            state=d["state"],
        )

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "hand": [card.to_dict() for card in self.hand],
            "stock": [card.to_dict() for card in self.stock],
            "discard": [card.to_dict() for card in self.discard],
            "table": [meld.to_dict() for meld in self.table],
            "roundNumber": self.round_number,
            "isDown": self.is_down,
            "laidDownThisTurn": self.laid_down_this_turn,
            "hasDrawn": self.has_drawn,
            "state": self.state,
        }
