"""What a single player is allowed to see.

A view carries the player's own hand, but only the size of everybody else's.  It also
lists the commands the player could send right now, so clients and bots do not have to
re-derive the turn rules.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .common import Card
from .contract import Contract
from .meld import Meld
from .round import RoundMachine, RoundRecord
from .turn import TurnMachine


DRAW_STOCK = "drawStock"
PICK_UP_DISCARD = "pickUpDiscard"
SKIP_LAY_DOWN = "skipLayDown"
LAY_DOWN = "layDown"
LAY_OFF = "layOff"
GO_OUT = "goOut"
SWAP_JOKER = "swapJoker"
DISCARD = "discard"
END_TURN_STUCK = "endTurnStuck"
MAY_I = "mayI"
REORDER_HAND = "reorderHand"


@dataclass
class OpponentInfo:
    id: str
    name: str
    hand_count: int
    is_down: bool
    total_score: int


@dataclass
class PlayerView:
    game_id: str
    player_id: str
    name: str
    phase: str
    round_number: int
    contract: Contract
    hand: List[Card]
    is_down: bool
    total_score: int
    opponents: List[OpponentInfo]
    table: List[Meld]
    discard_top: Optional[Card]
    discard_size: int
    stock_size: int
    current_player_id: Optional[str]
    turn_phase: Optional[str]
    may_i_card: Optional[Card] = None
    available_actions: List[str] = field(default_factory=list)
    round_history: List[RoundRecord] = field(default_factory=list)
    winners: List[str] = field(default_factory=list)

    @property
    def is_my_turn(self) -> bool:
        return self.current_player_id == self.player_id

    def can(self, action: str) -> bool:
        return action in self.available_actions


def _turn_actions(turn: TurnMachine) -> List[str]:
    actions = []
    if turn.state == TurnMachine.AWAITING_DRAW:
        actions.append(DRAW_STOCK)
        if turn.discard and not turn.is_down:
            actions.append(PICK_UP_DISCARD)
        return actions
    table_has_joker = any(card.is_joker for meld in turn.table for card in meld.cards)
    if turn.state == TurnMachine.DRAWN:
        actions.append(SKIP_LAY_DOWN)
        if not turn.is_down:
            actions.append(LAY_DOWN)
        if turn.may_lay_off:
            actions.append(LAY_OFF)
        if turn.may_go_out:
            actions.append(GO_OUT)
    if turn.state == TurnMachine.AWAITING_DISCARD:
        if not (turn.is_last_round and turn.is_down and len(turn.hand) == 1):
            actions.append(DISCARD)
    if turn.may_swap_joker and table_has_joker:
        actions.append(SWAP_JOKER)
    if turn.is_stuck:
        actions.append(END_TURN_STUCK)
    return actions


def available_actions(round_: RoundMachine, player_id: str) -> List[str]:
    if round_.state != RoundMachine.ACTIVE:
        return []
    actions = []
    if round_.turn is not None and round_.turn.player_id == player_id:
        actions.extend(_turn_actions(round_.turn))
    elif round_.may_i is not None and round_.may_i.is_open and round_.may_i.can_call(player_id):
        actions.append(MAY_I)
    actions.append(REORDER_HAND)
    return actions


def build_player_view(
    game_id: str,
    phase: str,
    round_: RoundMachine,
    player_id: str,
    round_history: List[RoundRecord],
    winners: List[str],
) -> PlayerView:
    me = round_.player(player_id)
    if me is None:
        raise KeyError(player_id)
    active = round_.state == RoundMachine.ACTIVE
    return PlayerView(
        game_id=game_id,
        player_id=me.id,
        name=me.name,
        phase=phase,
        round_number=round_.round_number,
        contract=round_.contract,
        hand=list(me.hand),
        is_down=me.is_down,
        total_score=me.total_score,
        opponents=[
            OpponentInfo(p.id, p.name, len(p.hand), p.is_down, p.total_score)
            for p in round_.players
            if p.id != me.id
        ],
        table=list(round_.table),
        discard_top=round_.discard[0] if round_.discard else None,
        discard_size=len(round_.discard),
        stock_size=len(round_.stock),
        current_player_id=round_.current_player.id if active else None,
        turn_phase=round_.turn.state if active and round_.turn else None,
        may_i_card=round_.may_i.discarded_card if round_.may_i and round_.may_i.is_open else None,
        available_actions=available_actions(round_, me.id),
        round_history=list(round_history),
        winners=list(winners),
    )
