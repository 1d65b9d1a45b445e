import logging
from typing import Dict, List, Optional

from ..common import Card
from ..game import GameEngine
from ..generation import find_contract_melds, find_joker_swap, find_lay_off, group_by_rank, plan_go_out
from ..view import (
    DISCARD,
    DRAW_STOCK,
    END_TURN_STUCK,
    GO_OUT,
    LAY_DOWN,
    LAY_OFF,
    MAY_I,
    PICK_UP_DISCARD,
    SKIP_LAY_DOWN,
    SWAP_JOKER,
    PlayerView,
)


log = logging.getLogger(__name__)


def least_useful(hand: List[Card]) -> Card:
    """The card to throw away: a lone high natural, wilds only as a last resort."""
    counts = {rank: len(cards) for rank, cards in group_by_rank(hand).items()}
    return max(hand, key=lambda card: (card.is_natural, -counts[card.rank], card.score))


class NaivePlayer:
    """Plays greedily from its player view: lay down as soon as possible, lay off everything
    that fits, and throw away the least useful card."""

    def __init__(self, player_id: str, may_i: bool = True) -> None:
        self.player_id = player_id
        self.may_i = may_i

    def view(self, engine: GameEngine) -> PlayerView:
        return engine.get_player_view(self.player_id)

    def wants(self, card: Optional[Card], view: PlayerView) -> bool:
        if card is None or view.is_down:
            return False
        if card.is_wild:
            return True
        return sum(1 for c in view.hand if c.rank == card.rank) >= 2

    def consider_may_i(self, engine: GameEngine) -> bool:
        view = self.view(engine)
        if not self.may_i or not view.can(MAY_I) or not self.wants(view.may_i_card, view):
            return False
        return engine.call_may_i(self.player_id).accepted

    def _turn_over(self, engine: GameEngine, round_number: int) -> bool:
        return engine.is_over or engine.round.round_number != round_number

    def take_turn(self, engine: GameEngine) -> bool:
        """Play one full turn.  Returns False if the turn could not be started."""
        view = self.view(engine)
        round_number = view.round_number
        if view.can(PICK_UP_DISCARD) and self.wants(view.discard_top, view):
            result = engine.draw_from_discard(self.player_id)
        elif view.can(DRAW_STOCK):
            result = engine.draw_from_stock(self.player_id)
        else:
            return False
        if not result:
            log.debug("%s could not draw: %s", self.player_id, result.error)
            return False

        view = self.view(engine)
        if view.can(SWAP_JOKER) and view.can(LAY_DOWN):
            swap = find_joker_swap(view.hand, view.table)
            if swap is not None:
                joker_id, meld, card = swap
                engine.swap_joker(self.player_id, joker_id, meld.id, card.id)
                view = self.view(engine)

        if view.can(LAY_DOWN):
            melds = find_contract_melds(view.hand, view.contract)
            if melds is not None and engine.lay_down(self.player_id, melds):
                if self._turn_over(engine, round_number):
                    return True
                view = self.view(engine)

        if view.can(GO_OUT):
            plan = plan_go_out(view.hand, view.table)
            if plan is not None and engine.go_out(self.player_id, plan):
                return True

        while view.can(LAY_OFF):
            found = find_lay_off(view.hand, view.table)
            if found is None:
                break
            card, meld, position = found
            if not engine.lay_off(self.player_id, card.id, meld.id, position):
                break
            if self._turn_over(engine, round_number):
                return True
            view = self.view(engine)

        if view.can(SKIP_LAY_DOWN):
            engine.skip_lay_down(self.player_id)
            view = self.view(engine)
        if view.can(END_TURN_STUCK):
            engine.end_turn_stuck(self.player_id)
        elif view.can(DISCARD):
            engine.discard(self.player_id, least_useful(view.hand).id)
        return True


def play_game(
    engine: GameEngine, players: Dict[str, NaivePlayer], max_turns: int = 2000
) -> bool:
    """Drive a game between automated players.  Returns True if the game finished."""
    for _ in range(max_turns):
        if engine.is_over:
            return True
        snapshot = engine.get_snapshot()
        seats = [player.id for player in snapshot.players]
        current = snapshot.current_player_index
        # everybody else gets a chance at the discard before the current player draws
        for player_id in seats[current + 1 :] + seats[:current]:
            players[player_id].consider_may_i(engine)
        if not players[seats[current]].take_turn(engine):
            log.warning("Game %s stalled on %s's turn", engine.game_id, seats[current])
            return False
    return engine.is_over
