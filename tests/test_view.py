from mayi.common import Card
from mayi.game import GameEngine
from mayi.meld import Meld
from mayi.turn import TurnMachine
from mayi.view import (
    DISCARD,
    DRAW_STOCK,
    END_TURN_STUCK,
    GO_OUT,
    LAY_DOWN,
    LAY_OFF,
    MAY_I,
    PICK_UP_DISCARD,
    REORDER_HAND,
    SKIP_LAY_DOWN,
    SWAP_JOKER,
)


NAMES = ["Ann", "Bob", "Cat", "Dan"]


def test_view_hides_other_hands():
    engine = GameEngine.create_game(NAMES, seed=2, game_id="g")
    view = engine.get_player_view("player-0")
    snapshot = engine.get_snapshot()
    assert view.game_id == "g"
    assert view.name == "Ann"
    assert view.hand == snapshot.player("player-0").hand
    assert [o.id for o in view.opponents] == ["player-1", "player-2", "player-3"]
    assert all(o.hand_count == 11 for o in view.opponents)
    assert not hasattr(view.opponents[0], "hand")
    assert view.discard_top == snapshot.discard[0]
    assert view.discard_size == 1
    assert view.stock_size == len(snapshot.stock)
    assert view.current_player_id == "player-1"
    assert not view.is_my_turn


def test_view_is_a_copy():
    engine = GameEngine.create_game(NAMES, seed=2)
    engine.get_player_view("player-0").hand.clear()
    assert len(engine.get_player_view("player-0").hand) == 11


def test_actions_before_the_draw():
    engine = GameEngine.create_game(NAMES, seed=2)
    current = engine.get_player_view("player-1")
    assert current.is_my_turn
    assert current.turn_phase == TurnMachine.AWAITING_DRAW
    assert current.available_actions == [DRAW_STOCK, PICK_UP_DISCARD, REORDER_HAND]
    other = engine.get_player_view("player-2")
    assert other.available_actions == [MAY_I, REORDER_HAND]
    assert other.may_i_card == other.discard_top

    engine.call_may_i("player-2")
    assert engine.get_player_view("player-2").available_actions == [REORDER_HAND]
    assert engine.get_player_view("player-3").can(MAY_I)


def test_actions_after_the_draw():
    engine = GameEngine.create_game(NAMES, seed=2)
    engine.draw_from_stock("player-1")
    current = engine.get_player_view("player-1")
    assert current.turn_phase == TurnMachine.DRAWN
    assert current.available_actions == [SKIP_LAY_DOWN, LAY_DOWN, REORDER_HAND]
    assert not current.can(LAY_OFF)
    other = engine.get_player_view("player-2")
    assert other.may_i_card is None
    assert other.available_actions == [REORDER_HAND]

    engine.skip_lay_down("player-1")
    assert engine.get_player_view("player-1").available_actions == [DISCARD, REORDER_HAND]


def test_actions_when_down():
    engine = GameEngine.create_game(NAMES, starting_round=6, seed=2)
    round_ = engine.round
    player_id = round_.current_player.id
    table = [Meld("meld-6-0", Meld.RUN, [Card.deserialize(s) for s in ("5h", "Joker", "7h", "8h")], player_id)]
    round_.turn = TurnMachine(
        player_id,
        [Card.deserialize("6h"), Card.deserialize("Kd")],
        round_.stock,
        round_.discard,
        table,
        6,
        is_down=True,
        has_drawn=True,
        state=TurnMachine.DRAWN,
    )
    round_.may_i = None
    actions = engine.get_player_view(player_id).available_actions
    assert actions == [SKIP_LAY_DOWN, LAY_OFF, GO_OUT, SWAP_JOKER, REORDER_HAND]

    round_.turn = TurnMachine(
        player_id,
        [Card.deserialize("Kd")],
        round_.stock,
        round_.discard,
        table,
        6,
        is_down=True,
        has_drawn=True,
        state=TurnMachine.AWAITING_DISCARD,
    )
    actions = engine.get_player_view(player_id).available_actions
    assert DISCARD not in actions
    assert END_TURN_STUCK in actions


def test_down_player_cannot_pick_up_discard():
    engine = GameEngine.create_game(NAMES, seed=2)
    engine.round.turn.is_down = True
    assert engine.get_player_view("player-1").available_actions == [DRAW_STOCK, REORDER_HAND]


def test_last_round_actions_right_after_lay_down():
    engine = GameEngine.create_game(NAMES, starting_round=6, seed=2)
    round_ = engine.round
    player_id = round_.current_player.id
    table = [Meld("meld-6-0", Meld.RUN, [Card.deserialize(s) for s in ("5h", "Joker", "7h", "8h")], player_id)]
    round_.turn = TurnMachine(
        player_id,
        [Card.deserialize("9h"), Card.deserialize("Kd")],
        round_.stock,
        round_.discard,
        table,
        6,
        is_down=True,
        laid_down_this_turn=True,
        has_drawn=True,
        state=TurnMachine.DRAWN,
    )
    round_.may_i = None
    actions = engine.get_player_view(player_id).available_actions
    assert actions == [SKIP_LAY_DOWN, GO_OUT, REORDER_HAND]
