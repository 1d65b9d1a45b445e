import copy
import json
import logging

import pytest

from mayi.common import Card
from mayi.game import Action, GameEngine, Listener
from mayi.meld import Meld, MeldProposal
from mayi.players import NaivePlayer, play_game
from mayi.turn import TurnMachine


NAMES = ["Ann", "Bob", "Cat", "Dan"]


class RecordingListener(Listener):
    def __init__(self):
        self.actions = []

    def publish_action(self, action, snapshot):
        self.actions.append(action)


class ConservationListener(Listener):
    def __init__(self, deck_size):
        self.deck_size = deck_size
        self.checked = 0

    def publish_action(self, action, snapshot):
        ids = [card.id for player in snapshot.players for card in player.hand]
        ids += [card.id for card in snapshot.stock]
        ids += [card.id for card in snapshot.discard]
        ids += [card.id for meld in snapshot.table for card in meld.cards]
        assert len(ids) == self.deck_size, action
        assert len(set(ids)) == self.deck_size, action
        self.checked += 1


def rig_go_out(engine):
    """Give the current player one card that lays off onto a set, ready to go out."""
    round_ = engine.round
    player_id = round_.current_player.id
    table = [Meld("meld-x", Meld.SET, [Card.deserialize(s, id="t-" + s) for s in ("9c", "9d", "9h")], player_id)]
    round_.turn = TurnMachine(
        player_id,
        [Card.deserialize("9s", id="t-9s")],
        round_.stock,
        round_.discard,
        table,
        round_.round_number,
        is_down=True,
        has_drawn=True,
        state=TurnMachine.DRAWN,
    )
    round_.may_i = None
    return player_id


class TestCreateGame:
    def test_players(self):
        engine = GameEngine.create_game(NAMES, seed=1, game_id="g1")
        snapshot = engine.get_snapshot()
        assert snapshot.game_id == "g1"
        assert snapshot.phase == GameEngine.ROUND_ACTIVE
        assert [p.id for p in snapshot.players] == ["player-0", "player-1", "player-2", "player-3"]
        assert [p.name for p in snapshot.players] == NAMES
        assert snapshot.round_number == 1
        assert snapshot.dealer_index == 0
        assert snapshot.current_player_id == "player-1"
        assert snapshot.turn_phase == TurnMachine.AWAITING_DRAW
        assert snapshot.may_i["state"] == "open"
        assert snapshot.winners == []

    def test_options(self):
        engine = GameEngine.create_game(NAMES, starting_round=4, dealer_index=3, seed=1)
        snapshot = engine.get_snapshot()
        assert snapshot.round_number == 4
        assert (snapshot.contract.sets, snapshot.contract.runs) == (3, 0)
        assert snapshot.current_player_id == "player-0"
        assert len(snapshot.game_id) == 32

    @pytest.mark.parametrize("kwargs", [
        dict(player_names=["a", "b"]),
        dict(player_names=["p%d" % k for k in range(9)]),
        dict(player_names=NAMES, starting_round=0),
        dict(player_names=NAMES, starting_round=7),
        dict(player_names=NAMES, dealer_index=4),
        dict(player_names=NAMES, dealer_index=-1),
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(GameEngine.InvalidConfiguration):
            GameEngine.create_game(**kwargs)

    def test_seeded_deals_repeat(self):
        a = GameEngine.create_game(NAMES, seed=7).get_snapshot()
        b = GameEngine.create_game(NAMES, seed=7).get_snapshot()
        assert a.players == b.players
        assert a.stock == b.stock


def test_snapshot_is_a_copy():
    engine = GameEngine.create_game(NAMES, seed=1)
    snapshot = engine.get_snapshot()
    snapshot.players[0].hand.clear()
    snapshot.stock.clear()
    fresh = engine.get_snapshot()
    assert len(fresh.players[0].hand) == 11
    assert fresh.stock


def test_commands():
    engine = GameEngine.create_game(NAMES, seed=3)
    result = engine.draw_from_stock("player-1")
    assert result.accepted
    assert result.error is None
    assert result.snapshot.turn_phase == TurnMachine.DRAWN
    assert result.snapshot.may_i is None
    assert engine.skip_lay_down("player-1")
    card_id = result.snapshot.player("player-1").hand[0].id
    result = engine.discard("player-1", card_id)
    assert result
    assert result.snapshot.discard[0].id == card_id
    assert result.snapshot.current_player_id == "player-2"
    assert result.snapshot.may_i["discardedByPlayerId"] == "player-1"


def test_rejection_leaves_state_alone():
    engine = GameEngine.create_game(NAMES, seed=3)
    before = engine.get_snapshot()
    result = engine.draw_from_stock("player-2")
    assert not result.accepted
    assert result.error
    assert result.snapshot.last_error == result.error
    assert result.snapshot == before
    again = engine.draw_from_stock("player-2")
    assert not again.accepted
    assert again.error == result.error
    assert again.snapshot == before
    assert not engine.discard("player-1", "nope")
    assert engine.get_snapshot() == before


def test_last_error_is_not_state():
    engine = GameEngine.create_game(NAMES, seed=3)
    a = engine.get_snapshot()
    b = copy.deepcopy(a)
    b.last_error = "something went wrong"
    assert a == b


def test_noop_reorder_is_not_accepted():
    engine = GameEngine.create_game(NAMES, seed=3)
    hand = [card.id for card in engine.get_snapshot().player("player-0").hand]
    result = engine.reorder_hand("player-0", hand)
    assert not result.accepted
    assert result.error is None
    assert engine.reorder_hand("player-0", list(reversed(hand)))


def test_lay_down_accepts_dicts():
    engine = GameEngine.create_game(NAMES, seed=3)
    engine.draw_from_stock("player-1")
    before = engine.get_snapshot()
    result = engine.lay_down("player-1", [{"type": "set", "cardIds": ["nope"]}, {"bogus": True}])
    assert not result
    assert result.snapshot == before
    result = engine.lay_down("player-1", [MeldProposal.set("a", "b", "c")])
    assert not result


def test_may_i_through_the_engine():
    engine = GameEngine.create_game(NAMES, seed=3)
    assert not engine.call_may_i("player-1")
    assert engine.call_may_i("player-3")
    assert not engine.call_may_i("player-3")
    assert engine.call_may_i("player-2")
    result = engine.draw_from_stock("player-1")
    assert len(result.snapshot.player("player-2").hand) == 13
    assert len(result.snapshot.player("player-3").hand) == 11


def test_round_advances():
    listener = RecordingListener()
    engine = GameEngine.create_game(NAMES, seed=5, listeners=[listener])
    player_id = rig_go_out(engine)
    result = engine.lay_off(player_id, "t-9s", "meld-x")
    assert result
    snapshot = result.snapshot
    assert snapshot.phase == GameEngine.ROUND_ACTIVE
    assert snapshot.round_number == 2
    assert snapshot.dealer_index == 1
    assert snapshot.current_player_id == "player-2"
    assert all(len(p.hand) == 11 for p in snapshot.players)
    assert all(not p.is_down for p in snapshot.players)
    assert snapshot.table == []
    (record,) = snapshot.round_history
    assert record.round_number == 1
    assert record.winner_id == player_id
    assert record.scores[player_id] == 0
    assert snapshot.player(player_id).total_score == 0
    assert all(p.total_score > 0 for p in snapshot.players if p.id != player_id)

    kinds = [(a.deal is not None, a.command is not None, a.round_end is not None) for a in listener.actions]
    assert kinds == [(True, False, False), (False, True, False), (False, False, True), (True, False, False)]
    assert str(listener.actions[0]) == "Dealing round 1: 2 sets / 0 runs"


def test_game_ends_after_the_last_round():
    listener = RecordingListener()
    engine = GameEngine.create_game(NAMES, starting_round=6, seed=5, listeners=[listener])
    player_id = rig_go_out(engine)
    result = engine.lay_off(player_id, "t-9s", "meld-x")
    assert result
    assert engine.is_over
    assert result.snapshot.phase == GameEngine.GAME_END
    assert result.snapshot.winners == [player_id]
    assert engine.winners == [player_id]
    assert listener.actions[-1].game_end == [player_id]
    assert str(listener.actions[-1]) == "Game over, won by %s" % player_id

    before = engine.get_snapshot()
    for command in (
        lambda: engine.draw_from_stock("player-0"),
        lambda: engine.call_may_i("player-2"),
        lambda: engine.reorder_hand("player-0", []),
    ):
        result = command()
        assert not result.accepted
        assert "over" in result.error
        assert result.snapshot == before
    view = engine.get_player_view("player-0")
    assert view.available_actions == []
    assert view.winners == [player_id]


def test_cards_are_conserved_in_play():
    engine = GameEngine.create_game(NAMES, seed=11)
    listener = ConservationListener(108)
    engine.add_listener(listener)
    bots = {player.id: NaivePlayer(player.id) for player in engine.players}
    finished = play_game(engine, bots, max_turns=400)
    assert listener.checked > 50
    if finished:
        assert len(engine.round_history) == 6
        assert engine.winners


class TestPersistence:
    def test_round_trip(self):
        engine = GameEngine.create_game(NAMES, seed=9, game_id="saved")
        engine.call_may_i("player-3")
        restored = GameEngine.from_json(engine.to_json())
        assert restored.get_snapshot() == engine.get_snapshot()
        for e in (engine, restored):
            e.draw_from_stock("player-1")
            e.skip_lay_down("player-1")
        assert restored.get_snapshot() == engine.get_snapshot()
        assert restored.get_persisted_snapshot() == engine.get_persisted_snapshot()

    def test_persisted_shape(self):
        data = GameEngine.create_game(NAMES, seed=9, game_id="saved").get_persisted_snapshot()
        assert data["version"] == 1
        assert data["gameId"] == "saved"
        assert data["phase"] == GameEngine.ROUND_ACTIVE
        assert data["round"]["turn"]["state"] == TurnMachine.AWAITING_DRAW
        assert data["round"]["mayI"]["state"] == "open"
        assert json.loads(json.dumps(data)) == data

    def test_game_id_override(self):
        data = GameEngine.create_game(NAMES, seed=9, game_id="saved").get_persisted_snapshot()
        assert GameEngine.from_persisted_snapshot(data, game_id="copy").game_id == "copy"
        assert GameEngine.from_json(json.dumps(data)).game_id == "saved"

    def test_malformed(self):
        data = GameEngine.create_game(NAMES, seed=9).get_persisted_snapshot()
        bad_rank = copy.deepcopy(data)
        bad_rank["players"][0]["hand"][0]["rank"] = "Z"
        missing = copy.deepcopy(data)
        del missing["round"]
        for bad in ({}, {"version": 2}, {"version": 1}, bad_rank, missing, []):
            with pytest.raises(GameEngine.InvalidConfiguration):
                GameEngine.from_persisted_snapshot(bad)
        with pytest.raises(GameEngine.InvalidConfiguration):
            GameEngine.from_json("{not json")

    def test_duplicate_cards_warn(self, caplog):
        data = GameEngine.create_game(NAMES, seed=9).get_persisted_snapshot()
        data["round"]["stock"][0] = data["round"]["discard"][0]
        with caplog.at_level(logging.WARNING, logger="mayi.game"):
            engine = GameEngine.from_persisted_snapshot(data)
        assert "duplicate card ids" in caplog.text
        assert data["round"]["discard"][0]["id"] in caplog.text
        assert engine.draw_from_stock("player-1")


def test_player_view_errors():
    engine = GameEngine.create_game(NAMES, seed=1)
    with pytest.raises(GameEngine.PlayerNotFound):
        engine.get_player_view("player-9")


def test_action_str():
    assert str(Action(1)) == "Unknown action"
