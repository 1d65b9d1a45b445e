"""The game engine: six rounds of May I between three to eight players.

Gameplay commands never raise.  Each returns a CommandResult whose `accepted` flag comes
from comparing the game snapshot before and after the command; a rejected command leaves
the snapshot unchanged and only sets the advisory `last_error`.  Exceptions are reserved
for setting a game up wrongly: bad configuration, unknown players, unreadable snapshots.
"""

from abc import abstractmethod, ABCMeta
from collections import Counter
import copy
from dataclasses import dataclass, field
import json
import logging
import random
from typing import Iterable, List, Optional, Sequence, Tuple, Union
import uuid

from .action import (
    CallMayI,
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    EndTurnStuck,
    GoOut,
    LayDown,
    LayOff,
    Outcome,
    ReorderHand,
    SkipLayDown,
    SwapJoker,
)
from .common import Card, Rank, Suit
from .contract import CONTRACTS, Contract, FIRST_ROUND, LAST_ROUND
from .meld import Meld, MeldProposal
from .round import Player, RoundMachine, RoundRecord
from .view import PlayerView, build_player_view


log = logging.getLogger(__name__)


# raised by the from_dict constructors on data that does not describe a game
MALFORMED_SNAPSHOT_ERRORS = (
    KeyError,
    TypeError,
    ValueError,
    Rank.Error,
    Suit.Error,
    Meld.Error,
    Contract.Error,
)


@dataclass
class GameSnapshot:
    game_id: str
    phase: str
    round_number: int
    contract: Contract
    round_state: str
    dealer_index: int
    current_player_index: int
    players: List[Player]
    stock: List[Card]
    discard: List[Card]
    table: List[Meld]
    turn_phase: Optional[str]
    has_drawn: bool
    laid_down_this_turn: bool
    may_i: Optional[dict]
    round_history: List[RoundRecord]
    winners: List[str]
    # advisory only, two snapshots differing just in last_error are the same state
    last_error: Optional[str] = field(default=None, compare=False)

    @property
    def current_player_id(self) -> str:
        return self.players[self.current_player_index].id

    def player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None


@dataclass
class CommandResult:
    accepted: bool
    snapshot: GameSnapshot
    error: Optional[str] = None

    def __bool__(self):
        return self.accepted


@dataclass
class Action:
    round_number: int
    command: Optional[object] = None
    deal: Optional[Contract] = None
    round_end: Optional[RoundRecord] = None
    game_end: Optional[List[str]] = None

    def __str__(self):
        if self.deal is not None:
            return "Dealing round %d: %s" % (self.round_number, self.deal)
        if self.command is not None:
            return str(self.command)
        if self.round_end is not None:
            return str(self.round_end)
        if self.game_end is not None:
            return "Game over, won by %s" % ", ".join(self.game_end)
        return "Unknown action"


class Listener(metaclass=ABCMeta):
    @abstractmethod
    def publish_action(self, action: Action, snapshot: GameSnapshot) -> None:
        pass


class GameEngine:
    class Error(Exception):
        pass

    class InvalidConfiguration(Error):
        pass

    class PlayerNotFound(Error):
        pass

    ROUND_ACTIVE = "ROUND_ACTIVE"
    GAME_END = "GAME_END"

    MIN_PLAYERS = 3
    MAX_PLAYERS = 8

    SNAPSHOT_VERSION = 1

    @classmethod
    def create_game(
        cls,
        player_names: Sequence[str],
        starting_round: int = FIRST_ROUND,
        dealer_index: int = 0,
        game_id: Optional[str] = None,
        seed: Optional[int] = None,
        listeners: Optional[List[Listener]] = None,
    ) -> "GameEngine":
        player_names = list(player_names)
        if not cls.MIN_PLAYERS <= len(player_names) <= cls.MAX_PLAYERS:
            raise cls.InvalidConfiguration(
                "May I needs %d to %d players, got %d"
                % (cls.MIN_PLAYERS, cls.MAX_PLAYERS, len(player_names))
            )
        if starting_round not in CONTRACTS:
            raise cls.InvalidConfiguration(
                "Starting round must be between %d and %d, got %s"
                % (FIRST_ROUND, LAST_ROUND, starting_round)
            )
        if not isinstance(dealer_index, int) or not 0 <= dealer_index < len(player_names):
            raise cls.InvalidConfiguration("Dealer index %s is out of range" % dealer_index)

        players = [Player("player-%d" % index, name) for index, name in enumerate(player_names)]
        engine = cls(game_id or uuid.uuid4().hex, players, random.Random(seed), listeners=listeners)
        engine._start_round(starting_round, dealer_index)
        return engine

    def __init__(
        self,
        game_id: str,
        players: List[Player],
        rng: random.Random,
        round_: Optional[RoundMachine] = None,
        phase: str = ROUND_ACTIVE,
        round_history: Optional[List[RoundRecord]] = None,
        listeners: Optional[List[Listener]] = None,
    ) -> None:
        self.game_id = game_id
        self.players = players
        self.rng = rng
        self.round = round_
        self.phase = phase
        self.round_history: List[RoundRecord] = round_history or []
        self.last_error: Optional[str] = None
        self.__listeners = list(listeners or [])

    def add_listener(self, listener: Listener) -> None:
        self.__listeners.append(listener)

    @property
    def is_over(self) -> bool:
        return self.phase == self.GAME_END

    @property
    def winners(self) -> List[str]:
        """Ids of the players with the lowest total once the game is over; ties share the win."""
        if not self.is_over:
            return []
        lowest = min(player.total_score for player in self.players)
        return [player.id for player in self.players if player.total_score == lowest]

    def _publish(self, action: Action) -> None:
        if not self.__listeners:
            return
        snapshot = self.get_snapshot()
        for listener in self.__listeners:
            listener.publish_action(action, snapshot)

    def _start_round(self, round_number: int, dealer_index: int) -> None:
        self.round = RoundMachine(round_number, self.players, dealer_index, self.rng)
        self.round.deal()
        self.phase = self.ROUND_ACTIVE
        self._publish(Action(round_number, deal=self.round.contract))

    def _finish_round(self) -> None:
        record = self.round.record
        self.round_history.append(record)
        self._publish(Action(record.round_number, round_end=record))
        if record.round_number >= LAST_ROUND:
            self.phase = self.GAME_END
            log.info("Game %s over, won by %s", self.game_id, ", ".join(self.winners))
            self._publish(Action(record.round_number, game_end=self.winners))
            return
        self._start_round(record.round_number + 1, (self.round.dealer_index + 1) % len(self.players))

    # read surface

    def _snapshot(self) -> GameSnapshot:
        round_ = self.round
        turn = round_.turn
        return copy.deepcopy(
            GameSnapshot(
                game_id=self.game_id,
                phase=self.phase,
                round_number=round_.round_number,
                contract=round_.contract,
                round_state=round_.state,
                dealer_index=round_.dealer_index,
                current_player_index=round_.current_player_index,
                players=self.players,
                stock=round_.stock,
                discard=round_.discard,
                table=round_.table,
                turn_phase=turn.state if turn else None,
                has_drawn=turn.has_drawn if turn else False,
                laid_down_this_turn=turn.laid_down_this_turn if turn else False,
                may_i=round_.may_i.to_dict() if round_.may_i else None,
                round_history=self.round_history,
                winners=self.winners,
                last_error=self.last_error,
            )
        )

    def get_snapshot(self) -> GameSnapshot:
        """A deep copy of the whole game state; changing it never affects the engine."""
        return self._snapshot()

    def get_player_view(self, player_id: str) -> PlayerView:
        if self.round.player(player_id) is None:
            raise self.PlayerNotFound("No player %s in game %s" % (player_id, self.game_id))
        return copy.deepcopy(
            build_player_view(
                self.game_id, self.phase, self.round, player_id, self.round_history, self.winners
            )
        )

    # command surface

    def _command(self, event) -> CommandResult:
        before = self._snapshot()
        if self.is_over:
            outcome = Outcome.rejected("Game %s is over" % self.game_id)
        else:
            outcome = self.round.send(event)
        self.last_error = outcome.error
        accepted = self._snapshot() != before
        if accepted:
            self._publish(Action(self.round.round_number, command=event))
            if self.round.state == RoundMachine.SCORING:
                self._finish_round()
        elif outcome.error:
            log.debug("Game %s rejected %s: %s", self.game_id, event, outcome.error)
        return CommandResult(accepted, self._snapshot(), outcome.error)

    def draw_from_stock(self, player_id: str) -> CommandResult:
        return self._command(DrawFromStock(player_id))

    def draw_from_discard(self, player_id: str) -> CommandResult:
        return self._command(DrawFromDiscard(player_id))

    def skip_lay_down(self, player_id: str) -> CommandResult:
        return self._command(SkipLayDown(player_id))

    def lay_down(self, player_id: str, melds: Iterable[Union[MeldProposal, dict]]) -> CommandResult:
        proposals = []
        for meld in melds:
            if isinstance(meld, dict):
                meld = MeldProposal.from_dict(meld)
            proposals.append(meld)
        return self._command(LayDown(player_id, tuple(proposals)))

    def lay_off(
        self, player_id: str, card_id: str, meld_id: str, position: Optional[str] = None
    ) -> CommandResult:
        return self._command(LayOff(player_id, card_id, meld_id, position))

    def swap_joker(
        self, player_id: str, joker_card_id: str, meld_id: str, replacement_card_id: str
    ) -> CommandResult:
        return self._command(SwapJoker(player_id, joker_card_id, meld_id, replacement_card_id))

    def discard(self, player_id: str, card_id: str) -> CommandResult:
        return self._command(Discard(player_id, card_id))

    def call_may_i(self, player_id: str) -> CommandResult:
        return self._command(CallMayI(player_id))

    def end_turn_stuck(self, player_id: str) -> CommandResult:
        return self._command(EndTurnStuck(player_id))

    def go_out(self, player_id: str, lay_offs: Iterable[Tuple[str, str]]) -> CommandResult:
        return self._command(GoOut(player_id, tuple(tuple(pair) for pair in lay_offs)))

    def reorder_hand(self, player_id: str, card_ids: Iterable[str]) -> CommandResult:
        return self._command(ReorderHand(player_id, tuple(card_ids)))

    # persistence

    def get_persisted_snapshot(self) -> dict:
        version, state, gauss = self.rng.getstate()
        return {
            "version": self.SNAPSHOT_VERSION,
            "gameId": self.game_id,
            "phase": self.phase,
            "players": [player.to_dict() for player in self.players],
            "round": self.round.to_dict(),
            "roundHistory": [record.to_dict() for record in self.round_history],
            "rngState": [version, list(state), gauss],
        }

    @classmethod
    def from_persisted_snapshot(
        cls, data: dict, game_id: Optional[str] = None, listeners: Optional[List[Listener]] = None
    ) -> "GameEngine":
        if not isinstance(data, dict) or data.get("version") != cls.SNAPSHOT_VERSION:
            raise cls.InvalidConfiguration("Unsupported game snapshot")
        try:
            players = [Player.from_dict(p) for p in data["players"]]
            rng = random.Random()
            version, state, gauss = data["rngState"]
            rng.setstate((version, tuple(state), gauss))
            round_ = RoundMachine.from_dict(data["round"], players, rng)
            engine = cls(
                game_id or data["gameId"],
                players,
                rng,
                round_=round_,
                phase=data["phase"],
                round_history=[RoundRecord.from_dict(r) for r in data["roundHistory"]],
                listeners=listeners,
            )
        except MALFORMED_SNAPSHOT_ERRORS as e:
            raise cls.InvalidConfiguration("Malformed game snapshot: %s" % e)
        engine._warn_on_duplicate_cards()
        return engine

    def _warn_on_duplicate_cards(self) -> None:
        counts = Counter(card.id for card in self.round.iter_cards())
        duplicates = sorted(card_id for card_id, count in counts.items() if count > 1)
        if duplicates:
            log.warning(
                "Game %s restored with duplicate card ids: %s", self.game_id, ", ".join(duplicates)
            )

    def to_json(self) -> str:
        return json.dumps(self.get_persisted_snapshot())

    @classmethod
    def from_json(cls, s: str, game_id: Optional[str] = None) -> "GameEngine":
        try:
            data = json.loads(s)
        except ValueError as e:
            raise cls.InvalidConfiguration("Game snapshot is not JSON: %s" % e)
        return cls.from_persisted_snapshot(data, game_id=game_id)
