import logging

from mayi.game import GameEngine, Listener
from mayi.players import NaivePlayer, play_game

import click


class PrintingListener(Listener):
    def publish_action(self, action, snapshot):
        print("  - %s" % action)


class ScoreListener(Listener):
    def publish_action(self, action, snapshot):
        if action.deal is not None:
            print("Round %d: %s" % (action.round_number, action.deal))
        elif action.round_end is not None:
            print(
                "  %s went out ;; %s"
                % (
                    action.round_end.winner_id,
                    " ".join(
                        "%s=%d/%d" % (p.id, action.round_end.scores[p.id], p.total_score)
                        for p in snapshot.players
                    ),
                )
            )
        elif action.game_end is not None:
            print("Winners: %s" % ", ".join(action.game_end))


class ListenerParam(click.ParamType):
    name = "listener"

    def convert(self, value, param, ctx):
        if value == "print":
            return PrintingListener()
        elif value == "scores":
            return ScoreListener()
        else:
            self.fail("%s is not a valid listener" % value, param, ctx)


@click.group()
@click.option("-s", "--seed", type=int, default=0)
@click.option("-v", "--verbose", is_flag=True, default=False)
@click.option("-L", "--listener", type=ListenerParam(), multiple=True)
@click.pass_context
def cli(ctx, seed, verbose, listener):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["seed"] = seed
    ctx.obj["listeners"] = list(listener) or [ScoreListener()]


@cli.command()
@click.pass_context
@click.argument("games", type=int)
@click.argument("players", type=click.IntRange(GameEngine.MIN_PLAYERS, GameEngine.MAX_PLAYERS))
@click.option("-t", "--max-turns", type=int, default=2000)
@click.option("--save", type=click.Path(dir_okay=False, writable=True), default=None)
def play(ctx, games, players, max_turns, save):
    engine = None
    for game in range(games):
        engine = GameEngine.create_game(
            ["Bot %d" % k for k in range(players)],
            seed=ctx.obj["seed"] + game,
            listeners=ctx.obj["listeners"],
        )
        bots = {player.id: NaivePlayer(player.id) for player in engine.players}
        if not play_game(engine, bots, max_turns=max_turns):
            print("Game %d stopped before the end of round %d" % (game, engine.round.round_number))
        print(
            "Game %d totals: %s"
            % (game, " ".join("%s=%d" % (p.id, p.total_score) for p in engine.players))
        )
    if save and engine is not None:
        with open(save, "w") as fp:
            fp.write(engine.to_json())


@cli.command()
@click.argument("snapshot_file", type=click.File("r"))
@click.option("-p", "--player", default=None)
def inspect(snapshot_file, player):
    try:
        engine = GameEngine.from_json(snapshot_file.read())
    except GameEngine.Error as e:
        raise click.ClickException(str(e))

    snapshot = engine.get_snapshot()
    print(
        "Game %s: %s, round %d (%s), %s"
        % (snapshot.game_id, snapshot.phase, snapshot.round_number, snapshot.contract, snapshot.round_state)
    )
    print(
        "Stock: %d ;; discard: %s"
        % (len(snapshot.stock), " ".join(map(str, snapshot.discard[:5])) or "-")
    )
    for meld in snapshot.table:
        print("  %s %s: %s" % (meld.id, meld.owner_id, meld))
    for p in snapshot.players:
        print(
            "  %s %-12s cards=%-2d down=%-5s total=%d"
            % (p.id, p.name, len(p.hand), p.is_down, p.total_score)
        )
    if snapshot.winners:
        print("Winners: %s" % ", ".join(snapshot.winners))

    if player is not None:
        try:
            view = engine.get_player_view(player)
        except GameEngine.PlayerNotFound as e:
            raise click.ClickException(str(e))
        print("%s holds %s" % (view.player_id, " ".join(map(str, view.hand))))
        print("Available: %s" % (", ".join(view.available_actions) or "-"))


if __name__ == "__main__":
    cli()
