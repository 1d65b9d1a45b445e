from .naive_player import NaivePlayer, play_game
