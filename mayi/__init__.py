from .game import Action, CommandResult, GameEngine, GameSnapshot, Listener
from .meld import MeldProposal
from .view import PlayerView

__all__ = (
    "Action",
    "CommandResult",
    "GameEngine",
    "GameSnapshot",
    "Listener",
    "MeldProposal",
    "PlayerView",
)
