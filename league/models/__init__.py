from league import db  # noqa: F401 - imported for model imports

from .game import Game
from .pick import Pick
from .point_adjustment import PointAdjustment
from .profile import Profile
from .result import Result

__all__ = [
    "Profile",
    "Game",
    "Pick",
    "Result",
    "PointAdjustment",
]
