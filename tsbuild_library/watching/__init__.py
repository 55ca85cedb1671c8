"""Watch mode for the build pipeline."""

from .controller import SourceEventHandler
from .controller import WatchController
from .controller import WatchState
from .controller import is_ignored

__all__ = [
    "SourceEventHandler",
    "WatchController",
    "WatchState",
    "is_ignored",
]
