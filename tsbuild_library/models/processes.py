"""Process lifecycle models."""

from enum import Enum


class ProcessState(str, Enum):
    """Supervised process lifecycle status.

    State transitions:
    - STARTING: Spawn requested, no pid yet
    - RUNNING: OS process alive
    - EXITED: Process exited on its own or after a graceful signal
    - KILLED: Process was forcibly terminated
    """

    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"
