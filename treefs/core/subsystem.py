"""
Subsystem Lifecycle

Base class for long-lived components that go through

    UNREGISTERED -> initialize() -> INITIALIZED -> start() -> RUNNING
                                                -> stop() / cleanup() -> STOPPED

Operations guard themselves with ``require_ready()``.
"""

from abc import ABC, abstractmethod
from enum import Enum, auto

from treefs.exceptions import SubsystemStateError
from treefs.logger import Logger, get_logger


class SubsystemState(Enum):
    """Lifecycle state of a subsystem."""
    UNREGISTERED = auto()
    INITIALIZED = auto()
    RUNNING = auto()
    STOPPED = auto()
    ERROR = auto()


_READY = (SubsystemState.INITIALIZED, SubsystemState.RUNNING)


class Subsystem(ABC):
    """
    A named component with a lifecycle state and its own logger.

    Subclasses implement ``initialize()`` and set INITIALIZED when done;
    ``cleanup()`` releases whatever ``initialize()`` built.

    Can be used as a context manager; leaving the block runs cleanup().
    """

    def __init__(self, name: str):
        self._name = name
        self._logger = get_logger(name)
        self._state = SubsystemState.UNREGISTERED

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SubsystemState:
        return self._state

    @property
    def logger(self) -> Logger:
        return self._logger

    def set_state(self, state: SubsystemState) -> None:
        if state != self._state:
            self._logger.debug(
                "Lifecycle transition",
                context={'from': self._state.name, 'to': state.name}
            )
        self._state = state

    def require_ready(self) -> None:
        """
        Raises:
            SubsystemStateError: Not initialized yet, or already stopped
        """
        if self._state not in _READY:
            raise SubsystemStateError(self._name, self._state.name)

    def health_check(self) -> bool:
        return self._state in _READY

    @abstractmethod
    def initialize(self) -> None:
        """Build the subsystem's state; must end in INITIALIZED."""

    def start(self) -> None:
        """Move an initialized subsystem to RUNNING."""
        self.require_ready()
        self.set_state(SubsystemState.RUNNING)

    def stop(self) -> None:
        self.set_state(SubsystemState.STOPPED)

    def cleanup(self) -> None:
        """Release what initialize() built. The base class holds nothing."""
        self.stop()

    def __enter__(self) -> 'Subsystem':
        if self._state == SubsystemState.UNREGISTERED:
            self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
