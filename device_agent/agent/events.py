from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from device_agent.agent.views import BaseAction, TaskOutcome


@dataclass
class Event:
    """Base class for notifications published on the agent's event bus."""
    turn: int
    task_id: str = ""
    timestamp: float = field(default_factory=time.monotonic)


@dataclass
class LogLine(Event):
    """Human-readable progress line for the presentation layer."""
    message: str = field(default="")
    level: int = field(default=logging.INFO)


@dataclass
class StatusChanged(Event):
    """Emitted whenever the externally observed running flag flips."""
    running: bool = field(default=False)


@dataclass
class TurnCompleted(Event):
    """Emitted after a turn that produced and executed an action."""
    action: Optional[BaseAction] = field(default=None)
    success: bool = field(default=False)


@dataclass
class TaskFinished(Event):
    """Emitted once per task, after the loop has returned to idle."""
    outcome: Optional[TaskOutcome] = field(default=None)
    message: Optional[str] = field(default=None)


__all__ = [
    "Event",
    "LogLine",
    "StatusChanged",
    "TurnCompleted",
    "TaskFinished",
]
