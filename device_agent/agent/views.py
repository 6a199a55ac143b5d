from __future__ import annotations

import asyncio
import enum
import uuid
from dataclasses import dataclass, field
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Literal

DEFAULT_WAIT_MS = 2000
DEFAULT_WAIT_MESSAGE = 'Waiting...'


class ActionKind(str, enum.Enum):
    TAP = 'tap'
    TYPE = 'type'
    SCROLL = 'scroll'
    WAIT = 'wait'
    BACK = 'back'
    HOME = 'home'
    NAVIGATE = 'navigate'


class BaseAction(BaseModel):
    """Fields shared by every canonical action, independent of its kind."""
    model_config = ConfigDict(frozen=True)

    is_complete: bool = False
    message: Optional[str] = None

    def describe(self) -> str:
        return self.kind  # type: ignore[attr-defined]


class TapAction(BaseAction):
    kind: Literal['tap'] = 'tap'
    x: int
    y: int

    def describe(self) -> str:
        return f'tap ({self.x}, {self.y})'


class TypeAction(BaseAction):
    kind: Literal['type'] = 'type'
    text: str = ''
    x: int = 0
    y: int = 0

    def describe(self) -> str:
        return f'type {self.text!r} at ({self.x}, {self.y})'


class ScrollAction(BaseAction):
    kind: Literal['scroll'] = 'scroll'
    direction: str = 'down'

    def describe(self) -> str:
        return f'scroll {self.direction}'


class WaitAction(BaseAction):
    kind: Literal['wait'] = 'wait'
    duration_ms: int = Field(DEFAULT_WAIT_MS, ge=0)

    def describe(self) -> str:
        return f'wait {self.duration_ms}ms'


class BackAction(BaseAction):
    kind: Literal['back'] = 'back'


class HomeAction(BaseAction):
    kind: Literal['home'] = 'home'


class NavigateAction(BaseAction):
    kind: Literal['navigate'] = 'navigate'
    url: str = ''

    def describe(self) -> str:
        return f'navigate {self.url}'


Action = Annotated[
    Union[TapAction, TypeAction, ScrollAction, WaitAction, BackAction, HomeAction, NavigateAction],
    Field(discriminator='kind'),
]


def default_action(is_complete: bool = False, message: Optional[str] = None) -> WaitAction:
    """The safe fallback used whenever a received reply cannot be decoded."""
    return WaitAction(
        duration_ms=DEFAULT_WAIT_MS,
        is_complete=is_complete,
        message=message or DEFAULT_WAIT_MESSAGE,
    )


class AgentStatus(enum.Enum):
    IDLE = 'IDLE'
    RUNNING = 'RUNNING'
    STOPPING = 'STOPPING'


class TaskOutcome(enum.Enum):
    COMPLETED = 'COMPLETED'
    EXHAUSTED = 'EXHAUSTED'
    STOPPED = 'STOPPED'
    FAILED = 'FAILED'


@dataclass
class TaskState:
    """Mutable run state of the single active task, owned by the Agent."""
    description: str
    running: bool = True
    turn_count: int = 0
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_first_turn(self) -> bool:
        return self.turn_count == 1


class AgentRunResult(BaseModel):
    task: str
    outcome: TaskOutcome
    turns: int
    message: Optional[str] = None
    duration_seconds: float = 0.0
