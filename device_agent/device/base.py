from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

Point = Tuple[int, int]


class GlobalAction(str, enum.Enum):
    BACK = 'back'
    HOME = 'home'


@dataclass(frozen=True)
class EditableTarget:
    """Handle to the focused editable element, as reported by the device."""
    handle: Any
    text: str = ''
    description: str = ''


class DeviceController(ABC):
    """
    The device-automation capability the agent drives.

    Implementations own the connection to a real or fake device. Every call
    other than `screen_dimensions` may suspend; none of them is ever issued
    concurrently by the agent.
    """

    @abstractmethod
    async def capture_screen(self) -> bytes:
        """Return the current screen as PNG bytes; raise CaptureError when unavailable."""

    @abstractmethod
    async def dispatch_gesture(self, points: Sequence[Point], duration_ms: int) -> bool:
        """Synthesize a touch gesture through `points` over `duration_ms`."""

    @abstractmethod
    async def perform_global_action(self, action: GlobalAction) -> bool:
        ...

    @abstractmethod
    async def get_focused_editable_target(self) -> Optional[EditableTarget]:
        ...

    @abstractmethod
    async def set_text(self, target: EditableTarget, text: str) -> bool:
        """Replace the content of `target` with `text`."""

    @abstractmethod
    async def open_url(self, url: str) -> bool:
        """Ask the platform to open `url` in an external handler."""

    @abstractmethod
    def screen_dimensions(self) -> tuple[int, int]:
        """(width, height) of the screen in device pixels."""
