from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict

from device_agent.agent.views import (
    ActionKind,
    BackAction,
    BaseAction,
    HomeAction,
    NavigateAction,
    ScrollAction,
    TapAction,
    TypeAction,
    WaitAction,
)
from device_agent.device.base import GlobalAction
from device_agent.exceptions import DeviceError, ExecutionError

if TYPE_CHECKING:
    from device_agent.agent.settings import AgentSettings
    from device_agent.device.base import DeviceController

logger = logging.getLogger(__name__)


class ActionExecutor:
    """
    Realizes one canonical action on the device.

    `execute` reports success or failure and never raises; a failed action is
    not fatal to the loop.
    """

    def __init__(self, device: DeviceController, settings: AgentSettings):
        self.device = device
        self.settings = settings
        self._handlers: Dict[ActionKind, Callable[[BaseAction], Awaitable[bool]]] = {
            ActionKind.TAP: self._tap,
            ActionKind.TYPE: self._type,
            ActionKind.SCROLL: self._scroll,
            ActionKind.WAIT: self._wait,
            ActionKind.BACK: self._back,
            ActionKind.HOME: self._home,
            ActionKind.NAVIGATE: self._navigate,
        }

    async def execute(self, action: BaseAction) -> bool:
        raw_kind = getattr(action, 'kind', None)
        try:
            kind = ActionKind(raw_kind)
        except ValueError:
            logger.warning(f"Unknown action type: {raw_kind}")
            return False
        handler = self._handlers[kind]
        try:
            return bool(await handler(action))
        except (ExecutionError, DeviceError) as e:
            logger.warning(f"Action {kind.value} failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error executing {kind.value}: {e}", exc_info=True)
            return False

    async def _tap(self, action: TapAction) -> bool:
        return await self.device.dispatch_gesture([(action.x, action.y)], self.settings.tap_duration_ms)

    async def _type(self, action: TypeAction) -> bool:
        target = await self.device.get_focused_editable_target()
        if target is None and self.settings.type_tap_to_focus:
            logger.debug(f"No focused input; tapping ({action.x}, {action.y}) to acquire focus")
            await self.device.dispatch_gesture([(action.x, action.y)], self.settings.tap_duration_ms)
            if self.settings.focus_settle_seconds:
                await asyncio.sleep(self.settings.focus_settle_seconds)
            target = await self.device.get_focused_editable_target()
        if target is None:
            raise ExecutionError("No editable element is focused; refusing to type")
        return await self.device.set_text(target, action.text)

    async def _scroll(self, action: ScrollAction) -> bool:
        width, height = self.device.screen_dimensions()
        start = (width // 2, height // 2)
        # 'up' drags content downward; anything else scrolls down
        if action.direction.strip().lower() == 'up':
            end = (width // 2, height * 3 // 4)
        else:
            end = (width // 2, height // 4)
        return await self.device.dispatch_gesture([start, end], self.settings.scroll_duration_ms)

    async def _wait(self, action: WaitAction) -> bool:
        duration_ms = min(action.duration_ms, self.settings.max_wait_ms)
        await asyncio.sleep(duration_ms / 1000)
        return True

    async def _back(self, action: BackAction) -> bool:
        return await self.device.perform_global_action(GlobalAction.BACK)

    async def _home(self, action: HomeAction) -> bool:
        return await self.device.perform_global_action(GlobalAction.HOME)

    async def _navigate(self, action: NavigateAction) -> bool:
        if not action.url:
            raise ExecutionError("Navigate action has no URL")
        opened = await self.device.open_url(action.url)
        if opened:
            logger.debug(f"Navigated to {action.url}")
        return opened
