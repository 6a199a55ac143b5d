from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from device_agent.agent.actuator import ActionExecutor
from device_agent.agent.decision_maker import DecisionClient
from device_agent.agent.events import Event, LogLine, StatusChanged, TaskFinished, TurnCompleted
from device_agent.agent.settings import AgentSettings
from device_agent.agent.transcript import save_turn
from device_agent.agent.views import AgentRunResult, AgentStatus, BaseAction, TaskOutcome, TaskState
from device_agent.exceptions import CaptureError
from device_agent.logging_config import RESULT_LEVEL
from device_agent.timing import Stopwatch

if TYPE_CHECKING:
    from device_agent.credentials import CredentialStore
    from device_agent.device.base import DeviceController

logger = logging.getLogger(__name__)


def agent_log(level: int, task_id: str, turn: int, message: str, **kwargs):
    log_extras = {'task_id': task_id, 'turn': turn}
    logger.log(level, message, extra=log_extras, **kwargs)


class Agent:
    """
    Turn-based loop controller: capture the screen, ask for one action,
    execute it, and decide whether to continue.

    One task runs at a time. `start_task` and `stop_task` are the control
    surface; progress and status transitions are published on `event_bus`.
    Stop requests are cooperative and observed between turns.
    """

    def __init__(
        self,
        device: DeviceController,
        settings: Optional[AgentSettings] = None,
        decision_client: Optional[DecisionClient] = None,
        executor: Optional[ActionExecutor] = None,
        credentials: Optional[CredentialStore] = None,
    ):
        self.device = device
        self.settings = settings or AgentSettings()
        self.decision_client = decision_client or DecisionClient(self.settings, credentials=credentials)
        self.executor = executor or ActionExecutor(device, self.settings)
        self.event_bus: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.settings.event_queue_size)

        self._status = AgentStatus.IDLE
        self._task: Optional[TaskState] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._last_result: Optional[AgentRunResult] = None

    @property
    def status(self) -> AgentStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == AgentStatus.RUNNING

    @property
    def turn_count(self) -> int:
        return self._task.turn_count if self._task else 0

    @property
    def task_description(self) -> Optional[str]:
        return self._task.description if self._task else None

    @property
    def last_result(self) -> Optional[AgentRunResult]:
        return self._last_result

    def start_task(self, description: str) -> bool:
        """Begin a task on the running event loop. No-op while another task is active."""
        if self._status != AgentStatus.IDLE:
            self._log("Task already running", level=logging.WARNING)
            return False

        task = TaskState(description=description)
        run = self._run_task(task)
        try:
            loop_task = asyncio.create_task(run, name=f"device-agent-{task.task_id}")
        except RuntimeError:
            # no running event loop; leave the agent idle
            run.close()
            raise

        # the loop task does not start before this method returns
        self._loop_task = loop_task
        self._task = task
        self._status = AgentStatus.RUNNING
        self._log(f"Starting task: {description}")
        self._publish(StatusChanged(turn=0, task_id=task.task_id, running=True))
        return True

    def stop_task(self) -> None:
        """Request a stop; it takes effect at the next turn boundary."""
        task = self._task
        if task is None or not task.running:
            logger.debug("stop_task called with no running task")
            return
        task.running = False
        task.stop_event.set()
        self._status = AgentStatus.STOPPING
        self._log("Stop requested; finishing current turn")

    async def wait(self) -> Optional[AgentRunResult]:
        """Wait for the active task (if any) and return its result."""
        if self._loop_task is not None:
            await asyncio.shield(self._loop_task)
        return self._last_result

    async def run(self, description: str) -> Optional[AgentRunResult]:
        if not self.start_task(description):
            return None
        return await self.wait()

    async def close(self) -> None:
        self.stop_task()
        await self.wait()

    async def _run_task(self, task: TaskState) -> AgentRunResult:
        stopwatch = Stopwatch()
        outcome = TaskOutcome.EXHAUSTED
        final_message: Optional[str] = None

        try:
            while task.running and task.turn_count < self.settings.max_turns:
                task.turn_count += 1
                self._log(f"Agent turn {task.turn_count}")
                await self._call_hook(self.settings.on_turn_start, self)

                action = await self._take_turn(task)
                await self._call_hook(self.settings.on_turn_end, self)

                if action is None:
                    await self._pause(task, self.settings.failure_backoff_seconds)
                    continue

                if action.is_complete:
                    outcome = TaskOutcome.COMPLETED
                    final_message = action.message
                    self._log(f"Task completed: {action.message}")
                    break

                await self._pause(task, self.settings.inter_turn_delay_seconds)
            else:
                if not task.running:
                    outcome = TaskOutcome.STOPPED
                    self._log("Task stopped")
                else:
                    self._log("Max turns reached")
        except Exception as e:
            outcome = TaskOutcome.FAILED
            final_message = str(e)
            self._log(f"Error in agent loop: {e}", level=logging.ERROR, exc_info=True)

        result = AgentRunResult(
            task=task.description,
            outcome=outcome,
            turns=task.turn_count,
            message=final_message,
            duration_seconds=stopwatch.elapsed,
        )
        self._finish(task, result, stopwatch)
        await self._call_hook(self.settings.on_run_end, result)
        return result

    async def _take_turn(self, task: TaskState) -> Optional[BaseAction]:
        """One capture-decide-execute cycle. Returns None when the turn produced no decision."""
        try:
            screenshot = await self.device.capture_screen()
        except CaptureError as e:
            self._log(f"Failed to capture screenshot: {e}", level=logging.WARNING)
            return None

        self._log("Getting next action from the decision endpoint...")
        action = await self.decision_client.get_next_action(
            task.description,
            screenshot,
            is_first_turn=task.is_first_turn,
            screen_size=self.device.screen_dimensions(),
        )
        if action is None:
            self._log("Failed to get action from the decision endpoint", level=logging.WARNING)
            await self._save_turn(task, screenshot, success=None)
            return None

        self._log(f"Action: {action.describe()}")
        success = await self.executor.execute(action)
        if not success:
            self._log("Failed to execute action", level=logging.WARNING)

        self._publish(TurnCompleted(turn=task.turn_count, task_id=task.task_id, action=action, success=success))
        await self._save_turn(task, screenshot, success=success)
        return action

    async def _pause(self, task: TaskState, seconds: float) -> None:
        """Cooperative delay that ends early once a stop is requested."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(task.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _finish(self, task: TaskState, result: AgentRunResult, stopwatch: Stopwatch) -> None:
        self._last_result = result
        self._task = None
        self._status = AgentStatus.IDLE
        self._publish(StatusChanged(turn=task.turn_count, task_id=task.task_id, running=False))
        self._publish(TaskFinished(turn=task.turn_count, task_id=task.task_id, outcome=result.outcome, message=result.message))
        agent_log(
            RESULT_LEVEL, task.task_id, task.turn_count,
            f"Task finished: {result.outcome.value} after {result.turns} turn(s) in {stopwatch.format()}",
        )

    async def _save_turn(self, task: TaskState, screenshot: bytes, success: Optional[bool]) -> None:
        if not self.settings.save_turns_path:
            return
        try:
            await save_turn(
                self.settings.save_turns_path,
                task.turn_count,
                task.description,
                self.decision_client.last_exchange,
                screenshot if isinstance(screenshot, (bytes, bytearray)) else None,
                success=success,
            )
        except Exception as e:
            logger.warning(f"Failed to save turn transcript: {e}")

    async def _call_hook(self, hook, arg) -> None:
        if hook is None:
            return
        try:
            await hook(arg)
        except Exception:
            logger.debug('Agent hook failed (ignored)', exc_info=True)

    def _log(self, message: str, level: int = logging.INFO, **kwargs) -> None:
        task = self._task
        task_id = task.task_id if task else ""
        turn = task.turn_count if task else 0
        agent_log(level, task_id, turn, message, **kwargs)
        self._publish(LogLine(turn=turn, task_id=task_id, message=message, level=level))

    def _publish(self, event: Event) -> None:
        try:
            self.event_bus.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event bus full, dropped {type(event).__name__}")
