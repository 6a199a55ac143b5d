from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing_extensions import Literal

from device_agent.config import CONFIG
from device_agent.exceptions import AgentConfigurationError

if TYPE_CHECKING:
    from device_agent.agent.service import Agent  # noqa: F401 (type-checking only)
    from device_agent.agent.views import AgentRunResult  # noqa: F401
    AgentHookFunc = Callable[['Agent'], Awaitable[None]]
    AgentDoneHookFunc = Callable[['AgentRunResult'], Awaitable[None]]
else:
    AgentHookFunc = Callable[[Any], Awaitable[None]]
    AgentDoneHookFunc = Callable[[Any], Awaitable[None]]

Catalog = Literal["operations", "action_schema"]


class AgentSettings(BaseModel):
    # Loop budget and pacing
    max_turns: int = Field(10, gt=0, description="Turn budget per task; the task is exhausted when it is used up.")
    failure_backoff_seconds: float = Field(2.0, ge=0, description="Delay after a failed capture or a missing decision.")
    inter_turn_delay_seconds: float = Field(1.5, ge=0, description="Delay between two successful turns.")

    # Decision endpoint
    model: str = Field(default_factory=lambda: CONFIG.DEVICE_AGENT_MODEL)
    catalog: Catalog = Field(
        "operations",
        description=(
            "How permitted actions are advertised to the model: 'operations' declares click_at/type_text_at/... "
            "as callable functions; 'action_schema' declares a single perform_action with an inline JSON schema."
        ),
    )
    temperature: float = Field(0.1, ge=0.0, le=2.0)
    max_output_tokens: int = Field(1000, gt=0)
    request_timeout_seconds: float = Field(60.0, gt=0, description="HTTP timeout for one decision request.")

    # Execution
    max_wait_ms: int = Field(30000, ge=0, description="Upper bound for a single wait action.")
    tap_duration_ms: int = Field(100, gt=0)
    scroll_duration_ms: int = Field(300, gt=0)
    type_tap_to_focus: bool = Field(True, description="Tap the target coordinate to acquire focus when nothing editable is focused.")
    focus_settle_seconds: float = Field(0.5, ge=0)

    # Observability
    save_turns_path: Optional[str] = Field(None, description="Directory for per-turn request/response/screenshot transcripts.")
    event_queue_size: int = Field(1000, gt=0)
    on_turn_start: Optional[AgentHookFunc] = None
    on_turn_end: Optional[AgentHookFunc] = None
    on_run_end: Optional[AgentDoneHookFunc] = None

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    @classmethod
    def from_env(cls, **overrides: Any) -> 'AgentSettings':
        """Build settings from DEVICE_AGENT_* environment variables plus explicit overrides."""
        env_fields: Dict[str, str] = {
            'max_turns': 'DEVICE_AGENT_MAX_TURNS',
            'catalog': 'DEVICE_AGENT_CATALOG',
            'temperature': 'DEVICE_AGENT_TEMPERATURE',
            'max_output_tokens': 'DEVICE_AGENT_MAX_OUTPUT_TOKENS',
            'save_turns_path': 'DEVICE_AGENT_SAVE_TURNS_PATH',
        }
        values: Dict[str, Any] = {}
        for field_name, env_name in env_fields.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        values.update(overrides)
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise AgentConfigurationError(f"Invalid agent settings: {e}") from e
