from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import anyio

if TYPE_CHECKING:
    from device_agent.agent.decision_maker import DecisionExchange

logger = logging.getLogger(__name__)


async def save_turn(
    target_dir: str | Path,
    turn: int,
    task: str,
    exchange: Optional[DecisionExchange],
    screenshot: Optional[bytes],
    success: Optional[bool] = None,
    encoding: str = 'utf-8',
) -> Path:
    """Write one turn's request, response and screenshot under `target_dir`."""
    root = anyio.Path(target_dir)
    turn_dir = root / f"turn_{turn:03d}"
    await turn_dir.mkdir(parents=True, exist_ok=True)

    prompt = exchange.prompt if exchange else ''
    await (turn_dir / "request.md").write_text(f"## Task\n\n{task}\n\n## Prompt\n\n{prompt}\n", encoding=encoding)

    if screenshot:
        await (turn_dir / "screenshot.png").write_bytes(screenshot)

    response_text = _format_response(exchange)
    await (turn_dir / "response.json").write_text(response_text, encoding=encoding)

    await _append_summary(root / "conversation.md", turn, exchange, success, encoding)
    return Path(str(turn_dir))


def _format_response(exchange: Optional[DecisionExchange]) -> str:
    if exchange is None:
        return json.dumps({'error': 'no decision requested'}, indent=2)
    body = {
        'response': json.loads(exchange.response_json) if exchange.response_json else None,
        'action': exchange.action.model_dump(mode='json') if exchange.action else None,
        'error': exchange.error,
    }
    return json.dumps(body, indent=2)


async def _append_summary(
    conversation_file: anyio.Path,
    turn: int,
    exchange: Optional[DecisionExchange],
    success: Optional[bool],
    encoding: str,
) -> None:
    existing = ''
    if await conversation_file.exists():
        existing = await conversation_file.read_text(encoding=encoding)

    if exchange and exchange.action:
        action_summary = f"Action: {exchange.action.describe()}"
        if exchange.action.is_complete:
            action_summary += " (complete)"
    elif exchange and exchange.error:
        action_summary = f"Decision failed: {exchange.error}"
    else:
        action_summary = "No action"
    outcome = '' if success is None else f"\n\nExecuted: {'yes' if success else 'failed'}"

    entry = f"\n## Turn {turn}\n\n**{action_summary}**{outcome}\n\nScreenshot: `turn_{turn:03d}/screenshot.png`\n"
    await conversation_file.write_text(existing + entry, encoding=encoding)
