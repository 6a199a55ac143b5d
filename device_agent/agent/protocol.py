"""
Translation of decision replies into canonical actions.

Three reply shapes are in use depending on the protocol generation the model
answers with. A candidate is first classified into exactly one tagged shape,
then translated by an ordered set of matches over that shape.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from google.genai.types import Candidate

from device_agent.agent.coordinates import denormalize, denormalize_point
from device_agent.agent.views import (
    DEFAULT_WAIT_MS,
    ActionKind,
    BackAction,
    BaseAction,
    HomeAction,
    NavigateAction,
    ScrollAction,
    TapAction,
    TypeAction,
    WaitAction,
    default_action,
)
from device_agent.exceptions import ProtocolError

logger = logging.getLogger(__name__)

ScreenSize = tuple[int, int]


@dataclass(frozen=True)
class StructuredArgsReply:
    """Function call whose arguments already name a canonical `action`."""
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmbeddedJsonReply:
    """Prose expected to contain one JSON action object."""
    text: str = ''


@dataclass(frozen=True)
class OperationCallReply:
    """Invocation of one of the declared operations (click_at, go_back, ...)."""
    name: str = ''
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NarrativeReply:
    """Plain text with no invocation: the model has nothing more to do."""
    text: str = ''


ReplyShape = Union[StructuredArgsReply, EmbeddedJsonReply, OperationCallReply, NarrativeReply]


def classify_candidate(candidate: Candidate, catalog: str) -> ReplyShape:
    """Pick the reply shape of a candidate. Function calls win over text."""
    content = candidate.content
    if content is None or not content.parts:
        raise ProtocolError("Candidate has no content parts")

    texts = []
    for part in content.parts:
        if part.function_call is not None:
            args = dict(part.function_call.args or {})
            if 'action' in args:
                return StructuredArgsReply(args=args)
            return OperationCallReply(name=part.function_call.name or '', args=args)
        if part.text and not part.thought:
            texts.append(part.text.strip())

    text = '\n'.join(t for t in texts if t)
    if not text:
        raise ProtocolError("Candidate has neither a function call nor text")
    if catalog == 'action_schema':
        return EmbeddedJsonReply(text=text)
    return NarrativeReply(text=text)


def translate_reply(reply: ReplyShape, screen_size: ScreenSize) -> BaseAction:
    if isinstance(reply, StructuredArgsReply):
        return action_from_args(reply.args, screen_size)
    if isinstance(reply, EmbeddedJsonReply):
        payload = extract_json_object(reply.text)
        if payload is None:
            logger.warning("No JSON action object in text reply; using default action")
            return default_action()
        return action_from_args(payload, screen_size)
    if isinstance(reply, OperationCallReply):
        return action_from_operation(reply.name, reply.args, screen_size)
    if isinstance(reply, NarrativeReply):
        return WaitAction(duration_ms=DEFAULT_WAIT_MS, is_complete=True, message=reply.text)
    raise ProtocolError(f"Unsupported reply shape: {type(reply).__name__}")


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the substring between the first '{' and the last '}'."""
    start = text.find('{')
    end = text.rfind('}')
    if start < 0 or end <= start:
        return None
    try:
        payload = json.loads(text[start:end + 1])
    except (json.JSONDecodeError, RecursionError):
        return None
    return payload if isinstance(payload, dict) else None


def _as_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default
    except OverflowError as e:
        raise ProtocolError(f"Non-finite number in reply: {value!r}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def action_from_args(args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    """Map the canonical {action, x, y, text, direction, duration, complete, message} fields."""
    kind = str(args.get('action') or ActionKind.WAIT.value).strip().lower()
    x, y = denormalize_point(_as_int(args.get('x'), 0), _as_int(args.get('y'), 0), screen_size)
    text = _as_str(args.get('text'))
    common = {
        'is_complete': _as_bool(args.get('complete', False)),
        'message': _as_str(args.get('message')),
    }

    if kind == ActionKind.TAP:
        return TapAction(x=x, y=y, **common)
    if kind == ActionKind.TYPE:
        return TypeAction(text=text or '', x=x, y=y, **common)
    if kind == ActionKind.SCROLL:
        return ScrollAction(direction=_as_str(args.get('direction')) or 'down', **common)
    if kind == ActionKind.WAIT:
        return WaitAction(duration_ms=max(0, _as_int(args.get('duration'), DEFAULT_WAIT_MS)), **common)
    if kind == ActionKind.BACK:
        return BackAction(**common)
    if kind == ActionKind.HOME:
        return HomeAction(**common)
    if kind == ActionKind.NAVIGATE:
        return NavigateAction(url=text or _as_str(args.get('url')) or '', **common)

    logger.warning(f"Unknown action '{kind}' in reply; using default action")
    return default_action(**common)


def _click_at(args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    x, y = _required_point(args, screen_size)
    return TapAction(x=x, y=y)


def _type_text_at(args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    x, y = _required_point(args, screen_size)
    return TypeAction(text=_as_str(args.get('text')) or '', x=x, y=y)


def _scroll_document(args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    return ScrollAction(direction=_as_str(args.get('direction')) or 'down')


def _navigate(args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    return NavigateAction(url=_as_str(args.get('url')) or '')


def _required_point(args: Dict[str, Any], screen_size: ScreenSize) -> tuple[int, int]:
    if 'x' not in args or 'y' not in args:
        raise ProtocolError(f"Operation arguments lack coordinates: {sorted(args)}")
    width, height = screen_size
    return denormalize(_as_int(args['x'], 0), width), denormalize(_as_int(args['y'], 0), height)


OPERATION_HANDLERS: Dict[str, Callable[[Dict[str, Any], ScreenSize], BaseAction]] = {
    'click_at': _click_at,
    'type_text_at': _type_text_at,
    'scroll_document': _scroll_document,
    'go_back': lambda args, screen_size: BackAction(),
    'search': lambda args, screen_size: HomeAction(),
    'navigate': _navigate,
}


def action_from_operation(name: str, args: Dict[str, Any], screen_size: ScreenSize) -> BaseAction:
    handler = OPERATION_HANDLERS.get(name)
    if handler is None:
        logger.warning(f"Unrecognized operation '{name}'; using default action")
        return default_action()
    return handler(args, screen_size)
