"""Prompt texts and the catalogs of actions advertised to the model."""
from __future__ import annotations

from typing import Any, Dict, List

# name -> (description, {param: (type, description)}, required params)
OPERATION_CATALOG: Dict[str, tuple[str, Dict[str, tuple[str, str]], List[str]]] = {
	'click_at': (
		'Tap the screen at a point on the 0-999 normalized grid.',
		{'x': ('integer', 'Horizontal position, 0-999'), 'y': ('integer', 'Vertical position, 0-999')},
		['x', 'y'],
	),
	'type_text_at': (
		'Enter text into the input field at a point on the 0-999 normalized grid.',
		{
			'x': ('integer', 'Horizontal position, 0-999'),
			'y': ('integer', 'Vertical position, 0-999'),
			'text': ('string', 'The text to enter'),
		},
		['x', 'y', 'text'],
	),
	'scroll_document': (
		'Scroll the current screen.',
		{'direction': ('string', "'up' or 'down'")},
		['direction'],
	),
	'go_back': ('Press the system back button.', {}, []),
	'search': ('Go to the home screen to start a new search.', {}, []),
	'navigate': (
		'Open a URL in the default handler.',
		{'url': ('string', 'The URL to open')},
		['url'],
	),
}

PERFORM_ACTION_NAME = 'perform_action'
PERFORM_ACTION_PARAMETERS: Dict[str, tuple[str, str]] = {
	'action': ('string', 'The action to perform: tap, type, scroll, wait, back, home or navigate'),
	'x': ('integer', 'The x-coordinate, 0-999'),
	'y': ('integer', 'The y-coordinate, 0-999'),
	'text': ('string', 'The text to type, or the URL to navigate to'),
	'direction': ('string', 'The direction to scroll: up or down'),
	'duration': ('integer', 'The duration to wait in milliseconds'),
	'complete': ('boolean', 'Whether the task is complete'),
	'message': ('string', 'A message to the user'),
}

ACTION_SCHEMA_FIRST_TURN = (
	"You are a device automation agent. Execute this task: {task}\n\n"
	"Available actions:\n"
	"- tap(x, y): Tap at coordinates\n"
	"- type(text): Type text into the focused field\n"
	"- scroll(direction): Scroll up or down\n"
	"- wait(ms): Wait\n"
	"- back(): Press back\n"
	"- home(): Go home\n"
	"- navigate(url): Open a URL\n\n"
	"Coordinates use a 0-999 grid over the screenshot, independent of screen resolution.\n"
	"Respond in JSON format: {{\"action\": \"tap|type|scroll|wait|back|home|navigate\", \"x\": 0-999, "
	"\"y\": 0-999, \"text\": \"...\", \"direction\": \"up|down\", \"duration\": 0, \"complete\": false, "
	"\"message\": \"...\"}}"
)

OPERATIONS_FIRST_TURN = (
	"You are a device automation agent. Execute this task using the available actions: {task}\n\n"
	"Coordinates use a 0-999 grid over the screenshot, independent of screen resolution. "
	"Call exactly one action per reply. When the task is done, reply with a short summary "
	"and no action."
)

CONTINUATION = "Task: {task}\nContinue the task. What's the next action?"


def build_prompt(task: str, is_first_turn: bool, catalog: str) -> str:
	if not is_first_turn:
		return CONTINUATION.format(task=task)
	if catalog == 'action_schema':
		return ACTION_SCHEMA_FIRST_TURN.format(task=task)
	return OPERATIONS_FIRST_TURN.format(task=task)


def describe_catalog(catalog: str) -> List[Dict[str, Any]]:
	"""Plain-dict view of the advertised functions, for transcripts and serializers."""
	if catalog == 'action_schema':
		return [{
			'name': PERFORM_ACTION_NAME,
			'description': 'Performs a UI action on the device',
			'parameters': PERFORM_ACTION_PARAMETERS,
			'required': ['action'],
		}]
	return [
		{'name': name, 'description': description, 'parameters': params, 'required': required}
		for name, (description, params, required) in OPERATION_CATALOG.items()
	]
