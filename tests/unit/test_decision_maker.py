import asyncio
import json

from google.genai import types as genai_types

from device_agent.agent.decision_maker import DecisionClient
from device_agent.agent.settings import AgentSettings
from device_agent.agent.views import ScrollAction, TapAction, WaitAction
from device_agent.credentials import StaticCredentialStore
from tests.fakes import PNG_BYTES, fake_genai_client, function_call_response, text_response

SCREEN = (1080, 2400)


def _ask(client: DecisionClient, is_first_turn: bool = True):
    return asyncio.run(client.get_next_action("Open settings", PNG_BYTES, is_first_turn, SCREEN))


def test_function_call_reply_becomes_device_tap():
    genai_client = fake_genai_client(function_call_response('click_at', {'x': 500, 'y': 500}))
    client = DecisionClient(AgentSettings(), client=genai_client)

    assert _ask(client) == TapAction(x=540, y=1200)
    assert client.last_exchange.action == TapAction(x=540, y=1200)
    assert 'click_at' in client.last_exchange.response_json


def test_request_carries_prompt_screenshot_and_declared_operations():
    genai_client = fake_genai_client(text_response("Done"))
    settings = AgentSettings(model='gemini-test', temperature=0.3, max_output_tokens=512)
    client = DecisionClient(settings, client=genai_client)

    _ask(client)

    kwargs = genai_client.aio.models.generate_content.await_args.kwargs
    assert kwargs['model'] == 'gemini-test'
    content = kwargs['contents'][0]
    assert content.role == 'user'
    assert content.parts[0].text.startswith(
        "You are a device automation agent. Execute this task using the available actions: Open settings"
    )
    assert content.parts[1].inline_data.data == PNG_BYTES
    assert content.parts[1].inline_data.mime_type == 'image/png'
    config = kwargs['config']
    assert config.temperature == 0.3
    assert config.max_output_tokens == 512
    names = [decl.name for decl in config.tools[0].function_declarations]
    assert names == ['click_at', 'type_text_at', 'scroll_document', 'go_back', 'search', 'navigate']


def test_continuation_prompt_after_first_turn():
    genai_client = fake_genai_client(text_response("Done"))
    client = DecisionClient(AgentSettings(), client=genai_client)

    _ask(client, is_first_turn=False)

    prompt = genai_client.aio.models.generate_content.await_args.kwargs['contents'][0].parts[0].text
    assert prompt == "Task: Open settings\nContinue the task. What's the next action?"


def test_text_reply_signals_completion():
    client = DecisionClient(AgentSettings(), client=fake_genai_client(text_response("All done.")))

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.is_complete is True
    assert action.message == "All done."


def test_transport_failure_yields_no_action():
    genai_client = fake_genai_client(error=ConnectionError("connection refused"))
    client = DecisionClient(AgentSettings(), client=genai_client)

    assert _ask(client) is None
    assert 'connection refused' in client.last_exchange.error


def test_missing_api_key_yields_no_action():
    client = DecisionClient(AgentSettings(), credentials=StaticCredentialStore(""))

    assert _ask(client) is None
    assert client.last_exchange.error


def test_empty_candidates_yield_no_action():
    client = DecisionClient(
        AgentSettings(), client=fake_genai_client(genai_types.GenerateContentResponse(candidates=[]))
    )
    assert _ask(client) is None


def test_candidate_without_parts_falls_back_to_default_wait():
    response = genai_types.GenerateContentResponse(candidates=[genai_types.Candidate()])
    client = DecisionClient(AgentSettings(), client=fake_genai_client(response))

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.duration_ms == 2000
    assert action.is_complete is False


def test_action_schema_catalog_reads_embedded_json():
    reply = json.dumps({'action': 'scroll', 'direction': 'up', 'complete': False})
    genai_client = fake_genai_client(text_response(f"Next step: {reply}"))
    client = DecisionClient(AgentSettings(catalog='action_schema'), client=genai_client)

    assert _ask(client) == ScrollAction(direction='up')
    config = genai_client.aio.models.generate_content.await_args.kwargs['config']
    assert [decl.name for decl in config.tools[0].function_declarations] == ['perform_action']


def test_non_finite_embedded_coordinate_falls_back_to_default_wait():
    genai_client = fake_genai_client(text_response('Move: {"action": "tap", "x": 1e999, "y": 5}'))
    client = DecisionClient(AgentSettings(catalog='action_schema'), client=genai_client)

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.duration_ms == 2000
    assert action.is_complete is False


def test_non_finite_operation_coordinate_falls_back_to_default_wait():
    genai_client = fake_genai_client(function_call_response('click_at', {'x': float('inf'), 'y': 5}))
    client = DecisionClient(AgentSettings(), client=genai_client)

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.is_complete is False


def test_deeply_nested_embedded_json_falls_back_to_default_wait():
    nested = '{"a": ' * 100_000 + '1' + '}' * 100_000
    genai_client = fake_genai_client(text_response(f"Move: {nested}"))
    client = DecisionClient(AgentSettings(catalog='action_schema'), client=genai_client)

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.message == 'Waiting...'


def test_unexpected_translation_error_still_yields_default_wait(monkeypatch):
    def explode(reply, screen_size):
        raise KeyError('boom')

    monkeypatch.setattr('device_agent.agent.decision_maker.translate_reply', explode)
    client = DecisionClient(AgentSettings(), client=fake_genai_client(text_response("Done")))

    action = _ask(client)

    assert isinstance(action, WaitAction)
    assert action.is_complete is False
