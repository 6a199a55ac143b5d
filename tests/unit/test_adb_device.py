import asyncio
import types
from asyncio import base_subprocess
from unittest.mock import AsyncMock

import pytest

from device_agent.device.adb import (
    AdbDevice,
    escape_input_text,
    parse_focused_editable,
    parse_wm_size,
)
from device_agent.device.base import EditableTarget, GlobalAction
from device_agent.exceptions import CaptureError, DeviceError
from tests.fakes import PNG_BYTES

UI_DUMP = """UI hierchary dumped to: /dev/tty
<?xml version='1.0' encoding='UTF-8' standalone='yes' ?><hierarchy rotation="0">
<node index="0" class="android.widget.FrameLayout" focused="false" bounds="[0,0][1080,2400]">
<node index="0" class="android.widget.TextView" text="Search" focused="true" bounds="[0,0][200,80]" />
<node index="1" class="android.widget.EditText" text="old query" resource-id="com.example:id/search"
 focused="true" bounds="[40,120][1040,220]" />
</node>
</hierarchy>"""


def _device(shell_output: str = '', run_output: bytes = b'') -> AdbDevice:
    device = AdbDevice(serial='emulator-5554', adb_path='adb')
    device._shell = AsyncMock(return_value=shell_output)
    device._run = AsyncMock(return_value=run_output)
    return device


def test_parse_wm_size_prefers_override():
    output = "Physical size: 1080x2400\nOverride size: 720x1600\n"
    assert parse_wm_size(output) == (720, 1600)
    assert parse_wm_size("Physical size: 1440x3120") == (1440, 3120)


def test_parse_wm_size_rejects_garbage():
    with pytest.raises(DeviceError):
        parse_wm_size("error: no devices/emulators found")


def test_parse_focused_editable_finds_focused_input():
    target = parse_focused_editable(UI_DUMP)

    assert target == EditableTarget(
        handle='[40,120][1040,220]', text='old query', description='com.example:id/search'
    )


def test_parse_focused_editable_ignores_unfocused_inputs():
    dump = UI_DUMP.replace('focused="true" bounds="[40', 'focused="false" bounds="[40')
    assert parse_focused_editable(dump) is None
    assert parse_focused_editable("ERROR: could not get idle state.") is None


def test_escape_input_text_encodes_spaces_for_input_command():
    assert escape_input_text("hello world") == "hello%sworld"
    assert escape_input_text("it's 100%") == "'it'\"'\"'s%s100\\%'"


def test_connect_resolves_screen_dimensions():
    device = _device(shell_output="Physical size: 1080x2400\n")

    with pytest.raises(DeviceError):
        device.screen_dimensions()
    assert asyncio.run(device.connect()) == (1080, 2400)
    assert device.screen_dimensions() == (1080, 2400)
    device._shell.assert_awaited_once_with('wm', 'size')


def test_capture_screen_returns_png_bytes():
    device = _device(run_output=PNG_BYTES)

    assert asyncio.run(device.capture_screen()) == PNG_BYTES
    device._run.assert_awaited_once_with('exec-out', 'screencap', '-p')


def test_capture_screen_rejects_non_png_output():
    device = _device(run_output=b'error: device offline')

    with pytest.raises(CaptureError):
        asyncio.run(device.capture_screen())


def test_capture_screen_wraps_adb_failure():
    device = _device()
    device._run.side_effect = DeviceError("adb exec-out failed", returncode=1)

    with pytest.raises(CaptureError):
        asyncio.run(device.capture_screen())


def test_short_single_point_gesture_is_a_tap():
    device = _device()

    assert asyncio.run(device.dispatch_gesture([(540, 1200)], 100)) is True
    device._shell.assert_awaited_once_with('input', 'tap', '540', '1200')


def test_multi_point_gesture_is_a_swipe():
    device = _device()

    asyncio.run(device.dispatch_gesture([(540, 1200), (540, 600)], 300))

    device._shell.assert_awaited_once_with('input', 'swipe', '540', '1200', '540', '600', '300')


def test_long_press_is_a_stationary_swipe():
    device = _device()

    asyncio.run(device.dispatch_gesture([(10, 20)], 800))

    device._shell.assert_awaited_once_with('input', 'swipe', '10', '20', '10', '20', '800')


def test_global_actions_map_to_keyevents():
    device = _device()

    asyncio.run(device.perform_global_action(GlobalAction.BACK))
    asyncio.run(device.perform_global_action(GlobalAction.HOME))

    assert [c.args for c in device._shell.await_args_list] == [
        ('input', 'keyevent', '4'),
        ('input', 'keyevent', '3'),
    ]


def test_set_text_clears_existing_content_first():
    device = _device()
    target = EditableTarget(handle='[0,0][10,10]', text='abc')

    assert asyncio.run(device.set_text(target, 'new text')) is True

    clear, typed = device._shell.await_args_list
    assert clear.args == ('input', 'keyevent', '123', '67', '67', '67')
    assert typed.args == ('input', 'text', 'new%stext')


def test_focused_target_from_ui_dump():
    device = _device(shell_output=UI_DUMP)

    target = asyncio.run(device.get_focused_editable_target())

    assert target.text == 'old query'
    device._shell.assert_awaited_once_with('uiautomator', 'dump', '/dev/tty')


def test_malformed_ui_dump_reports_no_focus():
    device = _device(shell_output="<hierarchy><node focused='true'</hierarchy>")
    assert asyncio.run(device.get_focused_editable_target()) is None


def test_open_url_detects_unresolved_intent():
    device = _device(shell_output="Starting: Intent { act=android.intent.action.VIEW }\nError: Activity not started")
    assert asyncio.run(device.open_url('weird://x')) is False

    device = _device(shell_output="Starting: Intent { act=android.intent.action.VIEW dat=https://example.com/... }")
    assert asyncio.run(device.open_url('https://example.com')) is True


def test_list_devices_parses_ready_devices():
    device = _device(run_output=b"List of devices attached\nemulator-5554\tdevice\nR58M\tunauthorized\n\n")

    assert asyncio.run(device.list_devices()) == ['emulator-5554']
    device._run.assert_awaited_once_with('devices', use_serial=False)


def test_missing_adb_binary_raises_device_error():
    device = AdbDevice(adb_path='/nonexistent/adb-binary')

    with pytest.raises(DeviceError):
        asyncio.run(device._run('devices'))


def test_transport_finalizer_skips_cleanup_on_closed_loop():
    loop = asyncio.new_event_loop()
    loop.close()
    # a transport missing every other attribute would raise inside the stock finalizer
    stale = types.SimpleNamespace(_loop=loop)

    assert base_subprocess.BaseSubprocessTransport.__del__(stale) is None
    assert base_subprocess.BaseSubprocessTransport.__del__.__wrapped__ is not None


def test_transport_finalizer_defers_to_stock_cleanup_on_live_loop():
    loop = asyncio.new_event_loop()
    try:
        closed_transport = types.SimpleNamespace(_loop=loop, _closed=True)
        base_subprocess.BaseSubprocessTransport.__del__(closed_transport)

        open_transport = types.SimpleNamespace(_loop=loop)
        with pytest.raises(AttributeError):
            base_subprocess.BaseSubprocessTransport.__del__(open_transport)
    finally:
        loop.close()
