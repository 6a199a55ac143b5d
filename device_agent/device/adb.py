from __future__ import annotations

import asyncio
import logging
import re
import shlex
import shutil
import xml.etree.ElementTree as ET
from typing import Optional, Sequence

from device_agent.config import CONFIG
from device_agent.device.base import DeviceController, EditableTarget, GlobalAction, Point
from device_agent.exceptions import CaptureError, DeviceError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
KEYCODE_HOME = 3
KEYCODE_BACK = 4
KEYCODE_DEL = 67
KEYCODE_MOVE_END = 123
LONG_PRESS_MS = 500

_GLOBAL_KEYCODES = {
    GlobalAction.BACK: KEYCODE_BACK,
    GlobalAction.HOME: KEYCODE_HOME,
}
_SIZE_RE = re.compile(r'(Physical|Override) size:\s*(\d+)x(\d+)')
_EDITABLE_CLASSES = ('EditText', 'AutoCompleteTextView', 'SearchView$SearchAutoComplete')


def parse_wm_size(output: str) -> tuple[int, int]:
    """Parse `adb shell wm size` output; an override size wins over the physical one."""
    sizes = {kind: (int(w), int(h)) for kind, w, h in _SIZE_RE.findall(output)}
    if 'Override' in sizes:
        return sizes['Override']
    if 'Physical' in sizes:
        return sizes['Physical']
    raise DeviceError(f"Could not parse screen size from: {output.strip()!r}")


def parse_focused_editable(xml_dump: str) -> Optional[EditableTarget]:
    """Find the focused editable node in a `uiautomator dump` hierarchy."""
    start = xml_dump.find('<?xml')
    if start < 0:
        start = xml_dump.find('<hierarchy')
    end = xml_dump.rfind('</hierarchy>')
    if start < 0 or end < 0:
        return None
    root = ET.fromstring(xml_dump[start:end + len('</hierarchy>')])
    for node in root.iter('node'):
        if node.get('focused') != 'true':
            continue
        class_name = node.get('class', '')
        if not class_name.endswith(_EDITABLE_CLASSES):
            continue
        return EditableTarget(
            handle=node.get('bounds', ''),
            text=node.get('text', ''),
            description=node.get('resource-id', '') or class_name,
        )
    return None


def escape_input_text(text: str) -> str:
    # `input text` treats %s as a space; the rest must survive the device shell
    return shlex.quote(text.replace('%', '\\%').replace(' ', '%s'))


class AdbDevice(DeviceController):
    """DeviceController backed by the Android Debug Bridge."""

    def __init__(self, serial: Optional[str] = None, adb_path: Optional[str] = None, command_timeout: float = 10.0):
        self.serial = serial
        self.adb_path = adb_path or CONFIG.DEVICE_AGENT_ADB_PATH
        self.command_timeout = command_timeout
        self._screen_size: Optional[tuple[int, int]] = None

    @staticmethod
    def is_available(adb_path: Optional[str] = None) -> bool:
        return shutil.which(adb_path or CONFIG.DEVICE_AGENT_ADB_PATH) is not None

    async def list_devices(self) -> list[str]:
        """Serials of devices that adb reports as ready."""
        stdout = await self._run('devices', use_serial=False)
        devices = []
        for line in stdout.decode('utf-8', errors='ignore').splitlines()[1:]:
            parts = line.split('\t')
            if len(parts) == 2 and parts[1].strip() == 'device':
                devices.append(parts[0].strip())
        return devices

    async def connect(self) -> tuple[int, int]:
        """Resolve the screen size; must be awaited before the agent starts."""
        output = await self._shell('wm', 'size')
        self._screen_size = parse_wm_size(output)
        logger.info(f"Connected to {self.serial or 'default device'}: screen {self._screen_size[0]}x{self._screen_size[1]}")
        return self._screen_size

    def screen_dimensions(self) -> tuple[int, int]:
        if self._screen_size is None:
            raise DeviceError("Screen size unknown; call AdbDevice.connect() first")
        return self._screen_size

    async def capture_screen(self) -> bytes:
        try:
            data = await self._run('exec-out', 'screencap', '-p')
        except DeviceError as e:
            raise CaptureError(f"screencap failed: {e}") from e
        if not data.startswith(PNG_SIGNATURE):
            raise CaptureError("screencap returned data that is not a PNG image")
        return data

    async def dispatch_gesture(self, points: Sequence[Point], duration_ms: int) -> bool:
        if not points:
            return False
        x1, y1 = points[0]
        if len(points) == 1 and duration_ms < LONG_PRESS_MS:
            await self._shell('input', 'tap', str(x1), str(y1))
            return True
        # adb can only express straight swipes, so intermediate points are dropped
        x2, y2 = points[-1]
        await self._shell('input', 'swipe', str(x1), str(y1), str(x2), str(y2), str(duration_ms))
        return True

    async def perform_global_action(self, action: GlobalAction) -> bool:
        keycode = _GLOBAL_KEYCODES.get(action)
        if keycode is None:
            return False
        await self._shell('input', 'keyevent', str(keycode))
        return True

    async def get_focused_editable_target(self) -> Optional[EditableTarget]:
        dump = await self._shell('uiautomator', 'dump', '/dev/tty')
        try:
            return parse_focused_editable(dump)
        except ET.ParseError:
            logger.warning("Could not parse uiautomator dump", exc_info=True)
            return None

    async def set_text(self, target: EditableTarget, text: str) -> bool:
        if target.text:
            deletes = [str(KEYCODE_DEL)] * len(target.text)
            await self._shell('input', 'keyevent', str(KEYCODE_MOVE_END), *deletes)
        if text:
            await self._shell('input', 'text', escape_input_text(text))
        return True

    async def open_url(self, url: str) -> bool:
        output = await self._shell('am', 'start', '-a', 'android.intent.action.VIEW', '-d', shlex.quote(url))
        if 'Error' in output:
            logger.warning(f"No handler resolved for {url}: {output.strip()}")
            return False
        return True

    async def _shell(self, *args: str) -> str:
        stdout = await self._run('shell', *args)
        return stdout.decode('utf-8', errors='ignore')

    async def _run(self, *args: str, use_serial: bool = True) -> bytes:
        cmd = [self.adb_path]
        if use_serial and self.serial:
            cmd.extend(['-s', self.serial])
        cmd.extend(args)
        logger.debug(f"adb: {' '.join(cmd[1:])}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DeviceError(f"adb executable not found: {self.adb_path}") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.command_timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise DeviceError(f"adb {args[0]} timed out after {self.command_timeout}s") from e
        if proc.returncode != 0:
            err = stderr.decode('utf-8', errors='ignore').strip()
            raise DeviceError(f"adb {' '.join(args)} failed: {err}", returncode=proc.returncode, stderr=err)
        return stdout
