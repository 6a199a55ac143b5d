"""
Example: drive an Android device over adb

Connects to the first ready device, starts a task and prints progress events
until the task finishes. Set GEMINI_API_KEY (or put it in a .env file), or
pass --save-key once to store it in the credentials file.

    python example_adb_agent.py "Open the clock app and start a 5 minute timer"
"""

import asyncio
import sys

from device_agent.agent.events import LogLine, TaskFinished, TurnCompleted
from device_agent.agent.service import Agent
from device_agent.agent.settings import AgentSettings
from device_agent.credentials import EnvCredentialStore, FileCredentialStore
from device_agent.device.adb import AdbDevice


async def print_events(agent: Agent):
    while True:
        event = await agent.event_bus.get()
        if isinstance(event, LogLine):
            print(f"  {event.message}")
        elif isinstance(event, TurnCompleted):
            mark = '✅' if event.success else '⚠️'
            print(f"{mark} turn {event.turn}: {event.action.describe()}")
        elif isinstance(event, TaskFinished):
            print(f"🏁 {event.outcome.value}: {event.message or ''}")
            return


async def main(task: str):
    if not AdbDevice.is_available():
        print("❌ adb not found on PATH (set DEVICE_AGENT_ADB_PATH)")
        return

    probe = AdbDevice()
    serials = await probe.list_devices()
    if not serials:
        print("❌ No device attached")
        return

    device = AdbDevice(serial=serials[0])
    width, height = await device.connect()
    print(f"📱 {serials[0]} ({width}x{height})")

    credentials = EnvCredentialStore()
    if not credentials.has_credential():
        credentials = FileCredentialStore()

    settings = AgentSettings.from_env(save_turns_path='./agent_turns')
    agent = Agent(device, settings, credentials=credentials)

    printer = asyncio.create_task(print_events(agent))
    agent.start_task(task)
    result = await agent.wait()
    await printer
    if result:
        print(f"Finished after {result.turns} turn(s) in {result.duration_seconds:.1f}s")


if __name__ == '__main__':
    if len(sys.argv) == 3 and sys.argv[1] == '--save-key':
        FileCredentialStore().save_credential(sys.argv[2])
        sys.exit(0)
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(' '.join(sys.argv[1:])))
