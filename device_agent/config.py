"""Environment-backed configuration.

Values are read lazily on attribute access so that changes to the environment
(including tests using ``monkeypatch.setenv``) are picked up without a reload.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL = 'gemini-2.5-computer-use-preview-10-2025'


class Config:
    @property
    def DEVICE_AGENT_LOGGING_LEVEL(self) -> str:
        return os.getenv('DEVICE_AGENT_LOGGING_LEVEL', 'info').lower()

    @property
    def DEVICE_AGENT_SETUP_LOGGING(self) -> bool:
        return os.getenv('DEVICE_AGENT_SETUP_LOGGING', 'true').lower() != 'false'

    @property
    def DEVICE_AGENT_MODEL(self) -> str:
        return os.getenv('DEVICE_AGENT_MODEL', DEFAULT_MODEL)

    @property
    def GEMINI_API_KEY(self) -> str:
        return os.getenv('GEMINI_API_KEY', '')

    @property
    def DEVICE_AGENT_CREDENTIALS_PATH(self) -> Path:
        default = Path.home() / '.config' / 'device_agent' / 'credentials.json'
        return Path(os.getenv('DEVICE_AGENT_CREDENTIALS_PATH', str(default))).expanduser()

    @property
    def DEVICE_AGENT_ADB_PATH(self) -> str:
        return os.getenv('DEVICE_AGENT_ADB_PATH', 'adb')


CONFIG = Config()
