"""Where the decision endpoint's API key comes from."""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from device_agent.config import CONFIG

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = 'gemini_api_key'


class CredentialStore(ABC):
    @abstractmethod
    def get_credential(self) -> str:
        """The stored API key, or an empty string when none is set."""

    def has_credential(self) -> bool:
        return bool(self.get_credential())


class EnvCredentialStore(CredentialStore):
    """Reads the key from GEMINI_API_KEY (a .env file is honoured via python-dotenv)."""

    def get_credential(self) -> str:
        return CONFIG.GEMINI_API_KEY.strip()


class StaticCredentialStore(CredentialStore):
    def __init__(self, credential: str):
        self._credential = credential

    def get_credential(self) -> str:
        return self._credential


class FileCredentialStore(CredentialStore):
    """Key-value JSON file holding the API key between runs."""

    def __init__(self, path: Optional[Path | str] = None):
        self.path = Path(path) if path else CONFIG.DEVICE_AGENT_CREDENTIALS_PATH

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError):
            logger.warning(f"Ignoring unreadable credential file {self.path}", exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def get_credential(self) -> str:
        value = self._load().get(CREDENTIAL_KEY, '')
        return value.strip() if isinstance(value, str) else ''

    def save_credential(self, credential: str) -> None:
        data = self._load()
        data[CREDENTIAL_KEY] = credential.strip()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding='utf-8')
        try:
            self.path.chmod(0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {self.path}", exc_info=True)
        logger.info(f"API key saved to {self.path}")
