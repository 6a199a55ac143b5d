from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from google import genai
from google.genai.types import GenerateContentResponse, HttpOptions

from device_agent.agent.prompts import build_prompt
from device_agent.agent.protocol import classify_candidate, translate_reply
from device_agent.agent.views import BaseAction, default_action
from device_agent.credentials import CredentialStore, EnvCredentialStore
from device_agent.exceptions import ProtocolError, TransportError
from device_agent.llm.google.serializer import GoogleRequestSerializer

if TYPE_CHECKING:
    from PIL import Image

    from device_agent.agent.settings import AgentSettings

logger = logging.getLogger(__name__)


@dataclass
class DecisionExchange:
    """What was sent and received for the most recent decision request."""
    prompt: str
    response_json: Optional[str] = None
    action: Optional[BaseAction] = None
    error: Optional[str] = None


class DecisionClient:
    """
    Asks the decision endpoint for the next action on the current screen.

    Never raises: a failed round-trip yields None so the caller retries the
    turn, while a received but undecodable reply yields the default wait
    action so the task keeps moving.
    """

    def __init__(
        self,
        settings: AgentSettings,
        credentials: Optional[CredentialStore] = None,
        client: Optional[Any] = None,
    ):
        self.settings = settings
        self.credentials = credentials or EnvCredentialStore()
        self._client = client
        self.last_exchange: Optional[DecisionExchange] = None

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self.credentials.get_credential()
            if not api_key:
                raise TransportError("No API key configured for the decision endpoint")
            self._client = genai.Client(
                api_key=api_key,
                http_options=HttpOptions(timeout=int(self.settings.request_timeout_seconds * 1000)),
            )
        return self._client

    async def get_next_action(
        self,
        task: str,
        screenshot: bytes | Image.Image,
        is_first_turn: bool,
        screen_size: tuple[int, int],
    ) -> Optional[BaseAction]:
        prompt = build_prompt(task, is_first_turn, self.settings.catalog)
        exchange = DecisionExchange(prompt=prompt)
        self.last_exchange = exchange

        try:
            client = self._get_client()
            response = await client.aio.models.generate_content(
                model=self.settings.model,
                contents=GoogleRequestSerializer.serialize_turn(prompt, screenshot),
                config=GoogleRequestSerializer.build_config(
                    self.settings.catalog,
                    self.settings.temperature,
                    self.settings.max_output_tokens,
                ),
            )
        except Exception as e:
            logger.error(f"Decision request failed: {type(e).__name__}: {e}")
            exchange.error = str(e)
            return None

        try:
            exchange.response_json = response.model_dump_json(exclude_none=True)
        except Exception:
            logger.debug("Could not serialize decision response", exc_info=True)
        logger.debug(f"Decision response: {exchange.response_json}")

        action = self.parse_response(response, screen_size)
        exchange.action = action
        return action

    def parse_response(self, response: GenerateContentResponse, screen_size: tuple[int, int]) -> Optional[BaseAction]:
        candidates = getattr(response, 'candidates', None)
        if not candidates:
            logger.error("No candidates in decision response")
            return None

        try:
            reply = classify_candidate(candidates[0], self.settings.catalog)
            return translate_reply(reply, screen_size)
        except ProtocolError as e:
            logger.error(f"Error parsing decision response: {e}")
            return default_action()
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} parsing decision response: {e}", exc_info=True)
            return default_action()
