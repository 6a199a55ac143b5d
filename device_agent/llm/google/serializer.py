import io
from typing import Any

from google.genai.types import (
	AutomaticFunctionCallingConfig,
	Content,
	FunctionDeclaration,
	GenerateContentConfig,
	Part,
	Schema,
	Tool,
	Type,
)
from PIL import Image

from device_agent.agent.prompts import describe_catalog

_SCHEMA_TYPES = {
	'string': Type.STRING,
	'integer': Type.INTEGER,
	'boolean': Type.BOOLEAN,
	'number': Type.NUMBER,
}


def encode_screenshot(screenshot: bytes | Image.Image) -> bytes:
	"""Return PNG bytes for a screenshot given as raw PNG bytes or a Pillow image."""
	if isinstance(screenshot, (bytes, bytearray)):
		return bytes(screenshot)
	buffer = io.BytesIO()
	screenshot.save(buffer, format='PNG')
	return buffer.getvalue()


class GoogleRequestSerializer:
	"""Builds Gemini generateContent requests for one agent turn."""

	@staticmethod
	def serialize_turn(prompt: str, screenshot: bytes | Image.Image) -> list[Content]:
		"""
		A single user turn: the framing or continuation prompt followed by the
		screenshot as an inline PNG part. The SDK base64-encodes inline data
		on the wire.
		"""
		return [
			Content(
				role='user',
				parts=[
					Part.from_text(text=prompt),
					Part.from_bytes(data=encode_screenshot(screenshot), mime_type='image/png'),
				],
			)
		]

	@staticmethod
	def serialize_catalog(catalog: str) -> list[Tool]:
		declarations = []
		for entry in describe_catalog(catalog):
			params: dict[str, Any] = entry['parameters']
			parameters = None
			if params:
				parameters = Schema(
					type=Type.OBJECT,
					properties={
						name: Schema(type=_SCHEMA_TYPES[type_name], description=description)
						for name, (type_name, description) in params.items()
					},
					required=list(entry['required']),
				)
			declarations.append(
				FunctionDeclaration(name=entry['name'], description=entry['description'], parameters=parameters)
			)
		return [Tool(function_declarations=declarations)]

	@staticmethod
	def build_config(catalog: str, temperature: float, max_output_tokens: int) -> GenerateContentConfig:
		return GenerateContentConfig(
			temperature=temperature,
			max_output_tokens=max_output_tokens,
			tools=GoogleRequestSerializer.serialize_catalog(catalog),
			automatic_function_calling=AutomaticFunctionCallingConfig(disable=True),
		)
