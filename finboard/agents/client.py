"""
Model Client

The only place that talks to the language model. Agents receive a
`generate` callable instead of a client, so tests (and other model
providers) can swap it out without touching any prompt code.
"""

import base64
import re
from typing import Awaitable, Optional, Protocol

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from finboard.config import GeminiSettings, get_settings


logger = structlog.get_logger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class InlineMedia(BaseModel):
    """An image sent alongside a prompt (e.g. a scanned receipt)."""

    mime_type: str = Field(..., pattern=r"^(image/(jpeg|png|webp|heic)|application/pdf)$")
    data: bytes

    @classmethod
    def from_data_uri(cls, uri: str) -> "InlineMedia":
        """
        Parse 'data:<mimetype>;base64,<encoded_data>'.

        Raises:
            ValueError: if the URI is not a base64 data URI.
        """
        match = _DATA_URI.match(uri.strip())
        if not match:
            raise ValueError("Expected a data URI of the form 'data:<mimetype>;base64,<data>'")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except ValueError as e:
            raise ValueError(f"Data URI is not valid base64: {e}") from e
        return cls(mime_type=match.group("mime").lower(), data=data)

    def to_part(self) -> dict:
        return {"mime_type": self.mime_type, "data": self.data}


class GenerateFn(Protocol):
    """Signature of the model call the agents depend on."""

    def __call__(
        self,
        prompt: str,
        media: Optional[InlineMedia] = None,
    ) -> Awaitable[str]:
        ...


class GeminiClient:
    """
    Gemini-backed implementation of GenerateFn.

    Retries transient failures with exponential backoff.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def __call__(
        self,
        prompt: str,
        media: Optional[InlineMedia] = None,
    ) -> str:
        return await self.generate(prompt, media)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def generate(
        self,
        prompt: str,
        media: Optional[InlineMedia] = None,
    ) -> str:
        """Send one prompt (plus optional image) and return the response text."""
        contents: list = [prompt]
        if media is not None:
            contents.append(media.to_part())

        logger.debug(
            "model_request",
            model=self._settings.model_name,
            prompt_chars=len(prompt),
            has_media=media is not None,
        )
        response = await self._model.generate_content_async(contents)
        return response.text.strip()
