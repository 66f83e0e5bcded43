import json
import logging
from typing import Any, Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)


class AIResponseError(Exception):
    """The generative API failed or answered with something unusable"""


class GeminiService:
    """Client for the Gemini generateContent REST endpoint"""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.timeout = timeout or config.GEMINI_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        prompt: str,
        json_output: bool = True,
        inline_data: Optional[dict[str, str]] = None,
    ) -> str:
        """
        Send a prompt and return the text of the first candidate.

        Args:
            prompt: Prompt text
            json_output: Ask the model for a JSON response body
            inline_data: Optional {"mimeType", "data"} attachment (base64 image or PDF)

        Raises:
            AIResponseError: Missing key, HTTP failure or an empty candidate list
        """
        if not self.configured:
            raise AIResponseError("Gemini API key not configured")

        parts: list[dict[str, Any]] = [{"text": prompt}]
        if inline_data:
            parts.append({"inlineData": inline_data})

        payload: dict[str, Any] = {"contents": [{"parts": parts}]}
        if json_output:
            payload["generationConfig"] = {"responseMimeType": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.BASE_URL}/{self.model}:generateContent",
                    headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Gemini request failed: {e}")
            raise AIResponseError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"❌ Gemini API error: {response.status_code} - {response.text[:500]}")
            raise AIResponseError(f"Gemini API error ({response.status_code})")

        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIResponseError("Unexpected Gemini response structure") from e


def extract_json(text: str, expect_array: bool = False) -> Any:
    """
    Pull the first JSON value of the expected kind out of model output.

    The whole text is tried first. Otherwise every opening bracket is a
    candidate start and raw_decode parses exactly one value from it, so
    prose and trailing commentary around the payload do not matter.
    """
    expected = list if expect_array else dict
    opener = "[" if expect_array else "{"

    if not text:
        raise AIResponseError("Empty AI response")

    try:
        value = json.loads(text)
        if isinstance(value, expected):
            return value
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    index = text.find(opener)
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
            if isinstance(value, expected):
                return value
        except json.JSONDecodeError:
            pass
        index = text.find(opener, index + 1)

    raise AIResponseError(f"No JSON {'array' if expect_array else 'object'} found in AI response")
