"""LLM client for making requests to OpenAI-compatible endpoints."""

import json
import logging
from typing import List, Dict, Any, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from .config import (
    OPENAI_API_KEY, OPENAI_BASE_URL, GENERATION_MODEL,
    GENERATION_TEMPERATURE, GENERATION_TIMEOUT
)
from .exceptions import ServiceError, ParseError

logger = logging.getLogger(__name__)


def strip_code_fences(content: str) -> str:
    """Remove optional ```json ... ``` wrapping around generated text."""
    content = content.strip()
    if content.startswith("```"):
        content = content[3:]
        if content.startswith("json"):
            content = content[4:]
        if content.endswith("```"):
            content = content[:-3]
    return content.strip()


def unwrap_list(payload: Any, *keys: str) -> List[Any]:
    """
    Pull a list out of a parsed JSON payload.

    JSON mode only returns objects, so arrays usually arrive wrapped, e.g.
    {"responses": [...]}. Named keys are tried first, then any list value.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in keys:
        if isinstance(payload.get(key), list):
            return payload[key]
    for value in payload.values():
        if isinstance(value, list):
            return value
    return []


class CompletionService:
    """Chat-completion wrapper with JSON parsing."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = GENERATION_MODEL,
        temperature: float = GENERATION_TEMPERATURE,
        timeout: float = GENERATION_TIMEOUT,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so importing never requires an API key
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=OPENAI_API_KEY,
                base_url=OPENAI_BASE_URL,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
            )
        return self._client

    async def query(
        self,
        messages: List[Dict[str, str]],
        json_mode: bool = False
    ) -> str:
        """
        Query the model and return the raw message content.

        Args:
            messages: List of message dicts with 'role' and 'content'
            json_mode: Whether to request JSON output

        Returns:
            Response text

        Raises:
            ServiceError: the request failed, timed out or returned no content
        """
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except (OpenAIError, httpx.HTTPError) as e:
            raise ServiceError(f"Error querying model {self.model}: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ServiceError(f"Model {self.model} returned an empty response")

        if response.usage is not None:
            logger.debug(
                "Model %s used %s prompt / %s completion tokens",
                self.model, response.usage.prompt_tokens, response.usage.completion_tokens
            )
        return content

    async def query_json(self, system: str, prompt: str) -> Any:
        """
        Send a system instruction and prompt, and parse the JSON reply.

        Raises:
            ServiceError: the request failed
            ParseError: the reply is not valid JSON after fence stripping
        """
        content = await self.query(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            json_mode=True
        )
        logger.debug("Raw model output: %s", content[:2000])

        try:
            return json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse JSON response: {e}; raw content: {content[:500]}") from e
