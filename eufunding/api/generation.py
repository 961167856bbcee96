"""
Text generation API using OpenAI chat completions.
"""

import json
import logging
import os
import re
from typing import Any, Optional

from openai import OpenAI

from eufunding.core.errors import GenerationError

logger = logging.getLogger(__name__)


DEFAULT_MODEL = "gpt-4o-mini"

# Models often wrap JSON in markdown fences despite instructions
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class TextGenerationClient:
    """Client for prompt → text / JSON generation."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize generation client.

        Args:
            model: Chat model to use (OPENAI_MODEL or gpt-4o-mini by default)
            api_key: OpenAI key (OPENAI_API_KEY by default)
            client: Pre-built OpenAI-compatible client, mainly for tests
        """
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_MODEL

        if client is not None:
            self.client = client
        else:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise GenerationError(
                    "OPENAI_API_KEY environment variable not set. "
                    "Get your key from: https://platform.openai.com/api-keys"
                )
            self.client = OpenAI(api_key=api_key)

        logger.info(f"Text generation client initialized with model: {self.model}")

    def generate_text(self, prompt: str, temperature: float = 0.7) -> str:
        """
        Generate text for a prompt.

        Raises:
            GenerationError: if the API call fails
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise GenerationError(f"Text generation failed: {e}") from e

        content = response.choices[0].message.content or ""
        return content.strip()

    def generate_json(self, prompt: str, temperature: float = 0.2) -> Any:
        """
        Generate and parse a JSON response.

        Raises:
            GenerationError: if the API call fails or the output is not JSON
        """
        text = self.generate_text(prompt, temperature=temperature)
        return parse_json_response(text)


def parse_json_response(text: str) -> Any:
    """
    Parse model output as JSON, tolerating markdown code fences.

    Examples:
        >>> parse_json_response('```json\\n{"a": 1}\\n```')
        {'a': 1}
    """
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost object in surrounding prose
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise GenerationError(f"Model returned invalid JSON: {cleaned[:200]}")


# Singleton instance
_client = None


def get_generation_client() -> TextGenerationClient:
    """Get or create the global generation client."""
    global _client
    if _client is None:
        _client = TextGenerationClient()
    return _client
