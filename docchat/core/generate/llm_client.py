import json
import logging
import httpx
import time
import random
from typing import Generator, List, Dict, Any, Optional
from docchat.core.errors import GenerationError
from docchat.config.settings import settings

logger = logging.getLogger(__name__)

class _RateLimited(Exception):
    pass

class LLMClient:
    """
    OpenRouter API Client for document-grounded generation.
    Streams text chunks; connection attempts are retried (with model fallback)
    only while nothing has been yielded yet.
    """

    def __init__(self):
        self.api_key = settings.openrouter_api_key
        self.config = settings.llm
        self.base_url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        self.headers = {
            "Authorization": f"Bearer {self.api_key}" if self.api_key else "",
            "HTTP-Referer": "https://docchat.local",
            "X-Title": "DocChat",
            "Content-Type": "application/json"
        }
        self.max_retries = self.config.max_retries
        self.base_delay = 2.0

    def generate(self,
                 messages: List[Dict[str, str]],
                 temperature: Optional[float] = None,
                 max_tokens: Optional[int] = None) -> Generator[str, None, None]:
        """
        Calls the OpenRouter API in streaming mode and yields text chunks.
        Raises GenerationError on any failure.
        """
        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "stream": True
        }

        if not self.api_key:
            logger.warning("OPENROUTER_API_KEY is not set. LLM calls will fail.")

        return self._stream_with_fallback(payload)

    def _stream_with_fallback(self, payload: Dict[str, Any]) -> Generator[str, None, None]:
        original_model = payload["model"]
        yielded = False
        try:
            for chunk in self._stream_response(payload):
                yielded = True
                yield chunk
            return
        except GenerationError as e:
            fallback = self.config.fallback_model
            if yielded or not fallback or original_model == fallback:
                raise
            logger.warning(f"Streaming failed for {original_model}: {e}. Trying fallback.")

        payload = {**payload, "model": self.config.fallback_model}
        yield from self._stream_response(payload)

    def _stream_response(self, payload: Dict[str, Any]) -> Generator[str, None, None]:
        for attempt in range(self.max_retries):
            yielded = False
            try:
                with httpx.Client(timeout=self.config.timeout) as client:
                    with client.stream("POST", self.base_url, headers=self.headers, json=payload) as response:
                        if response.status_code == 429:
                            raise _RateLimited()

                        response.raise_for_status()
                        for line in response.iter_lines():
                            content = self._parse_line(line)
                            if content is None:
                                break
                            if content:
                                yielded = True
                                yield content
                        return
            except _RateLimited:
                if attempt == self.max_retries - 1:
                    raise GenerationError("Rate limited by generation service")
                delay = self.base_delay * (2 ** attempt) + random.uniform(0, 1)
                logger.warning(f"Rate limited (429) during stream initiation. Retrying in {delay:.2f}s...")
                time.sleep(delay)
            except httpx.HTTPError as e:
                if yielded:
                    raise GenerationError(f"Stream interrupted: {e}") from e
                raise GenerationError(f"Generation request failed: {e}") from e

    @staticmethod
    def _parse_line(line: str) -> Optional[str]:
        """
        Returns the delta text of one SSE line, "" for lines without text,
        and None at the end-of-stream marker.
        """
        if not line:
            return ""
        if line.startswith("data: "):
            line = line[6:]
        if line.strip() == "[DONE]":
            return None
        try:
            chunk = json.loads(line)
        except json.JSONDecodeError:
            return ""
        if "error" in chunk:
            raise GenerationError(f"Generation service error: {chunk['error']}")
        if "choices" in chunk and chunk["choices"]:
            return chunk["choices"][0].get("delta", {}).get("content") or ""
        return ""
