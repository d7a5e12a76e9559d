from __future__ import annotations

import logging
from typing import Optional

import httpx
import openai
from openai import OpenAI

from radsim.core import config

logger = logging.getLogger(__name__)


class TextGenerationError(Exception):
    """The grading service could not produce a reply."""


class TextGenerationConfigError(TextGenerationError):
    """The grading service is not configured (no API key)."""


class OpenRouterClient:
    """
    Chat-completions client for OpenRouter, through the OpenAI SDK.
    One synchronous request per call; no retries so a learner is never
    kept waiting past the configured timeout.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = config.OPENROUTER_BASE_URL,
        model: str = config.OPENROUTER_MODEL,
        temperature: float = config.LLM_TEMPERATURE,
        max_tokens: int = config.LLM_MAX_TOKENS,
        timeout: float = config.LLM_TIMEOUT_S,
        app_origin: str = config.APP_ORIGIN,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = config.OPENROUTER_API_KEY if api_key is None else api_key
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.app_origin = app_origin
        self._http_client = http_client
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers={"HTTP-Referer": self.app_origin, "X-Title": "RadSim"},
                http_client=self._http_client,
            )
        return self._client

    def generate(self, prompt: str, system_instruction: str) -> str:
        if not self.configured:
            raise TextGenerationConfigError("OpenRouter API key is missing")

        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APITimeoutError as e:
            raise TextGenerationError(f"request timed out after {self.timeout:g}s") from e
        except openai.APIStatusError as e:
            raise TextGenerationError(f"HTTP {e.status_code} from the grading service") from e
        except openai.APIError as e:
            raise TextGenerationError(f"connection error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise TextGenerationError("empty reply from the grading service")
        return content

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
