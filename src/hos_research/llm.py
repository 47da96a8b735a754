from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

import openai
from openai import OpenAI

from hos_research.config import Settings
from hos_research.errors import ConfigError, LLMProviderError

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    content: str
    tokens_used: int = 0
    model: Optional[str] = None


class ChatProvider(Protocol):
    def complete(self, messages: List[dict], temperature: float, max_tokens: int) -> Completion:
        ...


class OpenAIChatProvider:
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        if client is None and not settings.openai_api_key:
            raise ConfigError("OPENAI_API_KEY is not configured")
        self.model = settings.openai_model
        self.client = client or OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )

    def complete(self, messages: List[dict], temperature: float, max_tokens: int) -> Completion:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=messages,
            )
        except openai.APIStatusError as exc:
            logger.error("OpenAI API error (%s): %s", exc.status_code, exc.message)
            raise LLMProviderError(f"OpenAI API error: {exc.message}", status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            logger.error("OpenAI request failed: %s", exc)
            raise LLMProviderError(f"OpenAI request failed: {exc}") from exc

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        tokens_used = completion.usage.total_tokens if completion.usage else 0
        return Completion(content=content, tokens_used=tokens_used, model=completion.model)
