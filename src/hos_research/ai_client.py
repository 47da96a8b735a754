"""HTTP client for the ``/ai/chat`` proxy route.

One POST per call, run on a worker thread so that a single wall-clock deadline
(45 seconds by default) covers the whole call, headers and body included.
Nothing is retried: HTTP errors raise ``AIServiceError``, a timeout raises
``AITimeoutError``, and any other transport failure propagates from requests.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import requests

from hos_research.config import Settings
from hos_research.errors import AIServiceError, AITimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 45.0


@dataclass
class AIMessage:
    role: str
    content: str


@dataclass
class AIResponse:
    content: str
    latency_ms: int
    tokens_used: Optional[int] = None
    model: Optional[str] = None


class AIClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout_sec: float = DEFAULT_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIClient":
        return cls(settings.ai_server_url, settings.public_anon_key, settings.ai_timeout_sec)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def chat(self, messages: Sequence[AIMessage], temperature: float = 0.7) -> AIResponse:
        payload = {
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
        }
        started = time.monotonic()
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = pool.submit(
            requests.post,
            f"{self.base_url}/ai/chat",
            json=payload,
            headers=self._headers(),
            timeout=self.timeout_sec,
        )
        try:
            resp = future.result(timeout=self.timeout_sec)
        except (concurrent.futures.TimeoutError, requests.Timeout) as exc:
            future.cancel()
            logger.error("AI request timed out after %ss", self.timeout_sec)
            raise AITimeoutError(self.timeout_sec) from exc
        finally:
            # An abandoned worker ends on its own per-read timeout.
            pool.shutdown(wait=False)

        if not resp.ok:
            logger.error("AI server error (%s): %s", resp.status_code, resp.text)
            raise AIServiceError(resp.status_code, resp.text)

        data = resp.json()
        return AIResponse(
            content=data.get("content") or "",
            tokens_used=data.get("tokensUsed"),
            latency_ms=int((time.monotonic() - started) * 1000),
            model=data.get("model"),
        )

    def ask(self, system: str, user: str, temperature: float = 0.7) -> str:
        messages: List[AIMessage] = [AIMessage("system", system), AIMessage("user", user)]
        return self.chat(messages, temperature=temperature).content
