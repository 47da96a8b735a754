from __future__ import annotations

from typing import Optional


class ConfigError(RuntimeError):
    """Settings failed start-up validation."""


class AIServiceError(RuntimeError):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"AI server error ({status_code}): {detail}")


class AITimeoutError(TimeoutError):
    def __init__(self, timeout_sec: float):
        self.timeout_sec = timeout_sec
        super().__init__(
            f"AI request timeout after {timeout_sec:g}s - complex research tasks may take a moment, try again"
        )


class LLMProviderError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
