"""
Gemini generateContent proxy with key rotation and failover.

Each accepted request moves the shared cursor exactly once, then tries the
pool one key at a time, starting at the cursor's old position, until a key
succeeds or the upstream rejects the request itself.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

import httpx

from .key_rotator import KeyRotator
from ..config import settings

logger = logging.getLogger(__name__)


class FailureClass(str, Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify(status: int) -> FailureClass:
    """429 (rate limit), 403 (quota) and 5xx are tied to one key; anything else is the request's fault."""
    if status in (429, 403) or status >= 500:
        return FailureClass.RETRYABLE
    return FailureClass.FATAL


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"
    NETWORK_ERROR = "network_error"


@dataclass
class AttemptOutcome:
    """Result of one POST made with one key."""

    kind: OutcomeKind
    key_index: int
    status_code: Optional[int] = None
    body: Any = None
    message: str = ""


@dataclass
class GenerateResult:
    """A successful generate() call."""

    payload: Any
    key_index: int
    attempts: list[AttemptOutcome] = field(default_factory=list)


class GenerationError(Exception):
    """Failure that reaches the caller, with the HTTP status it should answer with."""

    status_code = 500

    def __init__(self, error: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.error, "details": self.details}


class ConfigurationError(GenerationError):
    """No usable API keys are configured."""

    status_code = 500


class BadRequestError(GenerationError):
    status_code = 400


class UpstreamFatalError(GenerationError):
    """Upstream rejected the request content, so another key would not help."""


class KeysExhaustedError(GenerationError):
    """Every key failed. Only the last failure is kept."""


def _is_missing(value: Any) -> bool:
    """None, "", 0 and False count as absent; {} and [] are forwarded."""
    if value is None or value == "":
        return True
    return isinstance(value, (int, float)) and not value


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


class GeminiProxy:
    """
    Sends generateContent requests through a pool of Gemini API keys.

    Failover rules per key:
      - 2xx: return the parsed body, stop
      - 429 / 403 / 5xx: remember the failure, try the next key
      - other statuses: raise UpstreamFatalError, remaining keys untried
      - transport errors, timeouts, unreadable success bodies: try the next key
    """

    def __init__(
        self,
        keys: list[str],
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 8.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self._rotator = KeyRotator(keys, name="Gemini") if keys else None
        if self._rotator is None:
            logger.warning("Gemini: no API keys configured, text generation is disabled")
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=httpx.Timeout(timeout))

    @property
    def key_count(self) -> int:
        return self._rotator.key_count if self._rotator else 0

    @property
    def cursor(self) -> int:
        return self._rotator.position if self._rotator else 0

    def close(self) -> None:
        self._client.close()

    def _attempt(self, model: str, payload: Any, key_index: int, key: str) -> AttemptOutcome:
        try:
            response = self._client.post(
                f"{self._base_url}/{model}:generateContent",
                params={"key": key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            if response.is_success:
                return AttemptOutcome(
                    OutcomeKind.SUCCESS, key_index, response.status_code, response.json()
                )
        except (httpx.HTTPError, ValueError) as e:
            return AttemptOutcome(
                OutcomeKind.NETWORK_ERROR, key_index, message=str(e) or type(e).__name__
            )

        if classify(response.status_code) is FailureClass.RETRYABLE:
            kind = OutcomeKind.RETRYABLE_FAILURE
        else:
            kind = OutcomeKind.FATAL_FAILURE
        return AttemptOutcome(kind, key_index, response.status_code, _error_body(response))

    def generate(self, model: Any, payload: Any) -> GenerateResult:
        """
        Call `<base_url>/<model>:generateContent` with failover across the key pool.

        Raises:
            ConfigurationError: the pool is empty
            BadRequestError: model or payload missing (cursor untouched)
            UpstreamFatalError: upstream rejected the request (its status and body)
            KeysExhaustedError: every key failed (last status and body)
        """
        if self._rotator is None:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variables are not set on the server."
            )
        if not isinstance(model, str) or not model.strip() or _is_missing(payload):
            raise BadRequestError("Missing model or payload in request body.")

        start = self._rotator.advance()
        attempts: list[AttemptOutcome] = []
        last_status = 500
        last_error: Any = None

        for key_index, key in self._rotator.attempt_order(start):
            outcome = self._attempt(model, payload, key_index, key)
            attempts.append(outcome)

            if outcome.kind is OutcomeKind.SUCCESS:
                return GenerateResult(payload=outcome.body, key_index=key_index, attempts=attempts)

            if outcome.kind is OutcomeKind.FATAL_FAILURE:
                logger.error(
                    f"Gemini API fatal error with key {key_index} "
                    f"(status {outcome.status_code}): {outcome.body}"
                )
                raise UpstreamFatalError(
                    f"Gemini API call failed with status {outcome.status_code}",
                    details=outcome.body,
                    status_code=outcome.status_code,
                )

            if outcome.kind is OutcomeKind.NETWORK_ERROR:
                logger.warning(
                    f"Gemini: network error with key {key_index} ({outcome.message}), "
                    "trying next key"
                )
                last_error = {"message": outcome.message}
            else:
                logger.warning(
                    f"Gemini: key {key_index} failed with status {outcome.status_code}, "
                    "trying next key"
                )
                last_status = outcome.status_code
                last_error = outcome.body

        logger.error(f"Gemini: all {len(attempts)} API key(s) exhausted (last status {last_status})")
        raise KeysExhaustedError(
            "All available Gemini API keys failed.",
            details=last_error,
            status_code=last_status,
        )


@lru_cache()
def get_gemini_proxy() -> GeminiProxy:
    """Process-wide proxy built from the configured key slots."""
    return GeminiProxy(
        settings.gemini_key_list,
        base_url=settings.gemini_api_url,
        timeout=settings.gemini_timeout_seconds,
    )
