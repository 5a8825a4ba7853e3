# =============================================================================
# Resilient LLM Calls — Retry, Exponential Backoff, Fallback Substitution
# =============================================================================
#
# Every LLM call in the pipeline goes through ResilientLLM.invoke(). It is
# the system's single graceful-degradation point: callers always get a
# value back, tagged with where it came from.
#
#   Ok(value)                 — the model answered and the answer parsed
#   Degraded(value, reason)   — the stage's deterministic fallback was used
#
# RETRY (tenacity.AsyncRetrying):
#   stop after max_retries attempts; between attempts wait
#   min(base * 2^(attempt-1), max), the same schedule as RetryPolicy.delay_ms
#   failure = provider exception, timeout or empty completion
#   success → parse → Ok  (parse failure → Degraded)
#   RetryError → ExternalCallExhaustedError → Degraded via fallback
#
# A malformed response is NOT retried: the provider answered, the answer
# just did not follow the format.
#
# Waits use asyncio.sleep, so a job in backoff never blocks other jobs. The
# sleep function is handed to tenacity and is injectable in tests.
#
# Fallback exceptions are NOT caught: a broken fallback is a stage failure
# and the orchestrator marks the job failed.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt, wait_exponential

from cv_eval.config import settings
from cv_eval.exceptions import ExternalCallExhaustedError, MalformedModelResponseError
from cv_eval.services.llm import DEFAULT_SYSTEM_PROMPT, LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule for one LLM call, delays in milliseconds."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            max_retries=settings.retry_max_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
        )

    def delay_ms(self, attempt: int) -> int:
        """Wait after failed attempt `attempt` (1-indexed) before the next."""
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)

    def schedule(self) -> list[int]:
        return [self.delay_ms(attempt) for attempt in range(1, self.max_retries + 1)]


@dataclass(frozen=True)
class AttemptRecord:
    attempt: int
    ok: bool
    error: str | None = None
    delay_ms: int = 0  # Wait scheduled after this attempt (0 if none)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """The model answered and the answer was usable."""

    value: T
    attempts: tuple[AttemptRecord, ...] = ()

    degraded = False
    reason = None


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """The model was unavailable or unusable; `value` is the fallback."""

    value: T
    reason: str
    attempts: tuple[AttemptRecord, ...] = field(default=())

    degraded = True


CallResult = Ok[T] | Degraded[T]


# ---------------------------------------------------------------------------
# Wrapper
# ---------------------------------------------------------------------------


class ResilientLLM:
    """
    Retry/backoff/fallback wrapper around an LLMProvider.

    `provider=None` means no provider is configured; every call goes
    straight to the fallback.
    """

    def __init__(
        self,
        provider: LLMProvider | None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self._provider is not None

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def invoke(
        self,
        prompt: str,
        *,
        fallback: Callable[[], T],
        parse: Callable[[str], T],
        label: str = "llm",
        system: str | None = DEFAULT_SYSTEM_PROMPT,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> CallResult[T]:
        """
        Call the model and parse its answer, or return the fallback.

        Args:
            prompt: User message sent to the model.
            fallback: Zero-argument callable producing the substitute value.
            parse: Turns raw completion text into the stage value. Raises
                MalformedModelResponseError when the text is unusable.
            label: Stage name for logs.
            system, temperature, max_tokens: Per-call provider options.

        Returns:
            Ok with the parsed value, or Degraded with the fallback value.
        """
        if self._provider is None:
            logger.info("[%s] No LLM provider configured, using fallback", label)
            return Degraded(value=fallback(), reason="LLM provider not configured")

        try:
            text, attempts = await self._call_with_retry(
                prompt, label, system, temperature, max_tokens,
            )
        except ExternalCallExhaustedError as exc:
            logger.warning("[%s] %s, using fallback", label, exc)
            return Degraded(
                value=fallback(),
                reason=str(exc),
                attempts=exc.records,
            )

        try:
            value = parse(text)
        except MalformedModelResponseError as exc:
            logger.warning("[%s] Malformed model response (%s), using fallback", label, exc)
            return Degraded(
                value=fallback(),
                reason=f"Malformed model response: {exc}",
                attempts=attempts,
            )

        return Ok(value=value, attempts=attempts)

    async def _call_with_retry(
        self,
        prompt: str,
        label: str,
        system: str | None,
        temperature: float | None,
        max_tokens: int | None,
    ) -> tuple[str, tuple[AttemptRecord, ...]]:
        policy = self._policy
        records: list[AttemptRecord] = []

        def record_failure(retry_state: RetryCallState) -> None:
            delay_ms = round(retry_state.next_action.sleep * 1000)
            exc = retry_state.outcome.exception()
            records.append(AttemptRecord(
                attempt=retry_state.attempt_number, ok=False, error=str(exc), delay_ms=delay_ms,
            ))
            logger.warning(
                "[%s] LLM call failed (attempt %d): %s. Retrying in %dms...",
                label, retry_state.attempt_number, exc, delay_ms,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_retries),
            wait=wait_exponential(
                multiplier=policy.base_delay_ms / 1000,
                max=policy.max_delay_ms / 1000,
            ),
            sleep=self._sleep,
            before_sleep=record_failure,
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    logger.info(
                        "[%s] LLM call attempt %d/%d",
                        label, attempt.retry_state.attempt_number, policy.max_retries,
                    )
                    response = await self._provider.complete(
                        messages=[{"role": "user", "content": prompt}],
                        system=system,
                        temperature=temperature,
                        max_tokens=max_tokens,
                    )
                    if not response.content or not response.content.strip():
                        raise ValueError("No content received from LLM provider")
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            records.append(AttemptRecord(
                attempt=exc.last_attempt.attempt_number, ok=False, error=str(last_error),
            ))
            logger.warning(
                "[%s] LLM call failed (attempt %d): %s",
                label, exc.last_attempt.attempt_number, last_error,
            )
            raise ExternalCallExhaustedError(
                policy.max_retries, last_error, records=tuple(records),
            ) from last_error

        records.append(AttemptRecord(attempt=len(records) + 1, ok=True))
        logger.info(
            "[%s] LLM call succeeded (model=%s, tokens=%d+%d)",
            label, response.model, response.input_tokens, response.output_tokens,
        )
        return response.content, tuple(records)
