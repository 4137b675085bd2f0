"""Readiness probing for TCP and HTTP targets."""

from __future__ import annotations

import logging
import socket
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_delay, stop_never, wait_fixed

from .errors import ProbeAttemptFailure, TargetUnreachable
from .target import HttpTarget, Target, TcpTarget

logger = logging.getLogger("wait-for")

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_POLL_INTERVAL = 1.0
# Share of the poll interval a single attempt may use when no explicit
# attempt timeout is configured.
ATTEMPT_TIMEOUT_RATIO = 0.9
SERVER_ERROR_STATUS = 500


@dataclass(frozen=True)
class ProbeConfig:
    """Immutable settings for one probing run."""

    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    quiet: bool = False
    attempt_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be > 0")

    @property
    def bounded(self) -> bool:
        return self.timeout_seconds != 0

    @property
    def effective_attempt_timeout(self) -> float:
        if self.attempt_timeout is not None:
            return self.attempt_timeout
        return self.poll_interval * ATTEMPT_TIMEOUT_RATIO


class ProbeStatus(Enum):
    """Terminal result of a probing run."""

    READY = auto()
    TIMED_OUT = auto()
    UNREACHABLE = auto()


@dataclass(frozen=True)
class ProbeOutcome:
    status: ProbeStatus
    attempts: int
    elapsed: float
    reason: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status is ProbeStatus.READY


class ReadinessProber:
    """Poll a target on a fixed interval until it is ready or time runs out."""

    def __init__(
        self,
        target: Target,
        config: ProbeConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.target = target
        self.config = config
        self._sleep = sleep
        self._session: Optional[requests.Session] = None
        self._started = 0.0
        self._attempts = 0

    def _elapsed(self) -> float:
        return time.monotonic() - self._started

    def _check_tcp(self, target: TcpTarget) -> None:
        try:
            with socket.create_connection(
                (target.host, target.port), timeout=self.config.effective_attempt_timeout
            ):
                pass
        except UnicodeError as exc:
            raise TargetUnreachable(f"Cannot encode host name {target.host!r}: {exc}") from exc
        except OSError as exc:
            raise ProbeAttemptFailure(f"Connection to {target} failed: {exc}") from exc

    def _http_session(self) -> requests.Session:
        if self._session is None:
            session = requests.Session()
            session.trust_env = False
            self._session = session
        return self._session

    def _check_http(self, target: HttpTarget) -> None:
        try:
            response = self._http_session().get(
                target.url,
                timeout=self.config.effective_attempt_timeout,
                allow_redirects=False,
                stream=True,
            )
        except (requests.exceptions.InvalidURL, requests.exceptions.InvalidSchema, requests.exceptions.MissingSchema) as exc:
            raise TargetUnreachable(f"Invalid URL {target.url}: {exc}") from exc
        except requests.RequestException as exc:
            raise ProbeAttemptFailure(f"Failed to send HTTP request to {target.url}: {exc}") from exc
        with response:
            status = response.status_code
        if status >= SERVER_ERROR_STATUS:
            raise ProbeAttemptFailure(f"HTTP request to {target.url} failed with status: {status}")
        logger.debug("HTTP request to %s answered with status %s", target.url, status)

    def attempt(self) -> None:
        """Run one probe attempt, raising on failure."""

        self._attempts += 1
        if isinstance(self.target, HttpTarget):
            self._check_http(self.target)
        else:
            self._check_tcp(self.target)

    def _log_failure(self, retry_state: RetryCallState) -> None:
        if self.config.quiet or retry_state.outcome is None:
            return
        logger.info("Check failed: %s", retry_state.outcome.exception())

    def _log_retry(self, retry_state: RetryCallState) -> None:
        if not self.config.quiet:
            logger.debug("Retrying in %s second(s)...", self.config.poll_interval)

    def _timed_out(self, retry_state: RetryCallState) -> ProbeOutcome:
        reason = None
        if retry_state.outcome is not None:
            reason = str(retry_state.outcome.exception())
        if not self.config.quiet:
            logger.info("Gave up on %s after %d attempt(s)", self.target, self._attempts)
        return ProbeOutcome(
            status=ProbeStatus.TIMED_OUT,
            attempts=self._attempts,
            elapsed=self._elapsed(),
            reason=reason,
        )

    def _retrying(self) -> Retrying:
        stop = stop_after_delay(self.config.timeout_seconds) if self.config.bounded else stop_never
        return Retrying(
            stop=stop,
            wait=wait_fixed(self.config.poll_interval),
            retry=retry_if_exception_type(ProbeAttemptFailure),
            sleep=self._sleep,
            after=self._log_failure,
            before_sleep=self._log_retry,
            retry_error_callback=self._timed_out,
        )

    def run(self) -> ProbeOutcome:
        """Probe until ready, timed out or unreachable."""

        self._started = time.monotonic()
        self._attempts = 0
        if not self.config.quiet:
            logger.info("Waiting for %s to become available...", self.target)
        retrying = self._retrying()
        try:
            result = retrying(self.attempt)
        except TargetUnreachable as exc:
            if not self.config.quiet:
                logger.info("Giving up on %s: %s", self.target, exc)
            return ProbeOutcome(
                status=ProbeStatus.UNREACHABLE,
                attempts=self._attempts,
                elapsed=self._elapsed(),
                reason=str(exc),
            )
        finally:
            if self._session is not None:
                self._session.close()
                self._session = None

        if isinstance(result, ProbeOutcome):
            return result
        if not self.config.quiet:
            logger.info("%s is available after %d attempt(s)", self.target, self._attempts)
        return ProbeOutcome(status=ProbeStatus.READY, attempts=self._attempts, elapsed=self._elapsed())


def probe(target: Target, config: ProbeConfig) -> ProbeOutcome:
    """Block until ``target`` is ready or the configured timeout elapses."""

    return ReadinessProber(target, config).run()


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_TIMEOUT_SECONDS",
    "ProbeConfig",
    "ProbeOutcome",
    "ProbeStatus",
    "ReadinessProber",
    "probe",
]
