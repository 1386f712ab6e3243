"""
Run creation.

The ingestion handler hands a run input and its configuration to a
RunCreator, which starts a manager-graph run and returns its identifiers.
Callers pass an idempotency key per originating event; creators use it to
keep at most one active run per issue and trigger.
"""

import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from swe_intake.config.settings import RunSettings
from swe_intake.models.state import StateUpdate

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RunHandle:
    """Identifiers of a created (or already active) run."""

    run_id: str
    thread_id: str
    created: bool = True


class RunCreator(ABC):
    """Starts manager-graph runs."""

    @abstractmethod
    async def create_run(
        self,
        run_input: StateUpdate,
        configurable: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> RunHandle:
        """Create a run.

        Args:
            run_input: Initial state for the run
            configurable: Run configuration overrides (tracker, models)
            idempotency_key: Identifies the originating event; a repeated key
                must not start a second active run

        Raises:
            RunCreationError: If the run cannot be created
        """
        pass


@dataclass
class SubmittedRun:
    handle: RunHandle
    run_input: StateUpdate
    configurable: dict[str, Any]


@dataclass
class LocalRunCreator(RunCreator):
    """In-process run registry.

    A key stays active until `complete` releases it or `dedup_window`
    seconds pass, whichever comes first. With no window a key is held
    until released. At most `max_recorded_runs` submitted runs are kept,
    newest last.
    """

    dedup_window: float | None = None
    max_recorded_runs: int | None = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    runs: list[SubmittedRun] = field(default_factory=list)
    _active: dict[str, tuple[RunHandle, float]] = field(default_factory=dict, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: RunSettings) -> "LocalRunCreator":
        return cls(dedup_window=settings.dedup_window_seconds, max_recorded_runs=settings.max_recorded_runs)

    async def create_run(
        self,
        run_input: StateUpdate,
        configurable: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> RunHandle:
        async with self._lock:
            self._expire()
            if idempotency_key is not None and idempotency_key in self._active:
                existing, _ = self._active[idempotency_key]
                log.info(
                    "run_already_active",
                    idempotency_key=idempotency_key,
                    run_id=existing.run_id,
                    thread_id=existing.thread_id,
                )
                return RunHandle(run_id=existing.run_id, thread_id=existing.thread_id, created=False)

            handle = RunHandle(run_id=str(uuid.uuid4()), thread_id=str(uuid.uuid4()))
            if idempotency_key is not None:
                self._active[idempotency_key] = (handle, self.clock())
            self._record(SubmittedRun(handle=handle, run_input=run_input, configurable=dict(configurable)))

        log.info("run_created", run_id=handle.run_id, thread_id=handle.thread_id, idempotency_key=idempotency_key)
        return handle

    def complete(self, idempotency_key: str) -> None:
        """Mark the run for `idempotency_key` finished so a new one may start."""
        self._active.pop(idempotency_key, None)

    def active_run(self, idempotency_key: str) -> RunHandle | None:
        self._expire()
        entry = self._active.get(idempotency_key)
        return entry[0] if entry else None

    def _expire(self) -> None:
        if self.dedup_window is None:
            return
        cutoff = self.clock() - self.dedup_window
        for key in [key for key, (_, started) in self._active.items() if started <= cutoff]:
            log.debug("run_key_expired", idempotency_key=key)
            del self._active[key]

    def _record(self, submitted: SubmittedRun) -> None:
        self.runs.append(submitted)
        if self.max_recorded_runs is not None and len(self.runs) > self.max_recorded_runs:
            del self.runs[: len(self.runs) - self.max_recorded_runs]
