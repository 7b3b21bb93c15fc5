"""
Process-wide model availability state.

One ModelAvailabilityService is built at process start and threaded through
every AvailabilityContext. It records, per model, whether the model is
terminal (never retry this session) or sticky-retry (retry once per logical
turn). Several retry loops may hit the same exhausted model at once, so all
mutations are idempotent and serialized by a lock.
"""

import threading
from dataclasses import dataclass, field
from typing import Literal

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class _ModelHealth:
    status: Literal["terminal", "sticky_retry"]
    reason: str
    consumed: bool = False


@dataclass(frozen=True)
class ModelAvailability:
    """Point-in-time availability of one model."""

    available: bool
    reason: str | None = None


@dataclass(frozen=True)
class ModelSelectionResult:
    """
    Result of picking the first usable model from a candidate list.

    Attributes:
        selected_model: First available model, or None
        attempts: 1 when the selected model is on its sticky retry, else None
        skipped: (model, reason) pairs for unavailable candidates
    """

    selected_model: str | None
    attempts: int | None = None
    skipped: tuple[tuple[str, str], ...] = field(default_factory=tuple)


class ModelAvailabilityService:
    """
    Thread-safe registry of model health for one process run.

    Terminal always wins over sticky-retry; marking a model twice keeps the
    first reason.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._health: dict[str, _ModelHealth] = {}

    def mark_terminal(self, model: str, reason: str) -> None:
        with self._lock:
            current = self._health.get(model)
            if current is not None and current.status == "terminal":
                return
            self._health[model] = _ModelHealth(status="terminal", reason=reason)
        logger.warning("Model marked terminal", model=model, reason=reason)

    def mark_retry_once_per_turn(self, model: str, reason: str) -> None:
        with self._lock:
            if model in self._health:
                return
            self._health[model] = _ModelHealth(status="sticky_retry", reason=reason)
        logger.info("Model marked retry-once-per-turn", model=model, reason=reason)

    def mark_healthy(self, model: str) -> None:
        with self._lock:
            removed = self._health.pop(model, None)
        if removed is not None:
            logger.info("Model marked healthy", model=model, previous_status=removed.status)

    def consume_sticky_attempt(self, model: str) -> None:
        """Spend the single per-turn attempt of a sticky-retry model."""
        with self._lock:
            health = self._health.get(model)
            if health is not None and health.status == "sticky_retry":
                health.consumed = True

    def reset_turn(self) -> None:
        """Turn boundary: sticky-retry models get their attempt back."""
        with self._lock:
            for health in self._health.values():
                if health.status == "sticky_retry":
                    health.consumed = False

    def _availability(self, health: _ModelHealth | None) -> ModelAvailability:
        # Caller holds the lock
        if health is None:
            return ModelAvailability(available=True)
        if health.status == "terminal":
            return ModelAvailability(available=False, reason=health.reason)
        if health.consumed:
            return ModelAvailability(available=False, reason="retry_once_per_turn")
        return ModelAvailability(available=True, reason=health.reason)

    def snapshot(self, model: str) -> ModelAvailability:
        with self._lock:
            return self._availability(self._health.get(model))

    def select_first_available(self, models: list[str]) -> ModelSelectionResult:
        """Pick the first usable model; the whole scan sees one consistent state."""
        skipped: list[tuple[str, str]] = []
        with self._lock:
            for model in models:
                health = self._health.get(model)
                availability = self._availability(health)
                if not availability.available:
                    skipped.append((model, availability.reason or "unavailable"))
                    continue
                sticky = health is not None and health.status == "sticky_retry"
                return ModelSelectionResult(
                    selected_model=model,
                    attempts=1 if sticky else None,
                    skipped=tuple(skipped),
                )
        return ModelSelectionResult(selected_model=None, skipped=tuple(skipped))
