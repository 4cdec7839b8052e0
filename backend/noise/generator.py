"""
Noise Generator
Continuous background generation: picks weighted (event type, template,
destination) combinations at a fixed rate and ships each event through a
sender owned for the lifetime of the run.
"""
import logging
import random
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from event_generator.errors import DeliveryError, EventGeneratorError, NoiseError
from event_generator.registry import GeneratorRegistry
from delivery.base import DEFAULT_HOSTNAME, Sender, get_sender
from delivery.config import Destination
from noise.models import DEFAULT_WEIGHT, NoiseConfig, NoiseUpdateRequest

logger = logging.getLogger(__name__)

ERROR_SAMPLES = 5
JOIN_TIMEOUT = 35.0


@dataclass(frozen=True)
class WeightedPick:
    event_type_id: str
    template_id: str
    destination_id: str
    weight: int


def build_weighted_pool(
    registry: GeneratorRegistry,
    config: NoiseConfig,
    destination_ids: Iterable[str]
) -> List[WeightedPick]:
    """
    Expand the enabled sources into weighted picks.

    Sources with an unknown event type or without a usable destination are
    skipped, as are unknown template ids. A source's weight (default 10) is
    split evenly across its templates, never below 1 per template.
    """
    available = set(destination_ids)
    pool: List[WeightedPick] = []

    for source in config.enabled_sources:
        if not source.enabled or source.event_type_id not in registry:
            continue

        destination_id = source.destination_id or config.destination_id
        if not destination_id or destination_id not in available:
            continue

        known = [t.id for t in registry.get(source.event_type_id).list_templates()]
        template_ids = [t for t in (source.template_ids or known) if t in known]
        if not template_ids:
            continue

        weight = source.weight if source.weight > 0 else DEFAULT_WEIGHT
        per_template = max(weight // len(template_ids), 1)
        for template_id in template_ids:
            pool.append(WeightedPick(
                event_type_id=source.event_type_id,
                template_id=template_id,
                destination_id=destination_id,
                weight=per_template,
            ))

    return pool


def _close_all(senders: Dict[str, Sender]) -> None:
    for destination_id, sender in senders.items():
        try:
            sender.close()
        except DeliveryError as e:
            logger.warning("Closing sender for destination %s failed: %s", destination_id, e)


class NoiseGenerator:
    """
    Runs one background generation thread at a time.

    start() opens one sender per destination and stop() closes all of them
    after the thread has exited. Counters and the pick pool are guarded by
    self._lock; the senders do their own locking.
    """

    def __init__(
        self,
        registry: GeneratorRegistry,
        hostname: str = DEFAULT_HOSTNAME,
        sender_factory: Callable[..., Sender] = get_sender,
        rng: Optional[random.Random] = None
    ):
        self.registry = registry
        self.hostname = hostname
        self.sender_factory = sender_factory
        self.rng = rng or random.Random()

        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._config: Optional[NoiseConfig] = None
        self._senders: Dict[str, Sender] = {}
        self._pool: List[WeightedPick] = []
        self._total_weight = 0
        self._started_at: Optional[datetime] = None
        self._started_clock = 0.0
        self._reset_stats()

    def _reset_stats(self) -> None:
        self._total_generated = 0
        self._total_sent = 0
        self._total_errors = 0
        self._by_event_type: Dict[str, int] = {}
        self._by_template: Dict[str, int] = {}
        self._last_event_at: Optional[datetime] = None
        self._error_samples = deque(maxlen=ERROR_SAMPLES)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    # ---------- lifecycle ----------

    def start(self, config: NoiseConfig, destinations: Dict[str, Destination]) -> None:
        """
        Open senders for `destinations` and start the generation thread.

        Raises NoiseError when already running, when a sender cannot be
        built or when no source yields a valid pick. Every sender opened so
        far is closed before the error propagates.
        """
        with self._lock:
            if self._running:
                raise NoiseError("noise generation already running")
            if not any(source.enabled for source in config.enabled_sources):
                raise NoiseError("at least one source must be enabled")

            senders: Dict[str, Sender] = {}
            for destination_id, destination in destinations.items():
                try:
                    senders[destination_id] = self.sender_factory(
                        destination.type, destination.config, self.hostname
                    )
                except DeliveryError as e:
                    _close_all(senders)
                    raise NoiseError(
                        f"failed to create sender for destination {destination_id}: {e}"
                    ) from e

            pool = build_weighted_pool(self.registry, config, senders)
            if not pool:
                _close_all(senders)
                raise NoiseError("no valid event sources enabled")

            self._config = config
            self._senders = senders
            self._set_pool(pool)
            self._reset_stats()
            self._started_at = datetime.now(timezone.utc)
            self._started_clock = time.monotonic()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="noise-generator", daemon=True
            )
            self._running = True
            self._thread.start()

        logger.info(
            "Noise generation started at %.1f events/s over %d picks",
            config.rate_per_second, len(pool)
        )

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                raise NoiseError("noise generation not running")
            self._running = False
            self._stop_event.set()
            thread, senders = self._thread, self._senders
            self._thread = None
            self._senders = {}

        if thread is not None:
            thread.join(JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("Noise thread still busy after %.0fs, closing senders anyway", JOIN_TIMEOUT)
        _close_all(senders)
        logger.info("Noise generation stopped")

    def update_config(self, update: NoiseUpdateRequest) -> None:
        with self._lock:
            if not self._running:
                raise NoiseError("noise generation not running")

            changes: Dict[str, Any] = {}
            if update.rate_per_second is not None:
                changes["rate_per_second"] = update.rate_per_second
            if update.enabled_sources is not None:
                changes["enabled_sources"] = update.enabled_sources
            config = self._config.model_copy(update=changes)

            if update.enabled_sources is not None:
                pool = build_weighted_pool(self.registry, config, self._senders)
                if not pool:
                    raise NoiseError("no valid event sources enabled")
                self._set_pool(pool)
            self._config = config

    def _set_pool(self, pool: List[WeightedPick]) -> None:
        self._pool = pool
        self._total_weight = sum(pick.weight for pick in pool)

    # ---------- generation ----------

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.step()
            with self._lock:
                interval = 1.0 / self._config.rate_per_second
            stop_event.wait(interval)

    def _select(self) -> WeightedPick:
        target = self.rng.randrange(self._total_weight)
        cumulative = 0
        for pick in self._pool:
            cumulative += pick.weight
            if target < cumulative:
                return pick
        return self._pool[-1]

    def step(self) -> Optional[WeightedPick]:
        """Generate and send one event; failures are counted, not raised"""
        with self._lock:
            if not self._pool:
                return None
            pick = self._select()
            sender = self._senders.get(pick.destination_id)

        if sender is None:
            self._record_error(f"sender not found for destination: {pick.destination_id}")
            return pick

        try:
            event = self.registry.get(pick.event_type_id).generate(pick.template_id)
        except EventGeneratorError as e:
            self._record_error(f"generate error: {e}")
            return pick

        sent = True
        try:
            sender.send(event)
        except DeliveryError as e:
            sent = False
            self._record_error(f"send error: {e}")

        template_key = f"{pick.event_type_id}/{pick.template_id}"
        with self._lock:
            self._total_generated += 1
            if sent:
                self._total_sent += 1
            self._by_event_type[pick.event_type_id] = self._by_event_type.get(pick.event_type_id, 0) + 1
            self._by_template[template_key] = self._by_template.get(template_key, 0) + 1
            self._last_event_at = datetime.now(timezone.utc)
        return pick

    def _record_error(self, message: str) -> None:
        with self._lock:
            self._total_errors += 1
            self._error_samples.append(message)

    # ---------- reporting ----------

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return self._stats_locked()

    def _stats_locked(self) -> Dict[str, Any]:
        duration = 0
        rate = 0.0
        if self._running:
            duration = int(time.monotonic() - self._started_clock)
            if duration > 0:
                rate = self._total_sent / duration
        return {
            "total_generated": self._total_generated,
            "total_sent": self._total_sent,
            "total_errors": self._total_errors,
            "events_per_second": rate,
            "last_event_at": self._last_event_at.isoformat() if self._last_event_at else None,
            "by_event_type": dict(self._by_event_type),
            "by_template": dict(self._by_template),
            "duration_seconds": duration,
            "error_samples": list(self._error_samples),
        }

    def status(self) -> Dict[str, Any]:
        with self._lock:
            status: Dict[str, Any] = {
                "running": self._running,
                "stats": self._stats_locked(),
            }
            if self._running:
                status["started_at"] = self._started_at.isoformat()
                status["current_config"] = self._config.model_dump()
            return status
