"""Frame throttling and sign-change debouncing on top of the classifier.

The temporal logic lives in pure functions over an immutable
``StabilizationState`` so it can be driven with synthetic timestamps.
``GesturePipeline`` holds the current state for one capture session and
serializes frames through it.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from handsign.classifier import GestureClassifier, GestureLabel
from handsign.config import PipelineConfig
from handsign.profiler import PipelineProfiler

logger = logging.getLogger("handsign.pipeline")


@dataclass(frozen=True)
class GestureEvent:
    """A stable sign change, emitted at most once per cooldown."""
    gesture: GestureLabel
    previous: Optional[GestureLabel]
    timestamp: float


@dataclass(frozen=True)
class StabilizationState:
    """Timers and last emitted sign for one session."""
    last_detected_sign: Optional[GestureLabel] = None
    last_play_time: Optional[float] = None
    last_processing_time: Optional[float] = None


def should_process(
    state: StabilizationState, now: float, config: PipelineConfig
) -> bool:
    """Frame throttle: False while the processing interval has not elapsed."""
    if state.last_processing_time is None:
        return True
    return now - state.last_processing_time >= config.processing_interval


def mark_processed(state: StabilizationState, now: float) -> StabilizationState:
    return replace(state, last_processing_time=now)


def debounce(
    state: StabilizationState,
    label: GestureLabel,
    now: float,
    config: PipelineConfig,
) -> tuple[StabilizationState, Optional[GestureEvent]]:
    """Turn a raw label into at most one transition event.

    Repeats of the last emitted sign are suppressed. A new sign is emitted
    only once the cooldown since the previous emission has passed; inside
    the cooldown it is dropped without being remembered, so a quick A->B->A
    loses B entirely.
    """
    if label == state.last_detected_sign:
        return state, None

    if state.last_play_time is not None and now - state.last_play_time <= config.cooldown_seconds:
        logger.debug(
            "Dropped %s inside cooldown (%.3fs since last)", label, now - state.last_play_time
        )
        return state, None

    event = GestureEvent(gesture=label, previous=state.last_detected_sign, timestamp=now)
    return replace(state, last_detected_sign=label, last_play_time=now), event


@dataclass
class PipelineStats:
    """Session counters."""
    frames_received: int = 0
    frames_classified: int = 0
    frames_dropped: int = 0
    events_emitted: int = 0
    last_label: Optional[str] = None
    profiler_summary: dict = field(default_factory=dict)


class GesturePipeline:
    """One capture session: landmarks in, debounced sign changes out.

    Features:
    - Frame throttle that drops frames arriving faster than the processing
      interval (no queue, latest frame wins)
    - Sign-change debounce with a cooldown between emitted events
    - Display callbacks fed every classified label, before debouncing
    - Gesture callbacks fed only stable transitions
    - Per-stage profiling

    State updates happen one frame at a time under a lock, so a capture
    thread and a control thread may share one pipeline. Listeners are called
    after the lock is released.
    """

    def __init__(
        self,
        classifier: Optional[GestureClassifier] = None,
        config: Optional[PipelineConfig] = None,
        enable_profiling: bool = True,
    ):
        self.config = config or (classifier.config if classifier else PipelineConfig())
        self.classifier = classifier or GestureClassifier(self.config)
        self.profiler = PipelineProfiler(enabled=enable_profiling)

        self._state = StabilizationState()
        self._lock = threading.Lock()
        self._gesture_callbacks: list[Callable[[GestureEvent], None]] = []
        self._label_callbacks: list[Callable[[str], None]] = []
        self._stats = PipelineStats()

    def on_gesture(self, callback: Callable[[GestureEvent], None]):
        """Register a callback for stable sign changes."""
        self._gesture_callbacks.append(callback)

    def on_label(self, callback: Callable[[str], None]):
        """Register a callback for the raw label of every classified frame."""
        self._label_callbacks.append(callback)

    @property
    def state(self) -> StabilizationState:
        return self._state

    def process_frame(
        self, landmarks, timestamp: Optional[float] = None
    ) -> Optional[GestureEvent]:
        """Run one frame through throttle, classifier and debounce.

        Args:
            landmarks: One hand's landmarks, up to 21 (x, y, z) points.
            timestamp: Frame time in seconds. Defaults to ``time.monotonic()``.

        Returns:
            The emitted GestureEvent, or None if the frame was dropped or the
            sign did not change.
        """
        now = time.monotonic() if timestamp is None else timestamp

        with self._lock:
            self._stats.frames_received += 1

            with self.profiler.stage("throttle"):
                accepted = should_process(self._state, now, self.config)
            if not accepted:
                self._stats.frames_dropped += 1
                return None

            with self.profiler.stage("classification"):
                label = self.classifier.classify(landmarks)
            self._state = mark_processed(self._state, now)
            self._stats.frames_classified += 1
            self._stats.last_label = label.value

            with self.profiler.stage("debounce"):
                self._state, event = debounce(self._state, label, now, self.config)

            if event is not None:
                self._stats.events_emitted += 1
                logger.debug("Sign changed %s -> %s at %.3f", event.previous, event.gesture, now)

        # Listeners run unlocked so they may reset the session or feed frames.
        self._notify(self._label_callbacks, label.value)

        if event is None:
            return None

        with self.profiler.stage("dispatch"):
            self._notify(self._gesture_callbacks, event)

        return event

    def process_many(self, frames: Iterable[tuple[float, object]]) -> list[GestureEvent]:
        """Feed ``(timestamp, landmarks)`` pairs in order; return emitted events."""
        events = []
        for timestamp, landmarks in frames:
            event = self.process_frame(landmarks, timestamp=timestamp)
            if event is not None:
                events.append(event)
        return events

    def _notify(self, callbacks: list[Callable], value):
        for cb in callbacks:
            try:
                cb(value)
            except Exception:
                logger.exception("Callback %r failed", cb)

    @property
    def stats(self) -> PipelineStats:
        return replace(self._stats, profiler_summary=self.profiler.summary())

    def reset(self):
        """Discard stabilization state and counters, ending the session."""
        with self._lock:
            self._state = StabilizationState()
            self._stats = PipelineStats()
            self.profiler.reset()

    def close(self):
        self.reset()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
