"""Tests for frame throttling, debouncing and the session pipeline."""

import logging
import threading

import pytest

from handsign.classifier import GestureLabel
from handsign.config import PipelineConfig
from handsign.pipeline import (
    GestureEvent,
    GesturePipeline,
    StabilizationState,
    debounce,
    mark_processed,
    should_process,
)
from hands import fist, make_hand, open_palm

CONFIG = PipelineConfig()


class TestFrameThrottle:
    def test_first_frame_always_processed(self):
        assert should_process(StabilizationState(), 0.0, CONFIG)

    def test_frame_inside_interval_dropped(self):
        state = mark_processed(StabilizationState(), 1.0)
        assert not should_process(state, 1.02, CONFIG)

    def test_frame_after_interval_processed(self):
        state = mark_processed(StabilizationState(), 1.0)
        assert should_process(state, 1.12, CONFIG)

    def test_custom_interval(self):
        state = mark_processed(StabilizationState(), 0.0)
        assert not should_process(state, 0.2, PipelineConfig(processing_interval=0.25))


class TestDebounce:
    def test_first_label_emits(self):
        state, event = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        assert event == GestureEvent(GestureLabel.OPEN_PALM, None, 0.0)
        assert state.last_detected_sign == GestureLabel.OPEN_PALM
        assert state.last_play_time == 0.0

    def test_repeat_suppressed(self):
        state, _ = debounce(StabilizationState(), GestureLabel.VICTORY, 0.0, CONFIG)
        new_state, event = debounce(state, GestureLabel.VICTORY, 5.0, CONFIG)
        assert event is None
        assert new_state == state

    def test_change_inside_cooldown_dropped(self):
        state, _ = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        new_state, event = debounce(state, GestureLabel.CLOSED_FIST, 0.01, CONFIG)
        assert event is None
        assert new_state.last_detected_sign == GestureLabel.OPEN_PALM
        assert new_state.last_play_time == 0.0

    def test_cooldown_is_strict(self):
        state, _ = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        _, event = debounce(state, GestureLabel.CLOSED_FIST, 0.5, CONFIG)
        assert event is None

    def test_change_after_cooldown_emits(self):
        state, _ = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        state, event = debounce(state, GestureLabel.CLOSED_FIST, 0.6, CONFIG)
        assert event.gesture == GestureLabel.CLOSED_FIST
        assert event.previous == GestureLabel.OPEN_PALM
        assert state.last_play_time == 0.6

    def test_quick_oscillation_loses_middle_sign(self):
        state, _ = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        state, dropped = debounce(state, GestureLabel.CLOSED_FIST, 0.1, CONFIG)
        state, repeat = debounce(state, GestureLabel.OPEN_PALM, 0.7, CONFIG)
        assert dropped is None
        assert repeat is None  # still matches the stale last sign
        _, later = debounce(state, GestureLabel.CLOSED_FIST, 0.8, CONFIG)
        assert later.gesture == GestureLabel.CLOSED_FIST

    def test_unknown_is_a_transition(self):
        state, _ = debounce(StabilizationState(), GestureLabel.OPEN_PALM, 0.0, CONFIG)
        _, event = debounce(state, GestureLabel.UNKNOWN, 1.0, CONFIG)
        assert event.gesture == GestureLabel.UNKNOWN


class TestGesturePipeline:
    def test_same_sign_for_two_seconds_emits_once(self):
        pipeline = GesturePipeline()
        frames = [(i * 0.02, open_palm()) for i in range(100)]
        events = pipeline.process_many(frames)
        assert len(events) == 1
        assert events[0].gesture == GestureLabel.OPEN_PALM
        assert events[0].timestamp == 0.0

    def test_second_frame_20ms_later_not_classified(self):
        pipeline = GesturePipeline()
        labels = []
        pipeline.on_label(labels.append)

        pipeline.process_frame(open_palm(), timestamp=0.0)
        pipeline.process_frame(fist(), timestamp=0.02)
        assert labels == ["OPEN_PALM"]

        pipeline.process_frame(fist(), timestamp=0.12)
        assert labels == ["OPEN_PALM", "CLOSED_FIST"]
        assert pipeline.stats.frames_dropped == 1

    def test_change_inside_cooldown_not_emitted(self):
        pipeline = GesturePipeline(config=PipelineConfig(processing_interval=0.0))
        assert pipeline.process_frame(open_palm(), timestamp=0.0) is not None
        assert pipeline.process_frame(fist(), timestamp=0.01) is None
        assert pipeline.state.last_detected_sign == GestureLabel.OPEN_PALM

    def test_display_sees_raw_labels(self):
        pipeline = GesturePipeline()
        labels, events = [], []
        pipeline.on_label(labels.append)
        pipeline.on_gesture(events.append)

        pipeline.process_frame(open_palm(), timestamp=0.0)
        pipeline.process_frame(fist(), timestamp=0.2)  # inside cooldown
        pipeline.process_frame(fist(), timestamp=0.7)

        assert labels == ["OPEN_PALM", "CLOSED_FIST", "CLOSED_FIST"]
        assert [e.gesture for e in events] == [GestureLabel.OPEN_PALM, GestureLabel.CLOSED_FIST]

    def test_sign_sequence(self):
        pipeline = GesturePipeline()
        frames = []
        t = 0.0
        for lm in [open_palm(), make_hand(index=True), make_hand(index=True, pinky=True)]:
            for _ in range(10):
                frames.append((t, lm))
                t += 0.1
        events = pipeline.process_many(frames)
        assert [e.gesture for e in events] == [
            GestureLabel.OPEN_PALM,
            GestureLabel.POINTING_UP,
            GestureLabel.ROCK_ON,
        ]

    def test_failing_callback_does_not_break_session(self, caplog):
        pipeline = GesturePipeline()
        received = []

        def broken(event):
            raise RuntimeError("speaker unplugged")

        pipeline.on_gesture(broken)
        pipeline.on_gesture(received.append)

        with caplog.at_level(logging.ERROR, logger="handsign.pipeline"):
            event = pipeline.process_frame(open_palm(), timestamp=0.0)

        assert event is not None
        assert received == [event]
        assert "failed" in caplog.text

    def test_default_timestamp_is_monotonic(self):
        pipeline = GesturePipeline()
        assert pipeline.process_frame(open_palm()) is not None
        assert pipeline.state.last_processing_time is not None

    def test_stats(self):
        pipeline = GesturePipeline()
        pipeline.process_many([(0.0, open_palm()), (0.05, open_palm()), (0.2, open_palm())])
        stats = pipeline.stats
        assert stats.frames_received == 3
        assert stats.frames_classified == 2
        assert stats.frames_dropped == 1
        assert stats.events_emitted == 1
        assert stats.last_label == "OPEN_PALM"
        assert stats.profiler_summary["classification"]["calls"] == 2

    def test_reset_starts_new_session(self):
        pipeline = GesturePipeline()
        pipeline.process_frame(open_palm(), timestamp=0.0)
        pipeline.reset()
        assert pipeline.state == StabilizationState()
        assert pipeline.stats.frames_received == 0
        # Same sign is new again after reset
        assert pipeline.process_frame(open_palm(), timestamp=0.01) is not None

    def test_context_manager(self):
        with GesturePipeline() as pipeline:
            pipeline.process_frame(open_palm(), timestamp=0.0)
        assert pipeline.state == StabilizationState()

    def test_profiling_disabled(self):
        pipeline = GesturePipeline(enable_profiling=False)
        pipeline.process_frame(open_palm(), timestamp=0.0)
        assert pipeline.stats.profiler_summary == {}

    def test_truncated_frames_do_not_raise(self):
        pipeline = GesturePipeline()
        events = pipeline.process_many([(0.0, open_palm()[:10]), (1.0, open_palm()[:0])])
        assert [e.gesture for e in events] == [GestureLabel.POINTING_UP, GestureLabel.CLOSED_FIST]

    def test_listener_may_reset_session(self):
        pipeline = GesturePipeline()
        pipeline.on_gesture(lambda event: pipeline.reset())

        worker = threading.Thread(
            target=pipeline.process_frame, args=(open_palm(),), kwargs={"timestamp": 0.0}
        )
        worker.start()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert pipeline.state == StabilizationState()

    def test_listener_may_feed_frames(self):
        pipeline = GesturePipeline()
        labels = []

        def feed_back(event):
            if event.gesture == GestureLabel.OPEN_PALM:
                pipeline.process_frame(fist(), timestamp=1.0)

        pipeline.on_gesture(feed_back)
        pipeline.on_label(labels.append)

        worker = threading.Thread(
            target=pipeline.process_frame, args=(open_palm(),), kwargs={"timestamp": 0.0}
        )
        worker.start()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert labels == ["OPEN_PALM", "CLOSED_FIST"]
        assert pipeline.state.last_detected_sign == GestureLabel.CLOSED_FIST
