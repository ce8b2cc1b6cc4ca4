"""Landmark session recording and replay.

Record a hand's landmark stream to disk for:
- Reproducible pipeline runs without a camera or detector
- Regression tests of the throttle and debounce timing
- Demo sessions that replay deterministically
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from handsign.landmarks import as_landmarks

FORMAT_VERSION = 1


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    landmarks: list[list[float]]  # up to 21 [x, y, z] points
    label: Optional[str] = None  # raw label seen at record time, if any


class SessionRecorder:
    """Records one hand's landmark frames to a JSON file.

    Usage:
        recorder = SessionRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(landmarks, label)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(
        self,
        landmarks,
        label: Optional[str] = None,
        timestamp: Optional[float] = None,
    ):
        """Add a frame to the recording.

        Args:
            landmarks: One hand's landmarks, any length up to 21 points.
            label: Optional raw label to store alongside.
            timestamp: Seconds from start; defaults to elapsed wall time.
        """
        if not self._recording:
            return

        if timestamp is None:
            timestamp = time.monotonic() - self._start_time

        self._frames.append(RecordedFrame(
            timestamp=float(timestamp),
            landmarks=as_landmarks(landmarks).tolist(),
            label=str(label) if label is not None else None,
        ))

    def save(self, path: str | Path):
        """Save recording to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [asdict(f) for f in self._frames],
        }

        with open(path, "w") as f:
            json.dump(data, f)


class SessionPlayer:
    """Replays a recorded landmark session.

    Usage:
        player = SessionPlayer.load("session.json")
        for frame in player.play():
            pipeline.process_frame(frame.landmarks, timestamp=frame.timestamp)
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> SessionPlayer:
        """Load recording from JSON file."""
        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"unsupported recording version: {version}")

        frames = [
            RecordedFrame(
                timestamp=f["timestamp"],
                landmarks=f.get("landmarks", []),
                label=f.get("label"),
            )
            for f in data["frames"]
        ]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    @staticmethod
    def _as_array_frame(frame: RecordedFrame) -> RecordedFrame:
        return RecordedFrame(
            timestamp=frame.timestamp,
            landmarks=as_landmarks(frame.landmarks),
            label=frame.label,
        )

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly, landmarks as numpy arrays."""
        for frame in self._frames:
            yield self._as_array_frame(frame)

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor).

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        start = time.monotonic()

        for frame in self.play():
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[RecordedFrame]:
        """Get a specific frame by index."""
        if 0 <= index < len(self._frames):
            return self._as_array_frame(self._frames[index])
        return None

    def as_pairs(self) -> Iterator[tuple[float, np.ndarray]]:
        """``(timestamp, landmarks)`` pairs for ``GesturePipeline.process_many``."""
        for frame in self.play():
            yield frame.timestamp, frame.landmarks
