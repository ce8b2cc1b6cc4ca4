"""Rule-based hand sign classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from handsign.config import PipelineConfig
from handsign.fingers import finger_states, is_thumb_raised
from handsign.landmarks import as_landmarks


class GestureLabel(str, Enum):
    """The fixed set of hand signs the classifier can report."""
    OPEN_PALM = "OPEN_PALM"
    CLOSED_FIST = "CLOSED_FIST"
    POINTING_UP = "POINTING_UP"
    VICTORY = "VICTORY"
    THUMB_UP = "THUMB_UP"
    PINKY_OUT = "PINKY_OUT"
    ROCK_ON = "ROCK_ON"
    UNKNOWN = "UNKNOWN"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HandPose:
    """Finger states of one frame, evaluated once per classification."""
    thumb: bool
    index: bool
    middle: bool
    ring: bool
    pinky: bool
    thumb_raised: bool = False

    @property
    def fingers(self) -> tuple[bool, bool, bool, bool, bool]:
        return (self.thumb, self.index, self.middle, self.ring, self.pinky)

    @classmethod
    def from_landmarks(
        cls, landmarks: np.ndarray, config: Optional[PipelineConfig] = None
    ) -> HandPose:
        config = config or PipelineConfig()
        states = finger_states(landmarks, config.open_ratio)
        return cls(
            *states,
            thumb_raised=is_thumb_raised(landmarks, config.thumb_raise_threshold),
        )


@dataclass(frozen=True)
class GestureRule:
    """A label plus the condition on a HandPose that selects it."""
    label: GestureLabel
    predicate: Callable[[HandPose], bool]

    def matches(self, pose: HandPose) -> bool:
        return self.predicate(pose)


# Evaluated in order, first match wins.
DEFAULT_RULES: tuple[GestureRule, ...] = (
    GestureRule(GestureLabel.OPEN_PALM, lambda p: all(p.fingers)),
    GestureRule(GestureLabel.CLOSED_FIST, lambda p: not any(p.fingers)),
    GestureRule(
        GestureLabel.POINTING_UP,
        lambda p: p.index and not p.middle and not p.ring and not p.pinky,
    ),
    GestureRule(
        GestureLabel.VICTORY,
        lambda p: p.index and p.middle and not p.ring and not p.pinky,
    ),
    GestureRule(
        GestureLabel.THUMB_UP,
        lambda p: p.thumb_raised and not (p.index or p.middle or p.ring or p.pinky),
    ),
    GestureRule(
        GestureLabel.PINKY_OUT,
        lambda p: p.pinky and not p.index and not p.middle and not p.ring,
    ),
    GestureRule(
        GestureLabel.ROCK_ON,
        lambda p: p.index and p.pinky and not p.middle and not p.ring,
    ),
)


class GestureClassifier:
    """Maps one hand's landmarks to a GestureLabel.

    Finger states come from landmark geometry (see ``handsign.fingers``) and
    are matched against an ordered rule list. Frames missing landmarks never
    raise: the untestable fingers read as closed and classification falls
    through the rules, possibly to UNKNOWN.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        rules: Optional[Sequence[GestureRule]] = None,
    ):
        self.config = config or PipelineConfig()
        self._rules: tuple[GestureRule, ...] = tuple(rules) if rules is not None else DEFAULT_RULES

    @property
    def rules(self) -> tuple[GestureRule, ...]:
        return self._rules

    def pose(self, landmarks) -> HandPose:
        """Evaluate finger states for a frame."""
        return HandPose.from_landmarks(as_landmarks(landmarks), self.config)

    def classify_pose(self, pose: HandPose) -> GestureLabel:
        for rule in self._rules:
            if rule.matches(pose):
                return rule.label
        return GestureLabel.UNKNOWN

    def classify(self, landmarks) -> GestureLabel:
        """Classify a frame. Pure and deterministic."""
        return self.classify_pose(self.pose(landmarks))


def classify(landmarks, config: Optional[PipelineConfig] = None) -> GestureLabel:
    """Classify a frame with the default rule set."""
    return GestureClassifier(config).classify(landmarks)
