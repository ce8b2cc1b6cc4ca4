"""Per-finger open/closed state from landmark geometry."""

from __future__ import annotations

import numpy as np

from handsign import landmarks as lm
from handsign.landmarks import distance, has_landmarks

# A finger counts as straightened when its tip sits this many times farther
# from the knuckle than the middle joint does. Empirical; tune per camera.
OPEN_RATIO = 1.5

# Minimum wrist-to-thumb-tip rise (normalized image units, y grows downward)
# for a thumb to count as raised.
THUMB_RAISE_THRESHOLD = 0.15

# Joint triples (base, middle, tip) per finger. The thumb has no PIP, so it
# uses CMC / IP / TIP instead.
FINGER_JOINTS: dict[str, tuple[int, int, int]] = {
    "thumb": (lm.THUMB_CMC, lm.THUMB_IP, lm.THUMB_TIP),
    "index": (lm.INDEX_MCP, lm.INDEX_PIP, lm.INDEX_TIP),
    "middle": (lm.MIDDLE_MCP, lm.MIDDLE_PIP, lm.MIDDLE_TIP),
    "ring": (lm.RING_MCP, lm.RING_PIP, lm.RING_TIP),
    "pinky": (lm.PINKY_MCP, lm.PINKY_PIP, lm.PINKY_TIP),
}

FINGERS = tuple(FINGER_JOINTS)


def is_finger_open(
    landmarks: np.ndarray,
    mcp: int,
    pip: int,
    tip: int,
    ratio: float = OPEN_RATIO,
) -> bool:
    """Check whether a finger is extended.

    Compares the knuckle-to-tip distance against the knuckle-to-middle-joint
    distance: an extended finger pulls its tip far from the base, a curled
    one folds it back.

    Args:
        landmarks: Hand landmarks, shape (n, 3). May be shorter than 21.
        mcp, pip, tip: Landmark indices of the finger's joints.
        ratio: Straightening threshold.

    Returns:
        True if open. False if closed, or if the frame is missing any of the
        three joints.
    """
    if not has_landmarks(landmarks, mcp, pip, tip):
        return False

    d_tip = distance(landmarks, mcp, tip)
    d_pip = distance(landmarks, mcp, pip)
    return bool(d_tip > ratio * d_pip)


def is_thumb_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return is_finger_open(landmarks, *FINGER_JOINTS["thumb"], ratio=ratio)


def is_index_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return is_finger_open(landmarks, *FINGER_JOINTS["index"], ratio=ratio)


def is_middle_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return is_finger_open(landmarks, *FINGER_JOINTS["middle"], ratio=ratio)


def is_ring_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return is_finger_open(landmarks, *FINGER_JOINTS["ring"], ratio=ratio)


def is_pinky_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return is_finger_open(landmarks, *FINGER_JOINTS["pinky"], ratio=ratio)


def finger_states(
    landmarks: np.ndarray, ratio: float = OPEN_RATIO
) -> tuple[bool, bool, bool, bool, bool]:
    """Open state of each finger, thumb first."""
    return tuple(  # type: ignore[return-value]
        is_finger_open(landmarks, *joints, ratio=ratio)
        for joints in FINGER_JOINTS.values()
    )


def all_fingers_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return all(finger_states(landmarks, ratio))


def any_finger_open(landmarks: np.ndarray, ratio: float = OPEN_RATIO) -> bool:
    return any(finger_states(landmarks, ratio))


def is_thumb_raised(
    landmarks: np.ndarray, threshold: float = THUMB_RAISE_THRESHOLD
) -> bool:
    """True if the thumb tip sits clearly above the wrist."""
    if not has_landmarks(landmarks, lm.WRIST, lm.THUMB_TIP):
        return False

    rise = landmarks[lm.WRIST][1] - landmarks[lm.THUMB_TIP][1]
    return bool(rise > threshold)
