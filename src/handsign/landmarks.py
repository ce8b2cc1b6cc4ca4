"""Hand landmark frames and the 21-point anatomical index scheme."""

from __future__ import annotations

import numpy as np

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_LANDMARKS = 21
LANDMARK_DIM = 3  # x, y, z


def as_landmarks(points) -> np.ndarray:
    """Coerce one hand's landmarks into an ``(n, 3)`` float array.

    Accepts a numpy array, nested ``[x, y, z]`` lists, or a sequence of
    objects with ``x``/``y``/``z`` attributes (MediaPipe landmarks). The
    frame may hold anywhere from 0 to 21 points; short frames are kept short
    so downstream checks can see what is missing.

    Raises:
        ValueError: if the input cannot be read as 3D points.
    """
    if isinstance(points, np.ndarray):
        arr = points
    else:
        points = list(points)
        if points and hasattr(points[0], "x"):
            points = [[p.x, p.y, p.z] for p in points]
        arr = np.asarray(points, dtype=np.float64)

    if arr.size == 0:
        return np.zeros((0, LANDMARK_DIM), dtype=np.float64)

    if arr.ndim != 2 or arr.shape[1] != LANDMARK_DIM:
        raise ValueError(
            f"expected landmarks of shape (n, {LANDMARK_DIM}), got {arr.shape}"
        )

    return arr.astype(np.float64, copy=False)


def has_landmarks(landmarks: np.ndarray, *indices: int) -> bool:
    """True if every index in ``indices`` is present in the frame."""
    return len(landmarks) >= max(indices) + 1


def distance(landmarks: np.ndarray, a: int, b: int) -> float:
    """Euclidean 3D distance between landmarks ``a`` and ``b``."""
    return float(np.linalg.norm(landmarks[a] - landmarks[b]))
