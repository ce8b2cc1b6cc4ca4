"""Pipeline tunables and YAML config loading."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml

from handsign.fingers import OPEN_RATIO, THUMB_RAISE_THRESHOLD

logger = logging.getLogger("handsign.config")


@dataclass(frozen=True)
class PipelineConfig:
    """Tunable constants for classification and stabilization.

    Times are in seconds, distances in normalized image units.
    """
    processing_interval: float = 0.1  # min gap between classified frames
    cooldown_seconds: float = 0.5  # min gap between emitted transitions
    open_ratio: float = OPEN_RATIO
    thumb_raise_threshold: float = THUMB_RAISE_THRESHOLD

    def __post_init__(self):
        for f in fields(self):
            if not math.isfinite(getattr(self, f.name)):
                raise ValueError(f"{f.name} must be a finite number")
        if self.processing_interval < 0:
            raise ValueError("processing_interval must be >= 0")
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        if self.open_ratio <= 0:
            raise ValueError("open_ratio must be > 0")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> PipelineConfig:
        known = {f.name for f in fields(cls)}
        data = data or {}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown pipeline setting: %s", key)
        return cls(**{k: float(v) for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> PipelineConfig:
        """Load the ``pipeline:`` section of a YAML config file."""
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        return cls.from_dict(config.get("pipeline"))

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump({"pipeline": self.to_dict()}, f, default_flow_style=False, sort_keys=False)
