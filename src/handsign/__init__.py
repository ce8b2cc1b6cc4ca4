"""handsign - Hand sign classification with stabilized sign-change events."""

__version__ = "0.1.0"

from handsign.classifier import GestureClassifier, GestureLabel, GestureRule, HandPose, classify
from handsign.config import PipelineConfig
from handsign.pipeline import GestureEvent, GesturePipeline, StabilizationState
from handsign.actions import ActionMapper, Action, ActionType
from handsign.recorder import SessionRecorder, SessionPlayer
from handsign.profiler import PipelineProfiler
