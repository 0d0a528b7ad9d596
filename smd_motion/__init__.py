"""SMD motion — Studiomdl Data motion import and skeletal retargeting."""

import logging

log = logging.getLogger("smd_motion")
log.setLevel(logging.DEBUG)

from .errors import (  # noqa: E402
    BindError,
    EmptyAnimationError,
    FormatError,
    LoadError,
    MotionError,
)
from .importer import AnimationInfo, ImportSettings, MotionSession  # noqa: E402
from .playback import PlaybackController, PlaybackState, State  # noqa: E402
from .smd import parse, parse_text  # noqa: E402

__all__ = [
    "AnimationInfo",
    "BindError",
    "EmptyAnimationError",
    "FormatError",
    "ImportSettings",
    "LoadError",
    "MotionError",
    "MotionSession",
    "PlaybackController",
    "PlaybackState",
    "State",
    "parse",
    "parse_text",
]
