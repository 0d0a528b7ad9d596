"""Exceptions raised while loading, binding and playing SMD motion.

Only structurally unrecoverable conditions raise.  Bone-name mismatches and
the skeleton synthesis fallback are reported through warning lists instead.
"""

from __future__ import annotations


class MotionError(Exception):
    """Base class for every error raised by smd_motion."""


class FormatError(MotionError, ValueError):
    """The motion file text is malformed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EmptyAnimationError(MotionError, ValueError):
    """The motion file has no frames, so no reference pose can be derived."""


class LoadError(MotionError, OSError):
    """The motion file could not be read."""


class BindError(MotionError):
    """The target scene graph contains nothing that can be animated."""
