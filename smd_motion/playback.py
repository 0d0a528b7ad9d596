"""Playback controller — the Stopped/Playing/Paused state machine.

The host calls ``update(delta)`` once per rendered frame.  Sampled track
values are deltas layered onto the bind pose:

    location = bind_location + delta_location
    rotation = bind_rotation @ delta_rotation

Time always loops; it never clamps at the end of the clip.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .binder import SkeletonBinding
from .scene import BoneNode
from .tracks import AnimationClip, KeyframeTrack, TrackKind

log = logging.getLogger("smd_motion")

EVENTS = ("loop", "progress")


class State(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PlaybackState:
    """Read-only snapshot handed to the UI."""

    state: State
    speed: float
    current_time: float
    duration: float

    @property
    def is_playing(self) -> bool:
        return self.state is State.PLAYING

    @property
    def progress(self) -> float:
        return self.current_time / self.duration if self.duration > 0 else 0.0


class PlaybackController:
    """Drives one AnimationClip on one bound skeleton."""

    def __init__(self, clip: AnimationClip, binding: SkeletonBinding) -> None:
        self.clip = clip
        self.binding = binding
        self._state = State.STOPPED
        self._speed = 1.0
        self._time = 0.0
        self._duration = clip.duration
        self._detached = False
        self._listeners: dict[str, list[Callable]] = {name: [] for name in EVENTS}

        # (track, bone, bone index) for every track with a bound bone
        self._channels: list[tuple[KeyframeTrack, BoneNode, int]] = []
        for track in clip.tracks:
            bone = binding.bone_map.get(track.bone_name)
            if bone is not None:
                self._channels.append((track, bone, binding.skeleton.index_of(bone)))

        log.debug(
            "Controller for '%s': %d/%d tracks bound, duration %.3fs",
            clip.name,
            len(self._channels),
            len(clip.tracks),
            self._duration,
        )

    # -- read-only surface --

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(self._state, self._speed, self._time, self._duration)

    @property
    def current_time(self) -> float:
        return self._time

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def detached(self) -> bool:
        return self._detached

    # -- listeners --

    def add_listener(self, event: str, callback: Callable) -> None:
        """Register *callback* for ``"loop"`` or ``"progress"``.

        Both are called with the current PlaybackState.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown playback event {event!r}; expected one of {EVENTS}")
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    def _emit(self, event: str) -> None:
        snapshot = self.state
        for callback in list(self._listeners[event]):
            callback(snapshot)

    # -- commands --

    def play(self) -> None:
        if self._ignored("play"):
            return
        if self._state is not State.PLAYING:
            log.debug("Playback %s → playing", self._state.value)
            self._state = State.PLAYING

    def pause(self) -> None:
        if self._ignored("pause"):
            return
        if self._state is State.PLAYING:
            log.debug("Playback playing → paused at %.3fs", self._time)
            self._state = State.PAUSED

    def stop(self) -> None:
        """Return to the bind pose and rewind."""
        if self._ignored("stop"):
            return
        self.reset()
        if self._state is not State.STOPPED:
            log.debug("Playback %s → stopped", self._state.value)
        self._state = State.STOPPED

    def reset(self) -> None:
        """Restore every bone from the InitialPoseTable and rewind to 0.

        The playback state is left as it is.
        """
        if self._ignored("reset"):
            return
        self.binding.restore_initial_pose()
        self._time = 0.0

    def set_speed(self, factor: float) -> None:
        if self._ignored("set_speed"):
            return
        if not math.isfinite(factor):
            raise ValueError(f"Playback speed must be finite, got {factor}")
        self._speed = float(factor)

    def set_time(self, t: float) -> None:
        """Seek to ``t mod duration`` and evaluate the pose immediately."""
        if self._ignored("set_time"):
            return
        if not math.isfinite(t):
            raise ValueError(f"Playback time must be finite, got {t}")
        self._time = self._wrap(t)
        self.evaluate()

    def update(self, delta: float) -> None:
        """Advance by *delta* wall-clock seconds.  Does nothing unless playing."""
        if self._detached or self._state is not State.PLAYING:
            return
        if not math.isfinite(delta):
            raise ValueError(f"Tick delta must be finite, got {delta}")

        if self._duration > 0.0:
            advanced = self._time + delta * self._speed
            looped = advanced >= self._duration or advanced < 0.0
            self._time = self._wrap(advanced)
        else:
            looped = False

        self.evaluate()
        if looped:
            self._emit("loop")
        self._emit("progress")

    def evaluate(self) -> None:
        """Write the pose at the current time into the bound bones."""
        if self._detached:
            return
        initial = self.binding.initial_pose
        t = self._time
        for track, bone, index in self._channels:
            delta = track.sample(t)
            if track.kind is TrackKind.POSITION:
                bone.location = initial.location(index) + delta
            else:
                bone.rotation = initial.rotation(index) @ delta
        self.binding.skeleton.pose()

    def detach(self) -> None:
        """Stop for good; the controller writes no bone transforms afterwards."""
        if self._detached:
            return
        self._state = State.STOPPED
        self._detached = True
        for callbacks in self._listeners.values():
            callbacks.clear()
        log.debug("Controller for '%s' detached", self.clip.name)

    # -- internals --

    def _wrap(self, t: float) -> float:
        if self._duration <= 0.0:
            return 0.0
        return t % self._duration

    def _ignored(self, command: str) -> bool:
        if self._detached:
            log.debug("Ignoring %s() on detached controller for '%s'", command, self.clip.name)
            return True
        return False
