"""SMD import orchestrator — parse, normalize, build tracks, bind, play.

A MotionSession owns the single active clip/controller pair of one preview.
Loads are tagged with a generation number so that a fetch finishing after a
newer selection (or after the asset changed) is dropped instead of replacing
the newer animation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .binder import SkeletonBinding, bind_skeleton
from .errors import BindError
from .normalize import normalize
from .playback import PlaybackController, PlaybackState
from .scene import SceneNode
from .smd.parser import DEFAULT_NAME, parse, parse_text
from .smd.types import MotionFile
from .tracks import DEFAULT_POSITION_SCALE, FPS, AnimationClip, build_clip, synthesize_tracks

log = logging.getLogger("smd_motion")


@dataclass
class ImportSettings:
    fps: int = FPS
    position_scale: float = DEFAULT_POSITION_SCALE
    autoplay: bool = True


@dataclass(frozen=True)
class AnimationInfo:
    """Read-only summary of the loaded motion, for display."""

    name: str
    duration_seconds: float
    frame_count: int
    bone_count: int

    @classmethod
    def from_motion(cls, motion: MotionFile, name: str, fps: int = FPS) -> AnimationInfo:
        return cls(
            name=name,
            duration_seconds=round(motion.frame_count / fps, 2),
            frame_count=motion.frame_count,
            bone_count=motion.bone_count,
        )


def build_animation(
    motion: MotionFile, name: str, settings: ImportSettings | None = None
) -> AnimationClip:
    """Turn a parsed motion into a clip of bind-pose-relative tracks."""
    settings = settings or ImportSettings()
    _, deltas = normalize(motion.frames)
    tracks = synthesize_tracks(
        deltas, motion.bones, fps=settings.fps, position_scale=settings.position_scale
    )
    return build_clip(name, tracks)


class MotionSession:
    """One preview: one target asset, at most one playing motion."""

    def __init__(
        self, asset_root: SceneNode | None = None, settings: ImportSettings | None = None
    ) -> None:
        self.settings = settings or ImportSettings()
        self._asset_root = asset_root
        self._binding: SkeletonBinding | None = None
        self._generation = 0
        self.motion: MotionFile | None = None
        self.clip: AnimationClip | None = None
        self.controller: PlaybackController | None = None
        self.info: AnimationInfo | None = None
        self.warnings: list[str] = []

    # -- asset --

    @property
    def asset_root(self) -> SceneNode | None:
        """The scene root to display; replaced when a static mesh was the root."""
        if self._binding is not None:
            return self._binding.root
        return self._asset_root

    @property
    def binding(self) -> SkeletonBinding | None:
        return self._binding

    def set_asset(self, root: SceneNode | None) -> None:
        """Switch the target asset.  Pending loads are invalidated."""
        self._generation += 1
        self._release_controller()
        self._asset_root = root
        self._binding = None
        self.motion = None
        self.clip = None
        self.info = None
        self.warnings = []
        log.info("Asset changed (generation %d)", self._generation)

    # -- loading --

    def begin_load(self) -> int:
        """Start a load and return its token.  Any earlier token becomes stale."""
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def complete_load(self, token: int, text: str, name: str | None = None) -> AnimationInfo | None:
        """Finish the load started with *token* using the fetched *text*.

        Returns None when the load was superseded.  Parse and bind errors
        propagate and leave the current animation untouched.
        """
        if not self.is_current(token):
            log.info("Discarding stale motion load %d (current %d)", token, self._generation)
            return None
        motion = parse_text(text)
        return self._activate(motion, name or motion.name)

    def load_text(self, text: str, name: str | None = None) -> AnimationInfo:
        return self.complete_load(self.begin_load(), text, name)

    def load_file(self, filepath: str | Path, name: str | None = None) -> AnimationInfo | None:
        """Read, parse and activate an SMD file.

        A file without a ``// name:`` comment is named after its stem.
        """
        token = self.begin_load()
        motion = parse(filepath)
        if not self.is_current(token):
            log.info("Discarding stale motion load %d (current %d)", token, self._generation)
            return None
        if name is None:
            name = motion.name if motion.name != DEFAULT_NAME else Path(filepath).stem
        return self._activate(motion, name)

    def _activate(self, motion: MotionFile, name: str) -> AnimationInfo:
        if self._asset_root is None:
            raise BindError("No asset loaded to apply the motion to")

        # Build everything that can fail before touching the running controller
        clip = build_animation(motion, name, self.settings)
        if self._binding is None:
            binding = bind_skeleton(self._asset_root, motion.bones)
        else:
            binding = self._binding

        self._release_controller()
        if binding is self._binding:
            binding.match(motion.bones)
        self._binding = binding

        controller = PlaybackController(clip, binding)
        if self.settings.autoplay:
            controller.play()

        self.motion = motion
        self.clip = clip
        self.controller = controller
        self.info = AnimationInfo.from_motion(motion, name, self.settings.fps)
        self.warnings = binding.all_warnings

        log.info(
            "Motion '%s' active: %d frames, %d bones, %.2fs, %d warnings",
            self.info.name,
            self.info.frame_count,
            self.info.bone_count,
            self.info.duration_seconds,
            len(self.warnings),
        )
        return self.info

    # -- playback passthrough --

    def tick(self, delta: float) -> None:
        if self.controller is not None:
            self.controller.update(delta)

    @property
    def playback_state(self) -> PlaybackState | None:
        return None if self.controller is None else self.controller.state

    def unload(self) -> None:
        """Drop the active motion and return the skeleton to its bind pose."""
        self._generation += 1
        self._release_controller()
        self.motion = None
        self.clip = None
        self.info = None
        self.warnings = []

    def _release_controller(self) -> None:
        controller = self.controller
        if controller is None:
            return
        controller.stop()
        controller.detach()
        self.controller = None
