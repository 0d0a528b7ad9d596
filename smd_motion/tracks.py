"""Keyframe track synthesis — delta frames → time-sampled tracks.

Each bone with at least one sample gets one position track and one rotation
track.  Frames where the bone has no sample are skipped, so sparse bones
simply have fewer keys; nothing is interpolated or zero-filled at build time.
"""

from __future__ import annotations

import bisect
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum

from mathutils import Quaternion, Vector

from .smd.types import BoneDeclaration, BoneSample, Frame

log = logging.getLogger("smd_motion")

# SMD frame indices are played back at a fixed 30fps
FPS = 30
DEFAULT_POSITION_SCALE = 1.0

_X_AXIS = (1.0, 0.0, 0.0)
_Y_AXIS = (0.0, 1.0, 0.0)
_Z_AXIS = (0.0, 0.0, 1.0)


class TrackKind(Enum):
    POSITION = "position"
    ROTATION = "rotation"


@dataclass
class KeyframeTrack:
    """Time-sampled values for one bone property.

    ``values`` holds Vectors for position tracks and Quaternions for
    rotation tracks.  ``times`` is in seconds and strictly increasing.
    """

    bone_name: str
    kind: TrackKind
    times: list[float] = field(default_factory=list)
    values: list = field(default_factory=list)

    @property
    def key(self) -> tuple[str, TrackKind]:
        return (self.bone_name, self.kind)

    @property
    def end_time(self) -> float:
        return self.times[-1] if self.times else 0.0

    def __len__(self) -> int:
        return len(self.times)

    def sample(self, t: float) -> Vector | Quaternion:
        """Value at time *t*: held outside the key range, interpolated inside.

        Position keys are blended linearly, rotation keys spherically.
        """
        times = self.times
        if not times:
            raise ValueError(f"Track {self.bone_name}.{self.kind.value} has no keys")
        if t <= times[0]:
            return self.values[0].copy()
        if t >= times[-1]:
            return self.values[-1].copy()

        i = bisect.bisect_right(times, t)
        t0, t1 = times[i - 1], times[i]
        v0, v1 = self.values[i - 1], self.values[i]
        factor = (t - t0) / (t1 - t0)
        if self.kind is TrackKind.ROTATION:
            return v0.slerp(v1, factor)
        return v0.lerp(v1, factor)


@dataclass
class AnimationClip:
    """A named set of tracks; duration is the latest key time of any track."""

    name: str
    tracks: list[KeyframeTrack] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return max((t.end_time for t in self.tracks), default=0.0)

    @property
    def bone_names(self) -> list[str]:
        names: list[str] = []
        for track in self.tracks:
            if track.bone_name not in names:
                names.append(track.bone_name)
        return names

    def track(self, bone_name: str, kind: TrackKind) -> KeyframeTrack | None:
        for t in self.tracks:
            if t.bone_name == bone_name and t.kind is kind:
                return t
        return None


def euler_to_quaternion(rotation_deg: tuple[float, float, float]) -> Quaternion:
    """Convert Euler XYZ degrees to a unit quaternion (``Rx · Ry · Rz``)."""
    rx, ry, rz = (math.radians(a) for a in rotation_deg)
    q = (
        Quaternion(_X_AXIS, rx)
        @ Quaternion(_Y_AXIS, ry)
        @ Quaternion(_Z_AXIS, rz)
    )
    return q.normalized()


def _compatible_quaternion(prev_q: Quaternion, curr_q: Quaternion) -> Quaternion:
    """Pick the sign of *curr_q* closest to *prev_q*.

    q and -q are the same rotation, but slerp between opposite signs takes
    the long way round.
    """
    return -curr_q if prev_q.dot(curr_q) < 0.0 else curr_q


def synthesize_tracks(
    delta_frames: list[Frame],
    bones: list[BoneDeclaration],
    fps: int = FPS,
    position_scale: float = DEFAULT_POSITION_SCALE,
) -> list[KeyframeTrack]:
    """Build position and rotation tracks for every sampled bone.

    Tracks follow bone declaration order.  Frame index ``n`` maps to
    ``n / fps`` seconds.
    """
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")

    # Group samples by bone id, keeping frame order
    bone_samples: dict[int, list[tuple[int, BoneSample]]] = defaultdict(list)
    for frame in delta_frames:
        for sample in frame.samples:
            bone_samples[sample.bone_id].append((frame.time, sample))

    declared = {b.id for b in bones}
    undeclared = sorted(set(bone_samples) - declared)
    if undeclared:
        log.warning(
            "SMD: samples for %d undeclared bone ids ignored: %s",
            len(undeclared),
            ", ".join(str(i) for i in undeclared[:10])
            + ("..." if len(undeclared) > 10 else ""),
        )

    tracks: list[KeyframeTrack] = []
    for bone in bones:
        samples = bone_samples.get(bone.id)
        if not samples:
            continue

        pos_track = KeyframeTrack(bone.name, TrackKind.POSITION)
        rot_track = KeyframeTrack(bone.name, TrackKind.ROTATION)

        prev_rot = None
        for frame_time, sample in samples:
            t = frame_time / fps
            rot = euler_to_quaternion(sample.rotation)
            if prev_rot is not None:
                rot = _compatible_quaternion(prev_rot, rot)
            prev_rot = rot

            pos_track.times.append(t)
            pos_track.values.append(Vector(sample.position) * position_scale)
            rot_track.times.append(t)
            rot_track.values.append(rot)

        tracks.append(pos_track)
        tracks.append(rot_track)

    log.info(
        "Synthesized %d tracks for %d/%d bones",
        len(tracks),
        len(tracks) // 2,
        len(bones),
    )
    return tracks


def build_clip(name: str, tracks: list[KeyframeTrack]) -> AnimationClip:
    clip = AnimationClip(name=name, tracks=tracks)
    log.info("Clip '%s': %d tracks, %.3fs", clip.name, len(clip.tracks), clip.duration)
    return clip
