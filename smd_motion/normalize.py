"""Reference-pose normalization.

SMD captures are layered onto the target skeleton's own bind pose rather than
replacing it, so every frame is rewritten relative to frame 0.  After this
step frame 0 is exactly zero for every bone it samples.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import EmptyAnimationError
from .smd.types import BoneSample, Frame

log = logging.getLogger("smd_motion")

Vec3 = tuple[float, float, float]


@dataclass
class ReferencePose:
    """Frame-0 position/rotation per bone id."""

    entries: dict[int, tuple[Vec3, Vec3]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, frame: Frame) -> ReferencePose:
        return cls({s.bone_id: (s.position, s.rotation) for s in frame.samples})

    def __contains__(self, bone_id: int) -> bool:
        return bone_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, bone_id: int) -> tuple[Vec3, Vec3] | None:
        return self.entries.get(bone_id)

    def subtract(self, sample: BoneSample) -> BoneSample:
        """Return *sample* relative to this pose (unchanged if the bone has no entry)."""
        ref = self.get(sample.bone_id)
        if ref is None:
            return sample
        ref_pos, ref_rot = ref
        return BoneSample(
            bone_id=sample.bone_id,
            position=_sub(sample.position, ref_pos),
            rotation=_sub(sample.rotation, ref_rot),
        )


def _sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def normalize(frames: list[Frame]) -> tuple[ReferencePose, list[Frame]]:
    """Capture frame 0 as the reference pose and return delta frames.

    The input frames are left untouched.  Raises EmptyAnimationError when
    there is no frame to take the reference pose from.
    """
    if not frames:
        raise EmptyAnimationError("Motion has no frames; no reference pose can be derived")

    reference = ReferencePose.from_frame(frames[0])
    deltas = [
        Frame(time=frame.time, samples=[reference.subtract(s) for s in frame.samples])
        for frame in frames
    ]

    unreferenced = {
        s.bone_id for frame in frames[1:] for s in frame.samples
        if s.bone_id not in reference
    }
    if unreferenced:
        log.debug(
            "Bones absent from frame 0 kept as absolute values: %s",
            ", ".join(str(i) for i in sorted(unreferenced)),
        )

    log.info("Reference pose captured for %d bones over %d frames", len(reference), len(deltas))
    return reference, deltas
