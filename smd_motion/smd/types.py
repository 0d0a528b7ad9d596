"""SMD data model — dataclasses for parsed Studiomdl Data motion.

Positions are stored as-is from the file.  Rotations are stored as Euler XYZ
angles in degrees: the file carries radians and the parser converts them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROOT_PARENT = -1


@dataclass(frozen=True)
class BoneDeclaration:
    """One entry of the ``nodes`` section."""

    id: int
    name: str
    parent_id: int  # ROOT_PARENT for root bones

    @property
    def is_root(self) -> bool:
        return self.parent_id == ROOT_PARENT


@dataclass(frozen=True)
class BoneSample:
    """A single bone transform inside a ``time`` block."""

    bone_id: int
    position: tuple[float, float, float]
    rotation: tuple[float, float, float]  # Euler XYZ, degrees


@dataclass
class Frame:
    """All samples recorded under one ``time <n>`` line."""

    time: int  # frame index
    samples: list[BoneSample] = field(default_factory=list)

    def sample_for(self, bone_id: int) -> BoneSample | None:
        for s in self.samples:
            if s.bone_id == bone_id:
                return s
        return None


@dataclass
class MotionFile:
    """Parsed SMD motion data."""

    name: str
    version: int
    bones: list[BoneDeclaration] = field(default_factory=list)
    frames: list[Frame] = field(default_factory=list)

    @property
    def bone_count(self) -> int:
        return len(self.bones)

    @property
    def frame_count(self) -> int:
        return len(self.frames)
