"""SMD text parser — reads Studiomdl Data motion files.

SMD is a line-oriented text format made of ``end``-terminated sections.  Only
``nodes`` (bone declarations) and ``skeleton`` (per-frame bone transforms) are
read; mesh sections such as ``triangles`` are skipped.

Rotations are stored in the file as radians and are converted to degrees here.
Every later stage works in degrees.
"""

from __future__ import annotations

import logging
import math
import re
from enum import Enum
from pathlib import Path

from ..errors import FormatError, LoadError
from .types import BoneDeclaration, BoneSample, Frame, MotionFile

log = logging.getLogger("smd_motion")

DEFAULT_NAME = "Unknown Animation"
DEFAULT_VERSION = 1

_COMMENT_PREFIXES = ("//", "#", ";")
_NAME_RE = re.compile(r"name:\s*(.*)$", re.IGNORECASE)
_NODE_RE = re.compile(r'^(-?\d+)\s+"([^"]*)"\s+(-?\d+)')


class _Section(Enum):
    NONE = "none"
    NODES = "nodes"
    SKELETON = "skeleton"
    OTHER = "other"  # triangles, vertexanimation, ...


def parse_text(text: str) -> MotionFile:
    """Parse SMD text and return a MotionFile.

    Raises FormatError if the text is not a well-formed SMD motion.
    """
    name: str | None = None
    version: int | None = None
    bones: list[BoneDeclaration] = []
    frames: list[Frame] = []
    seen_ids: set[int] = set()
    seen_sections: set[_Section] = set()

    section = _Section.NONE
    section_start = 0
    current: Frame | None = None
    frame_ids: set[int] = set()

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith(_COMMENT_PREFIXES):
            m = _NAME_RE.search(line)
            if m and line.startswith("//") and name is None:
                name = m.group(1).strip() or None
            continue

        parts = line.split()
        keyword = parts[0]

        if section is _Section.NONE:
            if keyword == "version":
                version = _parse_version(parts)
            elif line == "nodes":
                section, section_start = _Section.NODES, lineno
            elif line == "skeleton":
                section, section_start = _Section.SKELETON, lineno
            elif keyword == "time":
                raise FormatError("'time' outside of a skeleton section", lineno)
            elif line == "end":
                log.warning("Stray 'end' at line %d ignored", lineno)
                continue
            elif len(parts) == 1 and keyword.isidentifier():
                section, section_start = _Section.OTHER, lineno
                log.debug("Skipping SMD section '%s' at line %d", keyword, lineno)
            else:
                log.warning("Ignoring unrecognized SMD line %d: %r", lineno, line)
                continue
            seen_sections.add(section)
            continue

        if line == "end":
            section = _Section.NONE
            continue

        if section is _Section.NODES:
            if keyword == "time":
                raise FormatError("'time' outside of a skeleton section", lineno)
            bone = _parse_node(line, lineno)
            if bone.id in seen_ids:
                raise FormatError(f"duplicate bone id {bone.id}", lineno)
            seen_ids.add(bone.id)
            bones.append(bone)

        elif section is _Section.SKELETON:
            if keyword == "time":
                frame_time = _parse_time(parts, lineno)
                if frames and frame_time <= frames[-1].time:
                    raise FormatError(
                        f"frame time {frame_time} does not follow {frames[-1].time}",
                        lineno,
                    )
                current = Frame(time=frame_time)
                frames.append(current)
                frame_ids = set()
            elif current is None:
                raise FormatError("bone sample before any 'time' line", lineno)
            else:
                sample = _parse_sample(parts, lineno)
                if sample.bone_id in frame_ids:
                    raise FormatError(
                        f"duplicate sample for bone {sample.bone_id} in frame {current.time}", lineno
                    )
                frame_ids.add(sample.bone_id)
                current.samples.append(sample)

    if section is not _Section.NONE:
        log.warning(
            "SMD section '%s' opened at line %d is not terminated by 'end'",
            section.value,
            section_start,
        )

    if _Section.NODES not in seen_sections:
        raise FormatError("missing 'nodes' section")
    if _Section.SKELETON not in seen_sections:
        raise FormatError("missing 'skeleton' section")

    _drop_undeclared_samples(frames, seen_ids)

    motion = MotionFile(
        name=name or DEFAULT_NAME,
        version=DEFAULT_VERSION if version is None else version,
        bones=bones,
        frames=frames,
    )
    log.info(
        "SMD parsed: '%s' (version %d), %d bones, %d frames",
        motion.name,
        motion.version,
        motion.bone_count,
        motion.frame_count,
    )
    return motion


def parse(filepath: str | Path) -> MotionFile:
    """Read and parse an SMD file.

    Raises LoadError if the file cannot be read and FormatError if it is
    malformed.
    """
    filepath = Path(filepath)
    try:
        text = filepath.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f"Cannot read SMD file {filepath}: {e}") from e

    log.info("Parsing SMD: %s", filepath.name)
    return parse_text(text)


def _parse_version(parts: list[str]) -> int | None:
    if len(parts) < 2:
        log.warning("SMD 'version' line has no value, assuming %d", DEFAULT_VERSION)
        return None
    try:
        return int(parts[1])
    except ValueError:
        log.warning("SMD version %r is not an integer, assuming %d", parts[1], DEFAULT_VERSION)
        return None


def _parse_node(line: str, lineno: int) -> BoneDeclaration:
    """Parse ``<id> "<name>" <parentId>``; quoted names may contain spaces."""
    m = _NODE_RE.match(line)
    if m:
        return BoneDeclaration(id=int(m.group(1)), name=m.group(2), parent_id=int(m.group(3)))

    parts = line.split()
    if len(parts) < 3:
        raise FormatError(f"node line needs 3 fields, got {len(parts)}", lineno)
    try:
        return BoneDeclaration(
            id=int(parts[0]), name=parts[1].replace('"', ""), parent_id=int(parts[2])
        )
    except ValueError:
        raise FormatError(f"invalid node line: {line!r}", lineno) from None


def _parse_time(parts: list[str], lineno: int) -> int:
    if len(parts) < 2:
        raise FormatError("'time' line has no frame index", lineno)
    try:
        return int(parts[1])
    except ValueError:
        raise FormatError(f"invalid frame index {parts[1]!r}", lineno) from None


def _parse_sample(parts: list[str], lineno: int) -> BoneSample:
    """Parse ``<boneId> px py pz rx ry rz`` (rotation in radians)."""
    if len(parts) < 7:
        raise FormatError(
            f"skeleton line needs 7 fields, got {len(parts)}", lineno
        )
    try:
        bone_id = int(parts[0])
        px, py, pz, rx, ry, rz = (float(p) for p in parts[1:7])
    except ValueError:
        raise FormatError(f"invalid skeleton line: {' '.join(parts)!r}", lineno) from None

    return BoneSample(
        bone_id=bone_id,
        position=(px, py, pz),
        rotation=(math.degrees(rx), math.degrees(ry), math.degrees(rz)),
    )


def _drop_undeclared_samples(frames: list[Frame], declared: set[int]) -> None:
    """Remove samples whose bone id has no ``nodes`` entry."""
    dropped: set[int] = set()
    for frame in frames:
        kept = [s for s in frame.samples if s.bone_id in declared]
        if len(kept) != len(frame.samples):
            dropped.update(s.bone_id for s in frame.samples if s.bone_id not in declared)
            frame.samples = kept

    if dropped:
        ids = sorted(dropped)
        log.warning(
            "SMD: samples for %d undeclared bone ids dropped: %s",
            len(ids),
            ", ".join(str(i) for i in ids[:10]) + ("..." if len(ids) > 10 else ""),
        )
