#!/usr/bin/env python3
"""Summarize SMD motion files: bones, frames, tracks and duration.

Usage:
    python scripts/inspect_smd.py <file.smd | directory> [...]

Directories are scanned recursively for *.smd.  Prints one JSON object per
file to stdout; files that fail to load are reported on stderr.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

# Add parent to path so we can import the package without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from smd_motion.errors import MotionError
from smd_motion.helpers import get_clip_info, get_motion_info
from smd_motion.importer import build_animation
from smd_motion.smd.parser import parse


def inspect_file(path: Path) -> dict:
    motion = parse(path)
    info = get_motion_info(motion)
    info["file"] = str(path)
    if motion.frames:
        info["clip"] = get_clip_info(build_animation(motion, motion.name))
    return info


def collect(args: list[str]) -> list[Path]:
    files: list[Path] = []
    for arg in args:
        p = Path(arg)
        if p.is_dir():
            files.extend(sorted(p.rglob("*.smd")))
        else:
            files.append(p)
    return files


def main():
    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} <file.smd | directory> [...]", file=sys.stderr)
        sys.exit(1)

    failures = 0
    for path in collect(sys.argv[1:]):
        try:
            info = inspect_file(path)
        except MotionError as e:
            print(f"  FAIL {path}: {e}", file=sys.stderr)
            failures += 1
            continue
        print(json.dumps(info, ensure_ascii=False))

    if failures:
        sys.exit(2)


if __name__ == "__main__":
    main()
