from __future__ import annotations

import math
from pathlib import Path

import pytest
from mathutils import Quaternion

from smd_motion.scene import BoneNode, Mesh, SceneNode, Skeleton, SkinnedMesh

SAMPLES_DIR = Path(__file__).parent / "samples"


def make_smd(
    bones: list[tuple[int, str, int]],
    frames: list[tuple[int, list[tuple]]],
    name: str | None = None,
    version: int | None = 1,
) -> str:
    """Build SMD text.

    bones: list of (id, name, parent_id)
    frames: list of (time, [(bone_id, (px,py,pz), (rx,ry,rz) radians), ...])
    """
    lines: list[str] = []
    if version is not None:
        lines.append(f"version {version}")
    if name is not None:
        lines.append(f"// name: {name}")
    lines.append("nodes")
    for bone_id, bone_name, parent in bones:
        lines.append(f'  {bone_id} "{bone_name}" {parent}')
    lines.append("end")
    lines.append("skeleton")
    for time, samples in frames:
        lines.append(f"  time {time}")
        for bone_id, pos, rot in samples:
            values = " ".join(f"{v:.6f}" for v in (*pos, *rot))
            lines.append(f"    {bone_id} {values}")
    lines.append("end")
    return "\n".join(lines) + "\n"


ZERO = (0.0, 0.0, 0.0)


@pytest.fixture
def sample_dir() -> Path:
    return SAMPLES_DIR


@pytest.fixture
def two_bone_smd() -> str:
    """root + arm; arm rotated 90° about X at frame 1."""
    return make_smd(
        bones=[(0, "root", -1), (1, "arm", 0)],
        frames=[
            (0, [(0, ZERO, ZERO), (1, ZERO, ZERO)]),
            (1, [(0, ZERO, ZERO), (1, ZERO, (math.pi / 2, 0.0, 0.0))]),
        ],
        name="Arm Raise",
    )


@pytest.fixture
def looping_smd() -> str:
    """31 frames (exactly 1s of clip): root slides 1 unit along X."""
    frames = [
        (i, [(0, (i / 30.0, 0.0, 0.0), (0.0, 0.0, i / 30.0)), (1, ZERO, ZERO)])
        for i in range(31)
    ]
    return make_smd(bones=[(0, "root", -1), (1, "arm", 0)], frames=frames, name="Slide")


@pytest.fixture
def static_asset() -> SceneNode:
    """scene → model → body (plain mesh, no skeleton)."""
    scene = SceneNode("scene")
    model = scene.add(SceneNode("model"))
    model.add(Mesh("body", geometry={"vertices": 8}, material="stone"))
    return scene


@pytest.fixture
def skinned_asset() -> SceneNode:
    """scene → rig → skin (skinned mesh) with root/arm/tail bones in a non-identity bind pose."""
    root = BoneNode("root", location=(0.0, 1.0, 0.0))
    arm = BoneNode(
        "arm",
        location=(0.0, 0.5, 0.0),
        rotation=Quaternion((0.0, 0.0, 1.0), 0.3),
    )
    tail = BoneNode("tail", location=(0.0, -0.5, 0.0))
    root.add(arm)
    root.add(tail)

    skin = SkinnedMesh("skin", geometry={"vertices": 100}, material="skin")
    skin.add(root)
    skin.bind(Skeleton([root, arm, tail]))

    scene = SceneNode("scene")
    rig = scene.add(SceneNode("rig"))
    rig.add(skin)
    return scene
