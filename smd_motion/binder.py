"""Bind parsed SMD bones onto a target scene graph.

Handles:
- Skinned assets → exact (case-sensitive) bone name matching
- Static assets → a synthesized skeleton and a skinned mesh spliced in place
  of the first mesh
- Bind pose snapshot (InitialPoseTable) used for exact reset
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mathutils import Quaternion, Vector

from .errors import BindError
from .scene import BoneNode, Mesh, SceneNode, Skeleton, SkinnedMesh, iter_nodes
from .smd.types import BoneDeclaration

log = logging.getLogger("smd_motion")

SYNTHESIZED_MESH_SUFFIX = "_skinned"


class InitialPoseTable:
    """Bind-pose local transforms keyed by bone index.

    Owned by one SkeletonBinding; snapshotted once before any playback.
    """

    __slots__ = ("_poses",)

    def __init__(self) -> None:
        self._poses: dict[int, tuple[Vector, Quaternion, Vector]] = {}

    @classmethod
    def snapshot(cls, skeleton: Skeleton) -> InitialPoseTable:
        table = cls()
        for i, bone in enumerate(skeleton.bones):
            table._poses[i] = (bone.location.copy(), bone.rotation.copy(), bone.scale.copy())
        return table

    def __len__(self) -> int:
        return len(self._poses)

    def __contains__(self, index: int) -> bool:
        return index in self._poses

    def location(self, index: int) -> Vector:
        return self._poses[index][0]

    def rotation(self, index: int) -> Quaternion:
        return self._poses[index][1]

    def restore(self, skeleton: Skeleton) -> None:
        """Write the snapshot back into the skeleton's bones."""
        for i, bone in enumerate(skeleton.bones):
            pose = self._poses.get(i)
            if pose is None:
                continue
            loc, rot, scale = pose
            bone.location = loc.copy()
            bone.rotation = rot.copy()
            bone.scale = scale.copy()


@dataclass
class SkeletonBinding:
    """The result of binding: skeleton, name lookup and bind pose.

    ``warnings`` holds bind-time problems (synthesis fallback, bad parents);
    ``match_warnings`` holds the bone-name mismatches of the last ``match()``.
    """

    root: SceneNode
    skinned_mesh: SkinnedMesh
    skeleton: Skeleton
    initial_pose: InitialPoseTable
    bone_map: dict[str, BoneNode] = field(default_factory=dict)
    synthesized: bool = False
    warnings: list[str] = field(default_factory=list)
    match_warnings: list[str] = field(default_factory=list)

    @property
    def all_warnings(self) -> list[str]:
        return self.warnings + self.match_warnings

    def match(self, bones: list[BoneDeclaration]) -> list[str]:
        """Map declared bone names onto skeleton bones (exact, case-sensitive).

        Replaces ``bone_map`` and returns one warning per unmatched name.
        Unmatched bones are never moved.
        """
        self.bone_map = {}
        unmatched: list[str] = []
        for decl in bones:
            node = self.skeleton.get(decl.name)
            if node is None:
                unmatched.append(decl.name)
            else:
                self.bone_map[decl.name] = node

        if unmatched:
            log.warning(
                "SMD: %d bone names unmatched: %s",
                len(unmatched),
                ", ".join(unmatched[:10]) + ("..." if len(unmatched) > 10 else ""),
            )
        self.match_warnings = [
            f"Bone '{name}' not found in skeleton; it will not move" for name in unmatched
        ]
        return self.match_warnings

    def bone_index(self, name: str) -> int | None:
        bone = self.bone_map.get(name)
        return None if bone is None else self.skeleton.index_of(bone)

    def restore_initial_pose(self) -> None:
        self.initial_pose.restore(self.skeleton)
        self.skeleton.pose()


def find_skinned_mesh(root: SceneNode) -> SkinnedMesh | None:
    """Return the first skinned mesh (depth-first) that carries a skeleton."""
    return next((m for m in iter_nodes(root, SkinnedMesh) if m.skeleton is not None), None)


def bind_skeleton(root: SceneNode, bones: list[BoneDeclaration]) -> SkeletonBinding:
    """Bind *bones* onto the scene graph under *root*.

    Uses an existing skinned mesh when there is one, otherwise synthesizes a
    skeleton around the first mesh.  Raises BindError when the scene has no
    mesh at all.
    """
    skinned = find_skinned_mesh(root)
    if skinned is not None:
        binding = SkeletonBinding(
            root=root,
            skinned_mesh=skinned,
            skeleton=skinned.skeleton,
            initial_pose=InitialPoseTable.snapshot(skinned.skeleton),
        )
    else:
        binding = _bind_synthesized(root, bones)
    binding.match(bones)

    log.info(
        "Skeleton bound: %d bones, %d matched, synthesized=%s, %d warnings",
        len(binding.skeleton),
        len(binding.bone_map),
        binding.synthesized,
        len(binding.all_warnings),
    )
    return binding


def _bind_synthesized(root: SceneNode, bones: list[BoneDeclaration]) -> SkeletonBinding:
    """Build one bone per declaration around the first mesh of the scene.

    Real skin weights cannot be invented, so the whole mesh follows the root
    bone rigidly.  This is reported as a warning.
    """
    mesh = next(iter_nodes(root, Mesh), None)
    if mesh is None:
        raise BindError("Target asset has no mesh to animate")
    if not bones:
        raise BindError("Cannot synthesize a skeleton without bone declarations")
    _check_acyclic(bones)

    warnings = [
        f"Asset '{mesh.name}' has no skeleton; synthesized {len(bones)} bones. "
        "All vertices follow the root bone rigidly, so the motion will not deform the mesh."
    ]
    log.warning("SMD: no skinned mesh found, synthesizing a %d-bone skeleton", len(bones))

    skinned = SkinnedMesh(
        name=f"{mesh.name}{SYNTHESIZED_MESH_SUFFIX}",
        geometry=mesh.geometry,
        material=mesh.material,
    )
    nodes = {decl.id: BoneNode(decl.name) for decl in bones}
    for decl in bones:
        parent = None if decl.is_root else nodes.get(decl.parent_id)
        if parent is None:
            if not decl.is_root:
                warnings.append(
                    f"Bone '{decl.name}' has undeclared parent id {decl.parent_id}; treated as a root"
                )
            skinned.add(nodes[decl.id])
        else:
            parent.add(nodes[decl.id])

    skeleton = Skeleton([nodes[decl.id] for decl in bones])
    skinned.bind(skeleton)

    # Splice the skinned mesh in where the static mesh was
    new_root = root
    if mesh.parent is not None:
        mesh.parent.replace(mesh, skinned)
    else:
        new_root = skinned
    for child in list(mesh.children):
        skinned.add(child)

    return SkeletonBinding(
        root=new_root,
        skinned_mesh=skinned,
        skeleton=skeleton,
        initial_pose=InitialPoseTable.snapshot(skeleton),
        synthesized=True,
        warnings=warnings,
    )


def _check_acyclic(bones: list[BoneDeclaration]) -> None:
    parents = {b.id: b.parent_id for b in bones}
    for decl in bones:
        seen = {decl.id}
        pid = decl.parent_id
        while pid in parents:
            if pid in seen:
                raise BindError(f"Bone hierarchy has a cycle through bone id {pid}")
            seen.add(pid)
            pid = parents[pid]
