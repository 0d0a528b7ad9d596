"""Scene-graph types consumed by the binder and the playback controller.

Asset loaders build these from their own formats; nothing here reads files.
Bone transforms are local to the parent bone: ``location`` Vector,
``rotation`` Quaternion and ``scale`` Vector, the same layout as Blender pose
bones.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TypeVar

from mathutils import Matrix, Quaternion, Vector

N = TypeVar("N", bound="SceneNode")


class SceneNode:
    """A named node with ordered children."""

    def __init__(self, name: str = "", children: list[SceneNode] | None = None) -> None:
        self.name = name
        self.parent: SceneNode | None = None
        self.children: list[SceneNode] = []
        for child in children or []:
            self.add(child)

    def add(self, child: SceneNode) -> SceneNode:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: SceneNode) -> None:
        self.children.remove(child)
        child.parent = None

    def replace(self, old: SceneNode, new: SceneNode) -> None:
        """Put *new* in *old*'s slot, keeping sibling order."""
        idx = self.children.index(old)
        if new.parent is not None:
            new.parent.remove(new)
            idx = self.children.index(old)
        self.children[idx] = new
        old.parent = None
        new.parent = self

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, children={len(self.children)})"


def iter_nodes(root: SceneNode, kind: type[N] = SceneNode) -> Iterator[N]:
    """Depth-first, pre-order walk yielding nodes that are instances of *kind*.

    The walk is lazy; callers may stop early.  The tree must not be modified
    while iterating.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, kind):
            yield node
        stack.extend(reversed(node.children))


class BoneNode(SceneNode):
    """A bone with a local transform relative to its parent bone."""

    def __init__(
        self,
        name: str = "",
        location: Vector | tuple[float, float, float] = (0.0, 0.0, 0.0),
        rotation: Quaternion | tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0),
        scale: Vector | tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> None:
        super().__init__(name)
        self.location = Vector(location)
        self.rotation = Quaternion(rotation)  # (w, x, y, z)
        self.scale = Vector(scale)
        self.matrix_world = Matrix.Identity(4)

    @property
    def matrix_local(self) -> Matrix:
        return (
            Matrix.Translation(self.location)
            @ self.rotation.to_matrix().to_4x4()
            @ Matrix.Diagonal(self.scale).to_4x4()
        )

    @property
    def parent_bone(self) -> BoneNode | None:
        return self.parent if isinstance(self.parent, BoneNode) else None


class Skeleton:
    """Ordered bones of one rig.  Bone order defines the bone index."""

    def __init__(self, bones: list[BoneNode]) -> None:
        self.bones = list(bones)
        self._index = {id(b): i for i, b in enumerate(self.bones)}

    def __len__(self) -> int:
        return len(self.bones)

    def __iter__(self) -> Iterator[BoneNode]:
        return iter(self.bones)

    def index_of(self, bone: BoneNode) -> int:
        return self._index[id(bone)]

    def get(self, name: str) -> BoneNode | None:
        for bone in self.bones:
            if bone.name == name:
                return bone
        return None

    def parent_indices(self) -> list[int]:
        """Index of each bone's parent bone within this skeleton, -1 for roots."""
        return [
            self._index.get(id(b.parent_bone), -1) if b.parent_bone is not None else -1
            for b in self.bones
        ]

    def pose(self) -> None:
        """Recompute every bone's world matrix from the local transforms."""
        cache: dict[int, Matrix] = {}

        def world(bone: BoneNode) -> Matrix:
            key = id(bone)
            if key not in cache:
                parent = bone.parent_bone
                local = bone.matrix_local
                cache[key] = world(parent) @ local if parent is not None else local
            return cache[key]

        for bone in self.bones:
            bone.matrix_world = world(bone)


class Mesh(SceneNode):
    """A static mesh.  Geometry and material are opaque host objects."""

    def __init__(self, name: str = "", geometry: object = None, material: object = None) -> None:
        super().__init__(name)
        self.geometry = geometry
        self.material = material


class SkinnedMesh(Mesh):
    """A mesh deformed by a skeleton."""

    def __init__(
        self,
        name: str = "",
        geometry: object = None,
        material: object = None,
        skeleton: Skeleton | None = None,
    ) -> None:
        super().__init__(name, geometry, material)
        self.skeleton: Skeleton | None = None
        if skeleton is not None:
            self.bind(skeleton)

    def bind(self, skeleton: Skeleton) -> None:
        """Attach *skeleton* and pose it at its bind transforms."""
        skeleton.pose()
        self.skeleton = skeleton
