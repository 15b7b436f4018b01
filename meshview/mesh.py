import time
from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidArgumentError


def _read_only(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class Mesh:
    """
    Indexed triangle mesh.

    positions - flat x,y,z floats, vertex i is positions[3i:3i+3]
    normals   - flat per-vertex normals, same length as positions
    indices   - flat vertex indices, every triple is one triangle
    id        - identity; two meshes are equal iff their ids match

    Any sequence (list, tuple, numpy array) is accepted and frozen into a
    tuple. A mesh is never mutated: geometry changes produce a new Mesh with
    the same id, which then replaces the old one wherever it is stored.
    """
    positions: Tuple[float, ...]
    normals: Tuple[float, ...]
    indices: Tuple[int, ...]
    id: str

    def __post_init__(self):
        positions = tuple(float(v) for v in np.asarray(self.positions, dtype=np.float64).ravel())
        normals = tuple(float(v) for v in np.asarray(self.normals, dtype=np.float64).ravel())
        indices = tuple(int(i) for i in np.asarray(self.indices, dtype=np.int64).ravel())
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "normals", normals)
        object.__setattr__(self, "indices", indices)

        if len(positions) % 3 != 0:
            raise InvalidArgumentError(
                f"mesh {self.id!r}: positions length {len(positions)} is not a multiple of 3")
        if len(normals) != len(positions):
            raise InvalidArgumentError(
                f"mesh {self.id!r}: {len(normals)} normal values for {len(positions)} position values")
        if len(indices) % 3 != 0:
            raise InvalidArgumentError(
                f"mesh {self.id!r}: indices length {len(indices)} is not a multiple of 3")
        n = len(positions) // 3
        for i in indices:
            if i < 0 or i >= n:
                raise InvalidArgumentError(
                    f"mesh {self.id!r}: index {i} out of range for {n} vertices")

    # identity semantics: content is irrelevant
    def __eq__(self, other):
        if self is other:
            return True
        return isinstance(other, Mesh) and other.id == self.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Mesh(id: {self.id}, vertices: {self.vertex_count}, triangles: {self.triangle_count})"

    __str__ = __repr__

    @property
    def vertex_count(self) -> int:
        return len(self.positions) // 3

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    # numpy views, built once per mesh and read-only
    @cached_property
    def _vertex_array(self) -> np.ndarray:
        return _read_only(np.array(self.positions, dtype=np.float64).reshape(-1, 3))

    @cached_property
    def _normal_array(self) -> np.ndarray:
        return _read_only(np.array(self.normals, dtype=np.float64).reshape(-1, 3))

    @cached_property
    def _triangle_array(self) -> np.ndarray:
        return _read_only(np.array(self.indices, dtype=np.int64).reshape(-1, 3))

    def vertex_array(self) -> np.ndarray:
        """(vertex_count, 3) float64 positions."""
        return self._vertex_array

    def normal_array(self) -> np.ndarray:
        """(vertex_count, 3) float64 normals."""
        return self._normal_array

    def triangle_array(self) -> np.ndarray:
        """(triangle_count, 3) int64 vertex indices."""
        return self._triangle_array

    def bounds(self) -> Optional[Tuple[Tuple[float, float, float], Tuple[float, float, float]]]:
        """Axis-aligned (min, max) corners, or None for a mesh without vertices."""
        if self.vertex_count == 0:
            return None
        v = self.vertex_array()
        lo, hi = v.min(axis=0), v.max(axis=0)
        return (tuple(float(c) for c in lo), tuple(float(c) for c in hi))

    # ========================================================
    #  Factories
    # ========================================================

    @classmethod
    def empty(cls, id: str) -> "Mesh":
        return cls(positions=(), normals=(), indices=(), id=id)

    @classmethod
    def cube(cls, id: str, size: float = 1.0,
             center: Sequence[float] = (0.0, 0.0, 0.0)) -> "Mesh":
        """
        Axis-aligned cube of edge length `size`.

        8 shared corner vertices, 12 triangles wound counter-clockwise seen
        from outside, so every face normal points away from the center.
        Vertex normals are the normalized corner directions.
        """
        half = size / 2.0
        cx, cy, cz = (float(c) for c in center)
        corners = [
            (-1, -1, -1),  # 0
            (1, -1, -1),   # 1
            (1, 1, -1),    # 2
            (-1, 1, -1),   # 3
            (-1, -1, 1),   # 4
            (1, -1, 1),    # 5
            (1, 1, 1),     # 6
            (-1, 1, 1),    # 7
        ]
        positions: List[float] = []
        normals: List[float] = []
        inv = 1.0 / np.sqrt(3.0)
        for sx, sy, sz in corners:
            positions += [cx + sx * half, cy + sy * half, cz + sz * half]
            normals += [sx * inv, sy * inv, sz * inv]

        indices = [
            # back (-z)
            0, 2, 1, 0, 3, 2,
            # front (+z)
            4, 5, 6, 4, 6, 7,
            # top (+y)
            3, 7, 6, 3, 6, 2,
            # bottom (-y)
            0, 1, 5, 0, 5, 4,
            # right (+x)
            1, 2, 6, 1, 6, 5,
            # left (-x)
            0, 4, 7, 0, 7, 3,
        ]
        return cls(positions=positions, normals=normals, indices=indices, id=id)


def merge_meshes(meshes: Iterable[Mesh], id: Optional[str] = None) -> Mesh:
    """
    Concatenate meshes into one.

    Positions and normals are appended in input order; each mesh's indices
    are shifted by the number of vertices that precede it. Unless given,
    the id is time based and not stable between calls.
    """
    meshes = list(meshes)
    if not meshes:
        raise InvalidArgumentError("No meshes to merge")

    positions: List[float] = []
    normals: List[float] = []
    indices: List[int] = []
    vertex_offset = 0
    for mesh in meshes:
        positions.extend(mesh.positions)
        normals.extend(mesh.normals)
        indices.extend(i + vertex_offset for i in mesh.indices)
        vertex_offset += mesh.vertex_count

    if id is None:
        id = f"merged_{time.time_ns() // 1000}"
    return Mesh(positions=positions, normals=normals, indices=indices, id=id)
