"""
Transform & culling stage.

Takes mesh triangles through view-projection space to screen pixels and
drops what cannot be drawn safely:
  - triangles with any vertex behind the camera (clip w <= 0); there is no
    near-plane clipping, so such triangles vanish as a whole
  - degenerate triangles (|(v1-v0) x (v2-v0)| < DEGENERATE_EPS)
  - back faces (face normal points away from the camera)
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from .config import DEFAULT_STYLE, RGBA, RenderStyle
from .kernels import face_normals, project_vertices
from .lighting import light_vector, shade_triangle
from .math3d import Mat4, Vec3, to_screen
from .mesh import Mesh

logger = logging.getLogger(__name__)

DEGENERATE_EPS = 1e-4

Point2 = Tuple[float, float]
Size = Tuple[float, float]


@dataclass(frozen=True)
class RenderTriangle:
    """
    One visible, lit triangle in screen space.

    depth is the mean NDC z of the three vertices (larger = farther) and
    only decides draw order.
    """
    p0: Point2
    p1: Point2
    p2: Point2
    depth: float
    color: RGBA
    edge_color: RGBA
    mesh_id: str

    @property
    def points(self) -> Tuple[Point2, Point2, Point2]:
        return (self.p0, self.p1, self.p2)

    def contains(self, x: float, y: float) -> bool:
        """Screen-space point-in-triangle test (either winding)."""
        (ax, ay), (bx, by), (cx, cy) = self.p0, self.p1, self.p2
        d1 = (x - bx) * (ay - by) - (ax - bx) * (y - by)
        d2 = (x - cx) * (by - cy) - (bx - cx) * (y - cy)
        d3 = (x - ax) * (cy - ay) - (cx - ax) * (y - ay)
        has_neg = d1 < 0 or d2 < 0 or d3 < 0
        has_pos = d1 > 0 or d2 > 0 or d3 > 0
        return not (has_neg and has_pos)


def project_point(point: Vec3, vp: Mat4, size: Size) -> Optional[Tuple[float, float, float]]:
    """
    Screen position (x, y) plus NDC z of a single point, or None when the
    point is behind the camera (w <= 0).
    """
    c = vp.transform_point(point)
    if c.w <= 0.0:
        return None
    width, height = size
    sx, sy = to_screen(c.x / c.w, c.y / c.w, width, height)
    return (sx, sy, c.z / c.w)


def visible_faces(mesh: Mesh, vp: Mat4, camera_position: Vec3,
                  size: Size) -> Iterator[Tuple[int, np.ndarray, float, np.ndarray]]:
    """
    Yield (triangle index, 3x2 screen points, depth, unit face normal) for
    every triangle of `mesh` that survives culling, in index order.
    """
    tris = mesh.triangle_array()
    if tris.shape[0] == 0:
        return
    verts = mesh.vertex_array()
    width, height = size

    screen, w = project_vertices(verts, vp.m, float(width), float(height))
    normals, lengths = face_normals(verts, tris)

    behind = (w[tris] <= 0.0).any(axis=1)
    degenerate = lengths < DEGENERATE_EPS

    # view direction from each centroid towards the eye
    centroids = verts[tris].mean(axis=1)
    view_dirs = np.array(camera_position.as_tuple()) - centroids
    view_len = np.linalg.norm(view_dirs, axis=1)
    view_len[view_len <= 1e-12] = 1.0
    view_dirs /= view_len[:, None]
    facing = np.einsum("ij,ij->i", normals, view_dirs)
    back = facing < 0.0

    keep = ~(behind | degenerate | back)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"mesh {mesh.id}: {int(keep.sum())}/{tris.shape[0]} visible "
            f"(behind={int(behind.sum())}, degenerate={int(degenerate.sum())}, back={int(back.sum())})")

    for t in np.flatnonzero(keep):
        corners = screen[tris[t]]
        depth = float(corners[:, 2].mean())
        yield int(t), corners[:, :2], depth, normals[t]


def collect_triangles(meshes: Iterable[Mesh], vp: Mat4, camera_position: Vec3, size: Size,
                      selected_id: Optional[str] = None, hovered_id: Optional[str] = None,
                      style: RenderStyle = DEFAULT_STYLE) -> List[RenderTriangle]:
    """Transform, cull and light every triangle of every mesh (unsorted)."""
    light = light_vector(style)
    triangles: List[RenderTriangle] = []
    for mesh in meshes:
        for _, pts, depth, normal in visible_faces(mesh, vp, camera_position, size):
            fill, edge = shade_triangle(normal, mesh.id, selected_id, hovered_id, light, style)
            triangles.append(RenderTriangle(
                p0=(float(pts[0, 0]), float(pts[0, 1])),
                p1=(float(pts[1, 0]), float(pts[1, 1])),
                p2=(float(pts[2, 0]), float(pts[2, 1])),
                depth=depth,
                color=fill,
                edge_color=edge,
                mesh_id=mesh.id,
            ))
    return triangles
