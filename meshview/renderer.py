"""
Immediate-mode mesh renderer.

Every frame is rebuilt from scratch out of (meshes, camera, mode,
selection): transform & cull -> light -> sort far-to-near -> emit draw
commands. Nothing is cached between frames.

There is no depth buffer. Occlusion comes only from draw order (painter's
algorithm), so interpenetrating triangles can be drawn in the wrong order.
"""
import enum
import logging
from typing import List, Optional, Sequence

from .camera import Camera
from .config import DEFAULT_STYLE, RenderStyle
from .errors import InvalidArgumentError
from .math3d import Mat4, Vec3
from .mesh import Mesh
from .surfaces import FillPolygon, Line, StrokePolygon, Text, emit
from .transform import RenderTriangle, Size, collect_triangles, project_point

logger = logging.getLogger(__name__)


class RenderMode(enum.Enum):
    WIREFRAME = "wireframe"
    SOLID = "solid"
    SOLID_WITH_EDGES = "solid_with_edges"

    def next(self) -> "RenderMode":
        """wireframe -> solid -> solid with edges -> wireframe"""
        order = list(RenderMode)
        return order[(order.index(self) + 1) % len(order)]

    @classmethod
    def parse(cls, value) -> "RenderMode":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for mode in cls:
            if mode.value == key or mode.name.lower() == key:
                return mode
        raise InvalidArgumentError(f"unknown render mode {value!r}")


# ============================================================
#  Depth order
# ============================================================

def order_by_depth(triangles: Sequence[RenderTriangle]) -> List[RenderTriangle]:
    """Farthest first. Stable, so equal depths keep collection order."""
    return sorted(triangles, key=lambda t: t.depth, reverse=True)


def pick(ordered: Sequence[RenderTriangle], x: float, y: float) -> Optional[str]:
    """
    Mesh id under screen point (x, y): the last-drawn (nearest) triangle
    containing the point wins. None for empty space.
    """
    for tri in reversed(ordered):
        if tri.contains(x, y):
            return tri.mesh_id
    return None


# ============================================================
#  Draw emission
# ============================================================

def triangle_commands(tri: RenderTriangle, mode: RenderMode,
                      style: RenderStyle = DEFAULT_STYLE) -> list:
    commands = []
    if mode in (RenderMode.SOLID, RenderMode.SOLID_WITH_EDGES):
        commands.append(FillPolygon(tri.points, tri.color))
    if mode in (RenderMode.WIREFRAME, RenderMode.SOLID_WITH_EDGES):
        commands.append(StrokePolygon(tri.points, tri.edge_color, style.edge_width))
    return commands


def axis_commands(size: Size, vp: Mat4, style: RenderStyle = DEFAULT_STYLE) -> list:
    """X / Y / Z unit axes from the origin with their labels."""
    origin = project_point(Vec3.zero(), vp, size)
    if origin is None:
        return []
    n = style.axis_length
    ends = (Vec3(n, 0.0, 0.0), Vec3(0.0, n, 0.0), Vec3(0.0, 0.0, n))
    commands = []
    for end, label, color in zip(ends, "XYZ", style.axis_colors):
        p = project_point(end, vp, size)
        if p is None:
            continue
        commands.append(Line((origin[0], origin[1]), (p[0], p[1]), color, style.axis_width))
        commands.append(Text((p[0] + 5.0, p[1] - 5.0), label, color, style.axis_label_size))
    return commands


def grid_commands(size: Size, vp: Mat4, grid_size: float = 10.0, divisions: int = 10,
                  style: RenderStyle = DEFAULT_STYLE) -> list:
    """
    Ground grid in the y = 0 plane: divisions + 1 lines parallel to X and
    as many parallel to Z, spanning [-grid_size/2, grid_size/2].
    """
    if divisions <= 0 or grid_size <= 0:
        return []
    half = grid_size / 2.0
    step = grid_size / divisions
    commands = []
    for i in range(divisions + 1):
        pos = -half + i * step
        for a, b in ((Vec3(-half, 0.0, pos), Vec3(half, 0.0, pos)),
                     (Vec3(pos, 0.0, -half), Vec3(pos, 0.0, half))):
            pa = project_point(a, vp, size)
            pb = project_point(b, vp, size)
            if pa is None or pb is None:
                continue
            commands.append(Line((pa[0], pa[1]), (pb[0], pb[1]), style.grid_color, style.grid_width))
    return commands


# ============================================================
#  Entry points
# ============================================================

def _valid_size(size: Size) -> bool:
    width, height = size
    return width > 0 and height > 0


def frame_triangles(size: Size, meshes: Sequence[Mesh], camera: Camera,
                    selected_id: Optional[str] = None, hovered_id: Optional[str] = None,
                    style: RenderStyle = DEFAULT_STYLE) -> List[RenderTriangle]:
    """Visible, lit triangles of one frame in draw order (far to near)."""
    style = style or DEFAULT_STYLE
    if not _valid_size(size):
        logger.debug(f"Skipping frame for empty viewport {size}")
        return []
    width, height = size
    vp = camera.view_projection_matrix(width / height)
    triangles = collect_triangles(meshes, vp, camera.position, size,
                                  selected_id, hovered_id, style)
    return order_by_depth(triangles)


def frame_commands(size: Size, triangles: Sequence[RenderTriangle], camera: Camera,
                   mode: RenderMode = RenderMode.SOLID_WITH_EDGES, show_grid: bool = False,
                   style: RenderStyle = DEFAULT_STYLE) -> list:
    """
    Draw commands for already ordered triangles, in order: optional ground
    grid, triangles far to near, then the axes.
    """
    if not _valid_size(size):
        return []
    mode = RenderMode.parse(mode)
    style = style or DEFAULT_STYLE
    width, height = size
    vp = camera.view_projection_matrix(width / height)

    commands = []
    if show_grid:
        commands.extend(grid_commands(size, vp, style=style))
    for tri in triangles:
        commands.extend(triangle_commands(tri, mode, style))
    commands.extend(axis_commands(size, vp, style))
    return commands


def build_frame(size: Size, meshes: Sequence[Mesh], camera: Camera,
                mode: RenderMode = RenderMode.SOLID_WITH_EDGES,
                selected_id: Optional[str] = None, hovered_id: Optional[str] = None,
                show_grid: bool = False, style: RenderStyle = DEFAULT_STYLE) -> list:
    """All draw commands for one frame (see frame_commands for the order)."""
    mode = RenderMode.parse(mode)
    triangles = frame_triangles(size, meshes, camera, selected_id, hovered_id, style)
    return frame_commands(size, triangles, camera, mode, show_grid, style)


def render(surface, size: Size, meshes: Sequence[Mesh], camera: Camera,
           mode: RenderMode = RenderMode.SOLID_WITH_EDGES,
           selected_id: Optional[str] = None, hovered_id: Optional[str] = None,
           show_grid: bool = False, style: RenderStyle = DEFAULT_STYLE) -> None:
    """Draw one frame onto `surface` (see surfaces.py for the protocol)."""
    emit(build_frame(size, meshes, camera, mode, selected_id, hovered_id, show_grid, style), surface)


def draw_ground_grid(surface, size: Size, vp: Mat4, grid_size: float = 10.0,
                     divisions: int = 10, style: RenderStyle = DEFAULT_STYLE) -> None:
    if not _valid_size(size):
        return
    emit(grid_commands(size, vp, grid_size, divisions, style), surface)
