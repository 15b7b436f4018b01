"""
Flat per-triangle lighting: one directional light plus ambient.

    intensity = clamp(ambient + max(0, N.L) * (1 - ambient), 0, 1)
    fill      = base color * intensity (alpha untouched)
"""
from typing import Optional, Sequence, Tuple

from .config import DEFAULT_STYLE, RGBA, RenderStyle
from .math3d import Vec3


def light_vector(style: RenderStyle = DEFAULT_STYLE) -> Vec3:
    return Vec3.of(style.light_direction).normalize()


def intensity(normal: Sequence[float], light: Vec3, ambient: float) -> float:
    """Lambert + ambient shade factor in [0, 1] for a unit face normal."""
    ndotl = max(0.0, normal[0] * light.x + normal[1] * light.y + normal[2] * light.z)
    return max(0.0, min(1.0, ambient + ndotl * (1.0 - ambient)))


def base_color(mesh_id: str, selected_id: Optional[str], hovered_id: Optional[str],
               style: RenderStyle = DEFAULT_STYLE) -> RGBA:
    """Selection wins over hover, hover over the plain surface color."""
    if selected_id is not None and mesh_id == selected_id:
        return style.selected_color
    if hovered_id is not None and mesh_id == hovered_id:
        return style.hovered_color
    return style.surface_color


def edge_color(mesh_id: str, selected_id: Optional[str], style: RenderStyle = DEFAULT_STYLE) -> RGBA:
    if selected_id is not None and mesh_id == selected_id:
        return style.selected_edge_color
    return style.edge_color


def shade(color: RGBA, factor: float) -> RGBA:
    """Scale r, g, b by factor, rounding half up; alpha is kept."""
    r, g, b, a = color
    return (_channel(r * factor), _channel(g * factor), _channel(b * factor), a)


def _channel(v: float) -> int:
    return max(0, min(255, int(v + 0.5)))


def shade_triangle(normal: Sequence[float], mesh_id: str,
                   selected_id: Optional[str], hovered_id: Optional[str],
                   light: Vec3, style: RenderStyle = DEFAULT_STYLE) -> Tuple[RGBA, RGBA]:
    """(fill, edge) colors for one visible triangle."""
    k = intensity(normal, light, style.ambient)
    fill = shade(base_color(mesh_id, selected_id, hovered_id, style), k)
    return fill, edge_color(mesh_id, selected_id, style)
