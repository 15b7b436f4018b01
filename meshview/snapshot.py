"""
Off-screen rendering into a Pillow image.

Same frame as the viewer, but drawn through PillowSurface so no display
(or pygame window) is needed.
"""
import logging
import os
from typing import Tuple, Union

from PIL import Image

from .config import DEFAULT_STYLE, RenderStyle
from .errors import ExportError
from .renderer import render
from .scene import Scene
from .surfaces import Line, PillowSurface

logger = logging.getLogger(__name__)


def draw_background(surface, size: Tuple[int, int], style: RenderStyle = DEFAULT_STYLE) -> None:
    """Vertical gradient from background_top to background_bottom, one line per row."""
    width, height = size
    top, bottom = style.background_top, style.background_bottom
    for y in range(height):
        t = y / (height - 1) if height > 1 else 0.0
        color = tuple(int(round(a + (b - a) * t)) for a, b in zip(top, bottom))
        Line((0.0, float(y)), (float(width - 1), float(y)), color).draw(surface)


def render_image(scene: Scene, size: Tuple[int, int], show_grid: bool = True,
                 style: RenderStyle = DEFAULT_STYLE) -> "Image.Image":
    """Render `scene` into a new RGBA image of `size` pixels (fully opaque)."""
    width, height = size
    image = Image.new("RGB", (max(1, int(width)), max(1, int(height))), style.background_bottom[:3])
    surface = PillowSurface(image)
    draw_background(surface, image.size, style)
    render(surface, image.size, scene.meshes, scene.camera, scene.mode,
           scene.selected_id, scene.hovered_id, show_grid=show_grid, style=style)
    return image.convert("RGBA")


def save_snapshot(scene: Scene, path: Union[str, os.PathLike], size: Tuple[int, int] = (1024, 768),
                  show_grid: bool = True, style: RenderStyle = DEFAULT_STYLE) -> None:
    image = render_image(scene, size, show_grid, style)
    try:
        image.save(path, format="PNG")
    except OSError as e:
        logger.error(f"Failed to save snapshot {path}: {e}")
        raise ExportError(f"Failed to save snapshot {path}: {e}", path=path) from e
    logger.info(f"Saved snapshot {path} ({image.size[0]}x{image.size[1]})")
