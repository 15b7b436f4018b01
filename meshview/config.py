"""
Render and viewer settings.

RenderStyle holds everything that decides how a frame looks (colors, the
light, line widths). ViewerConfig holds the interactive window's settings
and can be seeded from MESHVIEW_* environment variables.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]


@dataclass(frozen=True)
class RenderStyle:
    """Colors and constants used by the lighting and draw-emission stages."""
    surface_color: RGBA = (189, 189, 189, 255)
    selected_color: RGBA = (33, 150, 243, 255)
    hovered_color: RGBA = (3, 169, 244, 255)
    edge_color: RGBA = (0, 0, 0, 138)
    selected_edge_color: RGBA = (13, 71, 161, 255)
    edge_width: int = 1

    # directional light, normalized by the lighting stage
    light_direction: Tuple[float, float, float] = (0.3, 0.5, 1.0)
    ambient: float = 0.3

    axis_length: float = 1.0
    axis_width: int = 2
    axis_colors: Tuple[RGBA, RGBA, RGBA] = (
        (244, 67, 54, 255),
        (76, 175, 80, 255),
        (33, 150, 243, 255),
    )
    axis_label_size: int = 12

    grid_color: RGBA = (255, 255, 255, 51)
    grid_width: int = 1

    background_top: RGBA = (45, 45, 68, 255)
    background_bottom: RGBA = (26, 26, 46, 255)


DEFAULT_STYLE = RenderStyle()


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ViewerConfig:
    """Settings for the interactive pygame viewer."""
    width: int = 1024
    height: int = 768
    fps: int = 60
    orbit_sensitivity: float = 0.01
    pan_sensitivity: float = 0.02
    zoom_step: float = 0.1
    render_mode: str = "solid_with_edges"
    show_grid: bool = True
    export_dir: Path = field(default_factory=Path.cwd)
    log_level: str = "INFO"
    style: RenderStyle = DEFAULT_STYLE

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidArgumentError(f"window size must be positive, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise InvalidArgumentError(f"fps must be positive, got {self.fps}")
        self.export_dir = Path(self.export_dir)

    @classmethod
    def from_env(cls) -> "ViewerConfig":
        """
        Build a config from environment variables, falling back to defaults.

        MESHVIEW_WIDTH, MESHVIEW_HEIGHT, MESHVIEW_FPS, MESHVIEW_MODE,
        MESHVIEW_GRID, MESHVIEW_EXPORT_DIR, MESHVIEW_LOG_LEVEL
        """
        defaults = cls()
        return cls(
            width=_env_int("MESHVIEW_WIDTH", defaults.width),
            height=_env_int("MESHVIEW_HEIGHT", defaults.height),
            fps=_env_int("MESHVIEW_FPS", defaults.fps),
            render_mode=os.environ.get("MESHVIEW_MODE", defaults.render_mode),
            show_grid=_env_bool("MESHVIEW_GRID", defaults.show_grid),
            export_dir=Path(os.environ.get("MESHVIEW_EXPORT_DIR", str(defaults.export_dir))),
            log_level=os.environ.get("MESHVIEW_LOG_LEVEL", defaults.log_level).upper(),
        )
