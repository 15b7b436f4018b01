"""
meshview: software mesh viewport renderer and 3D interchange exporter.
"""
from .errors import MeshViewError, InvalidArgumentError, ExportError
from .math3d import Vec3, Vec4, Mat4
from .mesh import Mesh, merge_meshes
from .camera import Camera
from .config import RenderStyle, ViewerConfig, DEFAULT_STYLE
from .transform import RenderTriangle
from .renderer import RenderMode, render, build_frame, frame_commands, draw_ground_grid, pick
from .surfaces import RecordingSurface, PillowSurface
from .exporter import (
    ExportFormat,
    export_mesh,
    export_meshes,
    export_mesh_async,
    export_meshes_async,
    encode_mesh,
    get_extension,
    get_mime_type,
)
from .scene import Scene
from .logging_config import setup_logging
