import logging
import time
from typing import Sequence

import pygame

from .camera import Camera
from .config import RGBA, ViewerConfig
from .errors import MeshViewError
from .exporter import ExportFormat, export_meshes, get_extension
from .logging_config import setup_logging
from .mesh import Mesh
from .renderer import RenderMode, frame_commands, frame_triangles, pick
from .scene import Scene
from .snapshot import draw_background, save_snapshot
from .surfaces import Point2, clamp_point, emit

logger = logging.getLogger(__name__)


# ============================================================
#  pygame surface
# ============================================================

class PygameSurface:
    """
    Draws commands onto a pygame.Surface.

    pygame.draw ignores alpha on ordinary surfaces, so translucent colors
    are drawn into a small SRCALPHA layer covering the primitive's bounds
    (clipped to the target) and blitted back.
    """

    def __init__(self, target: "pygame.Surface"):
        self.target = target
        self._fonts = {}

    def _font(self, size: int):
        font = self._fonts.get(size)
        if font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            font = pygame.font.SysFont("consolas", size, bold=True)
            self._fonts[size] = font
        return font

    def _translucent(self, points: Sequence[Point2], width: int, draw_fn):
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        pad = max(1, width)
        left, top = int(min(xs)) - pad, int(min(ys)) - pad
        right, bottom = int(max(xs)) + pad + 1, int(max(ys)) + pad + 1
        rect = pygame.Rect(left, top, right - left, bottom - top).clip(self.target.get_rect())
        if rect.width <= 0 or rect.height <= 0:
            return
        layer = pygame.Surface(rect.size, pygame.SRCALPHA)
        shifted = [(x - rect.x, y - rect.y) for x, y in points]
        draw_fn(layer, shifted)
        self.target.blit(layer, rect.topleft)

    def fill_polygon(self, points: Sequence[Point2], color: RGBA):
        pts = [clamp_point(p) for p in points]
        if color[3] >= 255:
            pygame.draw.polygon(self.target, color, pts)
        else:
            self._translucent(pts, 0, lambda s, q: pygame.draw.polygon(s, color, q))

    def stroke_polygon(self, points: Sequence[Point2], color: RGBA, width: int = 1):
        pts = [clamp_point(p) for p in points]
        if color[3] >= 255:
            pygame.draw.lines(self.target, color, True, pts, width)
        else:
            self._translucent(pts, width, lambda s, q: pygame.draw.lines(s, color, True, q, width))

    def line(self, start: Point2, end: Point2, color: RGBA, width: int = 1):
        pts = [clamp_point(start), clamp_point(end)]
        if color[3] >= 255:
            pygame.draw.line(self.target, color, pts[0], pts[1], width)
        else:
            self._translucent(pts, width, lambda s, q: pygame.draw.line(s, color, q[0], q[1], width))

    def text(self, position: Point2, text: str, color: RGBA, size: int = 12):
        rendered = self._font(size).render(text, True, color[:3])
        self.target.blit(rendered, clamp_point(position))


def demo_scene(config: ViewerConfig) -> Scene:
    """Three cubes of different sizes on the ground plane."""
    meshes = [
        Mesh.cube("cube-center", size=2.0, center=(0.0, 1.0, 0.0)),
        Mesh.cube("cube-left", size=1.0, center=(-3.0, 0.5, 1.0)),
        Mesh.cube("cube-right", size=1.5, center=(3.0, 0.75, -1.0)),
    ]
    camera = Camera.default().orbit(0.6, 0.35)
    return Scene(meshes=meshes, camera=camera, mode=RenderMode.parse(config.render_mode))


def _timestamp() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def main(config: ViewerConfig = None):
    """
    Main interactive loop:
      - handle input (camera, selection, modes, export)
      - rebuild the frame from the scene snapshot
      - present it with a HUD
    """
    if config is None:
        config = ViewerConfig.from_env()
    setup_logging(config.log_level)

    scene = demo_scene(config)
    show_grid = config.show_grid
    size = (config.width, config.height)

    pygame.init()
    screen = pygame.display.set_mode(size)
    pygame.display.set_caption("meshview: 1..3 / M modes, G grid, Tab select, E export, P snapshot")
    surface = PygameSurface(screen)
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("consolas", 14)

    dragging = None  # "orbit" | "pan" | None
    last_mouse = (0, 0)
    triangles = []
    status = ""

    running = True
    while running:
        clock.tick(config.fps)

        # ====================================================
        #  Input handling
        # ====================================================
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False

                # Render mode toggles
                elif event.key == pygame.K_1:
                    scene = scene.with_mode(RenderMode.WIREFRAME)
                elif event.key == pygame.K_2:
                    scene = scene.with_mode(RenderMode.SOLID)
                elif event.key == pygame.K_3:
                    scene = scene.with_mode(RenderMode.SOLID_WITH_EDGES)
                elif event.key == pygame.K_m:
                    scene = scene.cycle_mode()

                elif event.key == pygame.K_g:
                    show_grid = not show_grid
                elif event.key == pygame.K_TAB:
                    scene = scene.cycle_selection()
                elif event.key == pygame.K_r:
                    scene = scene.reset_camera()

                elif event.key == pygame.K_e:
                    fmt = ExportFormat.STL_BINARY
                    path = config.export_dir / f"scene-{_timestamp()}{get_extension(fmt)}"
                    try:
                        export_meshes(scene.meshes, path, fmt)
                        status = f"exported {path.name}"
                    except MeshViewError as e:
                        status = f"export failed: {e}"

                elif event.key == pygame.K_p:
                    path = config.export_dir / f"snapshot-{_timestamp()}.png"
                    try:
                        save_snapshot(scene, path, size, show_grid, config.style)
                        status = f"saved {path.name}"
                    except MeshViewError as e:
                        status = f"snapshot failed: {e}"

            elif event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == 1:
                    dragging = "orbit"
                    last_mouse = event.pos
                    scene = scene.select(pick(triangles, *event.pos))
                elif event.button in (2, 3):
                    dragging = "pan"
                    last_mouse = event.pos

            elif event.type == pygame.MOUSEBUTTONUP:
                if event.button in (1, 2, 3):
                    dragging = None

            elif event.type == pygame.MOUSEWHEEL:
                factor = 1.0 - event.y * config.zoom_step
                if factor > 0.0:
                    scene = scene.with_camera(scene.camera.zoom(factor))

            elif event.type == pygame.MOUSEMOTION:
                mx, my = event.pos
                if dragging is not None:
                    dx, dy = mx - last_mouse[0], my - last_mouse[1]
                    last_mouse = (mx, my)
                    if dragging == "orbit":
                        camera = scene.camera.orbit(dx * config.orbit_sensitivity,
                                                    -dy * config.orbit_sensitivity)
                    else:
                        camera = scene.camera.pan(-dx * config.pan_sensitivity,
                                                  dy * config.pan_sensitivity)
                    scene = scene.with_camera(camera)
                else:
                    scene = scene.hover(pick(triangles, mx, my))

        # ====================================================
        #  Frame
        # ====================================================
        draw_background(surface, size, config.style)
        # kept for picking on the next input events
        triangles = frame_triangles(size, scene.meshes, scene.camera,
                                    scene.selected_id, scene.hovered_id, config.style)
        emit(frame_commands(size, triangles, scene.camera, scene.mode, show_grid, config.style), surface)

        hud = [
            f"Meshes: {len(scene.meshes)} | Selected: {scene.selected_id or 'none'} | "
            f"Mode: {scene.mode.value} | Grid: {show_grid} | FPS: {clock.get_fps():.1f}",
            "LMB drag orbit | RMB drag pan | wheel zoom | click select | Tab cycle | R reset | ESC exit",
        ]
        if status:
            hud.append(status)
        y = 10
        for line in hud:
            screen.blit(font.render(line, True, (235, 235, 235)), (10, y))
            y += 18

        pygame.display.flip()

    pygame.quit()
