"""
Drawing commands and the surfaces that execute them.

The renderer never touches a pixel API directly: it produces a list of
small command values (FillPolygon, StrokePolygon, Line, Text) and hands
each one to a surface:

  - PillowSurface    draws onto a PIL image (off-screen snapshots)
  - RecordingSurface keeps the commands (tests, headless callers)
  - PygameSurface    lives in viewer.py, so importing the package does not
    pull in pygame
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .config import RGBA
from .errors import InvalidArgumentError

Point2 = Tuple[float, float]

# Coordinates are clamped to this range before reaching pygame / Pillow;
# vertices just in front of the eye can project to absurd pixel values.
COORD_LIMIT = 1.0e6


def clamp_point(p: Point2) -> Point2:
    x, y = p
    return (max(-COORD_LIMIT, min(COORD_LIMIT, x)), max(-COORD_LIMIT, min(COORD_LIMIT, y)))


# ============================================================
#  Commands
# ============================================================

@dataclass(frozen=True)
class FillPolygon:
    points: Tuple[Point2, ...]
    color: RGBA

    def draw(self, surface):
        surface.fill_polygon(self.points, self.color)


@dataclass(frozen=True)
class StrokePolygon:
    points: Tuple[Point2, ...]
    color: RGBA
    width: int = 1

    def draw(self, surface):
        surface.stroke_polygon(self.points, self.color, self.width)


@dataclass(frozen=True)
class Line:
    start: Point2
    end: Point2
    color: RGBA
    width: int = 1

    def draw(self, surface):
        surface.line(self.start, self.end, self.color, self.width)


@dataclass(frozen=True)
class Text:
    position: Point2
    text: str
    color: RGBA
    size: int = 12

    def draw(self, surface):
        surface.text(self.position, self.text, self.color, self.size)


def emit(commands, surface) -> None:
    """Execute commands on a surface in order."""
    for command in commands:
        command.draw(surface)


# ============================================================
#  Recording surface
# ============================================================

class RecordingSurface:
    """Surface that only remembers what it was asked to draw."""

    def __init__(self):
        self.commands: List = []

    def fill_polygon(self, points: Sequence[Point2], color: RGBA):
        self.commands.append(FillPolygon(tuple(points), color))

    def stroke_polygon(self, points: Sequence[Point2], color: RGBA, width: int = 1):
        self.commands.append(StrokePolygon(tuple(points), color, width))

    def line(self, start: Point2, end: Point2, color: RGBA, width: int = 1):
        self.commands.append(Line(start, end, color, width))

    def text(self, position: Point2, text: str, color: RGBA, size: int = 12):
        self.commands.append(Text(position, text, color, size))

    def of_type(self, kind) -> list:
        return [c for c in self.commands if isinstance(c, kind)]

    def clear(self):
        self.commands.clear()


# ============================================================
#  Pillow surface
# ============================================================

class PillowSurface:
    """
    Draws commands onto an RGB PIL image.

    ImageDraw only blends translucent fills into an RGB image; on an RGBA
    image it would overwrite the alpha channel and punch holes.
    """

    def __init__(self, image: "Image.Image"):
        if image.mode != "RGB":
            raise InvalidArgumentError(f"PillowSurface needs an RGB image, got {image.mode}")
        self.image = image
        self._draw = ImageDraw.Draw(image, "RGBA")
        self._font: Optional[ImageFont.ImageFont] = None

    def fill_polygon(self, points: Sequence[Point2], color: RGBA):
        self._draw.polygon([clamp_point(p) for p in points], fill=tuple(color))

    def stroke_polygon(self, points: Sequence[Point2], color: RGBA, width: int = 1):
        pts = [clamp_point(p) for p in points]
        self._draw.line(pts + pts[:1], fill=tuple(color), width=width)

    def line(self, start: Point2, end: Point2, color: RGBA, width: int = 1):
        self._draw.line([clamp_point(start), clamp_point(end)], fill=tuple(color), width=width)

    def text(self, position: Point2, text: str, color: RGBA, size: int = 12):
        if self._font is None:
            self._font = ImageFont.load_default()
        self._draw.text(clamp_point(position), text, fill=tuple(color), font=self._font)
