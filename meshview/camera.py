import math
from dataclasses import dataclass, replace

from .errors import InvalidArgumentError
from .math3d import Mat4, Vec3, angle_between, look_at, perspective, rotate_axis

# Closest the view direction may get to `up` while orbiting (radians).
_POLE_MARGIN = 0.01


@dataclass(frozen=True)
class Camera:
    """
    Perspective camera looking from `position` at `target`.

    Frozen: orbit / zoom / pan / look_at return a new Camera, so a frame
    always renders from one consistent pose.

    Invariants (checked on construction):
      - near > 0 and far > near
      - 0 < fov_y < 180 (degrees)
      - position != target, and up is not parallel to the view direction
    """
    position: Vec3
    target: Vec3
    up: Vec3
    fov_y: float = 60.0
    near: float = 0.1
    far: float = 1000.0

    def __post_init__(self):
        if not self.near > 0.0:
            raise InvalidArgumentError(f"camera near plane must be positive, got {self.near}")
        if not self.far > self.near:
            raise InvalidArgumentError(
                f"camera far plane ({self.far}) must be beyond near plane ({self.near})")
        if not 0.0 < self.fov_y < 180.0:
            raise InvalidArgumentError(f"camera fov_y must be in (0, 180) degrees, got {self.fov_y}")
        direction = self.target - self.position
        if direction.norm() <= 1e-12:
            raise InvalidArgumentError("camera position and target coincide")
        if self.up.cross(direction).norm() <= 1e-12 * max(1.0, direction.norm()):
            raise InvalidArgumentError("camera up vector is parallel to the view direction")

    @classmethod
    def default(cls) -> "Camera":
        """Camera 10 units down +Z looking at the origin."""
        return cls(
            position=Vec3(0.0, 0.0, 10.0),
            target=Vec3.zero(),
            up=Vec3(0.0, 1.0, 0.0),
            fov_y=60.0,
            near=0.1,
            far=1000.0,
        )

    @property
    def distance(self) -> float:
        return (self.position - self.target).norm()

    # ========================================================
    #  Matrices
    # ========================================================

    def view_matrix(self) -> Mat4:
        return look_at(self.position, self.target, self.up)

    def projection_matrix(self, aspect_ratio: float) -> Mat4:
        if not aspect_ratio > 0.0:
            raise InvalidArgumentError(f"aspect ratio must be positive, got {aspect_ratio}")
        return perspective(math.radians(self.fov_y), aspect_ratio, self.near, self.far)

    def view_projection_matrix(self, aspect_ratio: float) -> Mat4:
        return self.projection_matrix(aspect_ratio) @ self.view_matrix()

    # ========================================================
    #  Navigation
    # ========================================================

    def orbit(self, delta_azimuth: float, delta_elevation: float) -> "Camera":
        """
        Rotate the camera around the target (angles in radians).

        Azimuth turns about `up`, elevation about the camera's right
        axis. The distance to the target is unchanged and elevation stops
        short of the poles so `up` never lines up with the view direction.
        """
        offset = self.position - self.target
        distance = offset.norm()

        offset = rotate_axis(offset, self.up.normalize(), delta_azimuth)

        right = self.up.cross(offset).normalize()
        if right.norm() > 0.0 and delta_elevation != 0.0:
            polar = angle_between(offset, self.up)
            if polar is not None:
                # positive elevation lifts the camera towards `up`
                lo = -(math.pi - _POLE_MARGIN - polar)
                hi = polar - _POLE_MARGIN
                delta_elevation = max(lo, min(hi, delta_elevation))
            offset = rotate_axis(offset, right, -delta_elevation)

        offset = offset.normalize() * distance
        return replace(self, position=self.target + offset)

    def zoom(self, factor: float) -> "Camera":
        """
        Scale the distance to the target by `factor` (>1 moves away).

        The new distance is clamped to [2 * near, far / 2].
        """
        if not factor > 0.0:
            raise InvalidArgumentError(f"zoom factor must be positive, got {factor}")
        offset = self.position - self.target
        distance = offset.norm() * factor
        distance = max(self.near * 2.0, min(self.far / 2.0, distance))
        return replace(self, position=self.target + offset.normalize() * distance)

    def pan(self, delta_x: float, delta_y: float) -> "Camera":
        """Slide position and target together in the camera's right/up plane."""
        forward = (self.target - self.position).normalize()
        right = forward.cross(self.up).normalize()
        actual_up = right.cross(forward).normalize()
        offset = right * delta_x + actual_up * delta_y
        return replace(self, position=self.position + offset, target=self.target + offset)

    def look_at(self, x: float, y: float, z: float) -> "Camera":
        """Point the camera at (x, y, z); the position stays where it is."""
        return replace(self, target=Vec3(float(x), float(y), float(z)))
