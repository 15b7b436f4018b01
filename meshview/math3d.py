import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np


# ============================================================
#  Math primitives
# ============================================================

@dataclass(frozen=True)
class Vec3:
    """
    3D vector for positions, directions and normals.

    Note:
      - Immutable (frozen); every operation returns a new Vec3.
      - Camera poses are made of these, so a Camera can be shared
        between frames without copying.
    """
    x: float
    y: float
    z: float

    def __add__(self, o): return Vec3(self.x + o.x, self.y + o.y, self.z + o.z)
    def __sub__(self, o): return Vec3(self.x - o.x, self.y - o.y, self.z - o.z)
    def __mul__(self, k: float): return Vec3(self.x * k, self.y * k, self.z * k)
    def __truediv__(self, k: float): return Vec3(self.x / k, self.y / k, self.z / k)
    def __neg__(self): return Vec3(-self.x, -self.y, -self.z)

    @staticmethod
    def zero() -> "Vec3":
        return Vec3(0.0, 0.0, 0.0)

    @staticmethod
    def of(values: Sequence[float]) -> "Vec3":
        """Build from any 3-sequence (tuple, list, numpy row)."""
        return Vec3(float(values[0]), float(values[1]), float(values[2]))

    def dot(self, o) -> float:
        """Dot product (scalar product)."""
        return self.x * o.x + self.y * o.y + self.z * o.z

    def cross(self, o):
        """Cross product (vector product)."""
        return Vec3(
            self.y * o.z - self.z * o.y,
            self.z * o.x - self.x * o.z,
            self.x * o.y - self.y * o.x
        )

    def norm(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.dot(self))

    def normalize(self):
        """Return normalized vector (length=1), or zero for a zero vector."""
        n = self.norm()
        if n <= 1e-12:
            return Vec3(0.0, 0.0, 0.0)
        return self * (1.0 / n)

    def is_close(self, o, eps: float = 1e-9) -> bool:
        return (abs(self.x - o.x) <= eps and abs(self.y - o.y) <= eps
                and abs(self.z - o.z) <= eps)

    def as_tuple(self):
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class Vec4:
    """
    4D homogeneous vector.
    Result of Mat4 * point; w is what the perspective divide uses.
    """
    x: float
    y: float
    z: float
    w: float


class Mat4:
    """
    4x4 matrix (row-major), stored as a numpy float64 array.

    We use Mat4 for:
      - View matrix (look-at)
      - Projection matrix (perspective)
      - The combined view-projection handed to the numba kernels

    Multiplication:
      - Matrix @ Matrix => Mat4
      - Matrix.mul_vec4(Vec4) => Vec4
    """
    def __init__(self, m=None):
        if m is None:
            self.m = np.zeros((4, 4), dtype=np.float64)
        else:
            self.m = np.array(m, dtype=np.float64).reshape(4, 4)

    @staticmethod
    def identity():
        """Create identity matrix."""
        return Mat4(np.eye(4))

    def __matmul__(self, o: "Mat4") -> "Mat4":
        """Matrix multiplication (Mat4 @ Mat4)."""
        return Mat4(self.m @ o.m)

    def __eq__(self, o):
        return isinstance(o, Mat4) and np.array_equal(self.m, o.m)

    def __repr__(self):
        return f"Mat4({self.m.tolist()!r})"

    def mul_vec4(self, v: Vec4) -> Vec4:
        """Multiply matrix by a Vec4 (Mat4 * Vec4)."""
        m = self.m
        x = m[0, 0]*v.x + m[0, 1]*v.y + m[0, 2]*v.z + m[0, 3]*v.w
        y = m[1, 0]*v.x + m[1, 1]*v.y + m[1, 2]*v.z + m[1, 3]*v.w
        z = m[2, 0]*v.x + m[2, 1]*v.y + m[2, 2]*v.z + m[2, 3]*v.w
        w = m[3, 0]*v.x + m[3, 1]*v.y + m[3, 2]*v.z + m[3, 3]*v.w
        return Vec4(float(x), float(y), float(z), float(w))

    def transform_point(self, p: Vec3) -> Vec4:
        """Homogeneous transform of a point (w = 1)."""
        return self.mul_vec4(vec3_to_vec4(p))

    def determinant(self) -> float:
        return float(np.linalg.det(self.m))


def vec3_to_vec4(v: Vec3, w: float = 1.0) -> Vec4:
    """Convert Vec3 to homogeneous Vec4."""
    return Vec4(v.x, v.y, v.z, w)


# ============================================================
#  3D transforms
# ============================================================

def rotate_axis(v: Vec3, axis: Vec3, angle: float) -> Vec3:
    """
    Rotate vector v about a unit axis by angle (radians), right-handed.

    Rodrigues' formula:
      v' = v cos a + (k x v) sin a + k (k . v)(1 - cos a)
    """
    k = axis.normalize()
    c, s = math.cos(angle), math.sin(angle)
    return v * c + k.cross(v) * s + k * (k.dot(v) * (1.0 - c))


def look_at(eye: Vec3, target: Vec3, up: Vec3) -> Mat4:
    """
    Right-handed view matrix.

    The camera looks towards -Z in view space, +Y is up and +X is right.
    Precondition: up must not be parallel to (target - eye), otherwise the
    basis collapses and the matrix is singular.
    """
    z = (eye - target).normalize()
    x = up.cross(z).normalize()
    y = z.cross(x).normalize()
    return Mat4([
        [x.x, x.y, x.z, -x.dot(eye)],
        [y.x, y.y, y.z, -y.dot(eye)],
        [z.x, z.y, z.z, -z.dot(eye)],
        [0.0, 0.0, 0.0, 1.0],
    ])


def perspective(fov_y, aspect, z_near, z_far) -> Mat4:
    """
    Perspective projection matrix.

    Parameters:
      fov_y  - vertical field of view in radians
      aspect - width / height
      z_near - near plane distance (positive)
      z_far  - far plane distance (positive)

    Notes:
      - Camera looks towards -Z in view space.
      - Clip-space w = -z_view, so points behind the eye get w <= 0.
      - NDC z runs from -1 (near) to +1 (far): larger means farther.
    """
    f = 1.0 / math.tan(fov_y / 2.0)
    m = Mat4()
    m.m[0, 0] = f / aspect
    m.m[1, 1] = f
    m.m[2, 2] = (z_far + z_near) / (z_near - z_far)
    m.m[2, 3] = (2.0 * z_far * z_near) / (z_near - z_far)
    m.m[3, 2] = -1.0
    return m


def to_screen(ndc_x, ndc_y, width, height):
    """
    Convert NDC coordinates [-1..1] to screen pixels.

    NDC:
      x=-1 left, x=+1 right
      y=-1 bottom, y=+1 top

    Screen:
      x=0 left, x=width right
      y=0 top, y=height bottom
    """
    sx = (ndc_x + 1.0) * width / 2.0
    sy = (1.0 - ndc_y) * height / 2.0
    return sx, sy


def angle_between(a: Vec3, b: Vec3) -> Optional[float]:
    """Angle in radians between two vectors, None if either is zero."""
    na, nb = a.norm(), b.norm()
    if na <= 1e-12 or nb <= 1e-12:
        return None
    c = max(-1.0, min(1.0, a.dot(b) / (na * nb)))
    return math.acos(c)
