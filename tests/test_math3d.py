"""Tests for vector/matrix helpers and the numba kernels."""

import math

import numpy as np
import pytest

from meshview.kernels import face_normals, project_vertices
from meshview.math3d import Mat4, Vec3, Vec4, look_at, perspective, rotate_axis, to_screen


class TestVec3:

    def test_arithmetic(self):
        a, b = Vec3(1, 2, 3), Vec3(4, 5, 6)
        assert a + b == Vec3(5, 7, 9)
        assert b - a == Vec3(3, 3, 3)
        assert a * 2 == Vec3(2, 4, 6)
        assert -a == Vec3(-1, -2, -3)

    def test_dot_and_cross(self):
        x, y = Vec3(1, 0, 0), Vec3(0, 1, 0)
        assert x.dot(y) == 0.0
        assert x.cross(y) == Vec3(0, 0, 1)

    def test_normalize_zero_vector(self):
        assert Vec3.zero().normalize() == Vec3(0.0, 0.0, 0.0)
        assert Vec3(3, 0, 4).normalize().norm() == pytest.approx(1.0)

    def test_rotate_axis_right_handed(self):
        r = rotate_axis(Vec3(1, 0, 0), Vec3(0, 0, 1), math.pi / 2)
        assert r.is_close(Vec3(0, 1, 0), eps=1e-12)


class TestMat4:

    def test_identity_multiplication(self):
        m = perspective(1.0, 1.5, 0.1, 100.0)
        assert Mat4.identity() @ m == m

    def test_mul_vec4(self):
        m = Mat4.identity()
        m.m[0, 3] = 5.0
        assert m.mul_vec4(Vec4(1, 2, 3, 1)) == Vec4(6.0, 2.0, 3.0, 1.0)

    def test_look_at_basis_is_orthonormal(self):
        v = look_at(Vec3(3, 4, 5), Vec3(0, 0, 0), Vec3(0, 1, 0)).m[:3, :3]
        assert np.allclose(v @ v.T, np.eye(3))

    def test_to_screen_corners(self):
        assert to_screen(-1.0, 1.0, 200, 100) == (0.0, 0.0)
        assert to_screen(1.0, -1.0, 200, 100) == (200.0, 100.0)
        assert to_screen(0.0, 0.0, 200, 100) == (100.0, 50.0)


class TestKernels:

    def test_face_normals(self):
        verts = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [2, 0, 0]], dtype=np.float64)
        tris = np.array([[0, 1, 2], [0, 2, 1], [0, 1, 3]], dtype=np.int64)
        normals, lengths = face_normals(verts, tris)
        assert normals[0].tolist() == [0.0, 0.0, 1.0]
        assert normals[1].tolist() == [0.0, 0.0, -1.0]
        assert lengths[0] == pytest.approx(1.0)
        # collinear: zero length, zero normal
        assert lengths[2] == 0.0
        assert normals[2].tolist() == [0.0, 0.0, 0.0]

    def test_project_vertices_center_and_behind(self):
        vp = (perspective(math.radians(60.0), 2.0, 0.1, 100.0)
              @ look_at(Vec3(0, 0, 10), Vec3(0, 0, 0), Vec3(0, 1, 0)))
        verts = np.array([[0, 0, 0], [0, 0, 20]], dtype=np.float64)
        screen, w = project_vertices(verts, vp.m, 400.0, 200.0)
        assert screen[0, 0] == pytest.approx(200.0)
        assert screen[0, 1] == pytest.approx(100.0)
        assert w[0] == pytest.approx(10.0)
        assert w[1] < 0.0
        assert np.isnan(screen[1]).all()

    def test_project_vertices_y_points_up(self):
        vp = (perspective(math.radians(60.0), 1.0, 0.1, 100.0)
              @ look_at(Vec3(0, 0, 10), Vec3(0, 0, 0), Vec3(0, 1, 0)))
        verts = np.array([[0, 1, 0], [1, 0, 0]], dtype=np.float64)
        screen, _ = project_vertices(verts, vp.m, 100.0, 100.0)
        assert screen[0, 1] < 50.0
        assert screen[1, 0] > 50.0

    def test_empty_input(self):
        verts = np.zeros((0, 3), dtype=np.float64)
        tris = np.zeros((0, 3), dtype=np.int64)
        normals, lengths = face_normals(verts, tris)
        assert normals.shape == (0, 3)
        screen, w = project_vertices(verts, np.eye(4), 10.0, 10.0)
        assert screen.shape == (0, 3)
