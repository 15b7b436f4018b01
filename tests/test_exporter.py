import asyncio
import os
import stat
import struct

import numpy as np
import pytest

from meshview import ExportError, InvalidArgumentError, Mesh
from meshview.exporter import (
    STL_HEADER_PREFIX,
    STL_RECORD,
    ExportFormat,
    encode_mesh,
    encode_meshes,
    export_mesh,
    export_mesh_async,
    export_meshes,
    export_meshes_async,
    get_extension,
    get_mime_type,
    write_obj,
    write_ply,
    write_stl_ascii,
    write_stl_binary,
)


@pytest.fixture
def triangle():
    return Mesh(
        positions=[0, 0, 0, 1, 0, 0, 0, 1, 0],
        normals=[0, 0, 1] * 3,
        indices=[0, 1, 2],
        id="tri",
    )


def stl_records(data: bytes) -> np.ndarray:
    return np.frombuffer(data[84:], dtype=STL_RECORD)


class TestBinaryStl:

    def test_record_is_fifty_bytes(self):
        assert STL_RECORD.itemsize == 50

    def test_size_and_count(self):
        cube = Mesh.cube("cube")
        data = write_stl_binary(cube)
        assert len(data) == 84 + 50 * 12
        assert struct.unpack_from("<I", data, 80)[0] == 12

    def test_header(self, triangle):
        header = write_stl_binary(triangle)[:80]
        assert header.startswith((STL_HEADER_PREFIX + "tri").encode("ascii"))
        assert header.rstrip(b" ") == (STL_HEADER_PREFIX + "tri").encode("ascii")

    def test_long_id_is_truncated(self):
        mesh = Mesh(positions=[], normals=[], indices=[], id="x" * 200)
        data = write_stl_binary(mesh)
        assert len(data) == 84
        assert data[:80] == (STL_HEADER_PREFIX + "x" * 200).encode("ascii")[:80]

    def test_facet_normal_and_vertices(self, triangle):
        rec = stl_records(write_stl_binary(triangle))
        assert rec.shape == (1,)
        np.testing.assert_allclose(rec["normal"][0], [0.0, 0.0, 1.0])
        np.testing.assert_allclose(rec["vertices"][0], [[0, 0, 0], [1, 0, 0], [0, 1, 0]])
        assert rec["attr"][0] == 0

    def test_normal_follows_winding_not_stored_normals(self):
        mesh = Mesh(
            positions=[0, 0, 0, 0, 1, 0, 1, 0, 0],
            normals=[0, 0, 1] * 3,
            indices=[0, 1, 2],
            id="cw",
        )
        rec = stl_records(write_stl_binary(mesh))
        np.testing.assert_allclose(rec["normal"][0], [0.0, 0.0, -1.0])

    def test_degenerate_facet_has_zero_normal(self):
        mesh = Mesh(
            positions=[0, 0, 0, 1, 0, 0, 2, 0, 0],
            normals=[0] * 9,
            indices=[0, 1, 2],
            id="flat",
        )
        rec = stl_records(write_stl_binary(mesh))
        np.testing.assert_array_equal(rec["normal"][0], [0.0, 0.0, 0.0])

    def test_cube_normals_are_outward(self):
        cube = Mesh.cube("cube", size=2.0)
        rec = stl_records(write_stl_binary(cube))
        centroids = rec["vertices"].mean(axis=1)
        assert (np.einsum("ij,ij->i", rec["normal"], centroids) > 0).all()


class TestTextFormats:

    def test_ascii_stl(self, triangle):
        text = write_stl_ascii(triangle).decode("utf-8")
        lines = text.splitlines()
        assert lines[0] == "solid tri"
        assert lines[1] == "  facet normal 0.0 0.0 1.0"
        assert lines[2] == "    outer loop"
        assert lines[3:6] == [
            "      vertex 0.0 0.0 0.0",
            "      vertex 1.0 0.0 0.0",
            "      vertex 0.0 1.0 0.0",
        ]
        assert lines[6:] == ["    endloop", "  endfacet", "endsolid tri"]

    def test_ascii_stl_facet_count(self):
        text = write_stl_ascii(Mesh.cube("c")).decode("utf-8")
        assert text.count("facet normal") == 12
        assert text.count("endfacet") == 12

    def test_obj(self, triangle):
        lines = write_obj(triangle).decode("utf-8").splitlines()
        assert lines[:7] == [
            "# meshview OBJ export",
            "# Mesh: tri",
            "# Vertices: 3",
            "# Triangles: 1",
            "",
            "o tri",
            "",
        ]
        assert [l for l in lines if l.startswith("v ")] == [
            "v 0.0 0.0 0.0", "v 1.0 0.0 0.0", "v 0.0 1.0 0.0"]
        assert [l for l in lines if l.startswith("vn ")] == ["vn 0.0 0.0 1.0"] * 3
        assert lines[-1] == "f 1//1 2//2 3//3"

    def test_ply(self, triangle):
        text = write_ply(triangle).decode("utf-8")
        header, body = text.split("end_header\n")
        assert header.startswith("ply\nformat ascii 1.0\n")
        assert "element vertex 3\n" in header
        assert "element face 1\n" in header
        assert "property list uchar int vertex_indices\n" in header
        body_lines = body.splitlines()
        assert body_lines[0] == "0.0 0.0 0.0 0.0 0.0 1.0"
        assert body_lines[-1] == "3 0 1 2"
        assert len(body_lines) == 4


class TestEncoding:

    def test_encode_dispatch(self, triangle):
        assert encode_mesh(triangle, ExportFormat.OBJ) == write_obj(triangle)
        assert encode_mesh(triangle, ExportFormat.STL_BINARY) == write_stl_binary(triangle)

    def test_unknown_format(self, triangle):
        with pytest.raises(InvalidArgumentError):
            encode_mesh(triangle, "gltf")

    def test_single_mesh_is_not_merged(self, triangle):
        assert encode_meshes([triangle], ExportFormat.STL_ASCII) == write_stl_ascii(triangle)

    def test_empty_list(self):
        with pytest.raises(InvalidArgumentError):
            encode_meshes([], ExportFormat.OBJ)

    def test_extension_and_mime(self):
        assert get_extension(ExportFormat.STL_BINARY) == ".stl"
        assert get_extension(ExportFormat.STL_ASCII) == ".stl"
        assert get_extension(ExportFormat.OBJ) == ".obj"
        assert get_extension(ExportFormat.PLY) == ".ply"
        assert get_mime_type(ExportFormat.STL_BINARY) == "application/sla"
        assert get_mime_type(ExportFormat.OBJ) == "model/obj"
        assert get_mime_type(ExportFormat.PLY) == "application/x-ply"


class TestExportFiles:

    def test_export_mesh_writes_file(self, tmp_path, triangle):
        path = tmp_path / "tri.stl"
        export_mesh(triangle, path, ExportFormat.STL_BINARY)
        assert path.read_bytes() == write_stl_binary(triangle)

    def test_export_overwrites(self, tmp_path, triangle):
        path = tmp_path / "tri.obj"
        path.write_text("old")
        export_mesh(triangle, path, ExportFormat.OBJ)
        assert path.read_bytes() == write_obj(triangle)

    def test_export_meshes_merges(self, tmp_path):
        a = Mesh.cube("a")
        b = Mesh.cube("b", center=(3, 0, 0))
        path = tmp_path / "scene.stl"
        export_meshes([a, b], path, ExportFormat.STL_BINARY)
        data = path.read_bytes()
        assert len(data) == 84 + 50 * 24
        assert struct.unpack_from("<I", data, 80)[0] == 24
        assert data[:80].startswith((STL_HEADER_PREFIX + "merged_").encode("ascii"))

    def test_export_meshes_single_matches_export_mesh(self, tmp_path, triangle):
        one = tmp_path / "one.ply"
        many = tmp_path / "many.ply"
        export_mesh(triangle, one, ExportFormat.PLY)
        export_meshes([triangle], many, ExportFormat.PLY)
        assert one.read_bytes() == many.read_bytes()

    def test_export_meshes_empty(self, tmp_path):
        with pytest.raises(InvalidArgumentError):
            export_meshes([], tmp_path / "x.stl", ExportFormat.STL_BINARY)
        assert list(tmp_path.iterdir()) == []

    def test_new_file_mode_follows_umask(self, tmp_path, triangle):
        mask = os.umask(0o022)
        os.umask(mask)
        path = tmp_path / "tri.stl"
        export_mesh(triangle, path, ExportFormat.STL_BINARY)
        assert stat.S_IMODE(path.stat().st_mode) == 0o666 & ~mask

    def test_replaced_file_keeps_its_mode(self, tmp_path, triangle):
        path = tmp_path / "tri.obj"
        path.write_text("old")
        path.chmod(0o640)
        export_mesh(triangle, path, ExportFormat.OBJ)
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_missing_directory(self, tmp_path, triangle):
        path = tmp_path / "missing" / "tri.stl"
        with pytest.raises(ExportError) as info:
            export_mesh(triangle, path, ExportFormat.STL_BINARY)
        assert isinstance(info.value.__cause__, OSError)
        assert info.value.path == path

    def test_failed_rename_leaves_no_temp_file(self, tmp_path, triangle):
        target = tmp_path / "occupied"
        target.mkdir()
        (target / "keep.txt").write_text("x")
        with pytest.raises(ExportError):
            export_mesh(triangle, target, ExportFormat.OBJ)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["occupied"]

    def test_export_error_is_os_error(self, tmp_path, triangle):
        with pytest.raises(OSError):
            export_mesh(triangle, tmp_path / "missing" / "x.obj", ExportFormat.OBJ)


class TestAsyncExport:

    def test_export_mesh_async(self, tmp_path, triangle):
        path = tmp_path / "tri.obj"
        asyncio.run(export_mesh_async(triangle, path, ExportFormat.OBJ))
        assert path.read_bytes() == write_obj(triangle)

    def test_export_meshes_async(self, tmp_path):
        path = tmp_path / "two.stl"
        meshes = [Mesh.cube("a"), Mesh.cube("b", center=(2, 0, 0))]
        asyncio.run(export_meshes_async(meshes, path, ExportFormat.STL_ASCII))
        assert path.read_text().count("endfacet") == 24

    def test_async_failure_propagates(self, tmp_path, triangle):
        with pytest.raises(ExportError):
            asyncio.run(export_mesh_async(triangle, tmp_path / "no" / "x.stl", ExportFormat.STL_BINARY))

    def test_async_empty_list(self, tmp_path):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(export_meshes_async([], tmp_path / "x.stl", ExportFormat.STL_BINARY))
