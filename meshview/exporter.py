"""
Mesh export to STL (binary / ASCII), OBJ and PLY.

Every format is a pure writer `Mesh -> bytes`; `WRITERS` maps a format to
its writer. Files are written atomically: data goes to a temporary file in
the target directory which is then renamed over the destination.
"""
import asyncio
import enum
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Callable, Dict, Sequence, Union

import numpy as np

from .errors import ExportError, InvalidArgumentError
from .kernels import face_normals
from .mesh import Mesh, merge_meshes

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

STL_HEADER_SIZE = 80
STL_HEADER_PREFIX = "meshview export - "

# one binary STL facet: normal, three vertices, attribute byte count (50 bytes)
STL_RECORD = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attr", "<u2"),
])


class ExportFormat(enum.Enum):
    STL_BINARY = "stl_binary"
    STL_ASCII = "stl_ascii"
    OBJ = "obj"
    PLY = "ply"


_EXTENSIONS = {
    ExportFormat.STL_BINARY: ".stl",
    ExportFormat.STL_ASCII: ".stl",
    ExportFormat.OBJ: ".obj",
    ExportFormat.PLY: ".ply",
}

_MIME_TYPES = {
    ExportFormat.STL_BINARY: "application/sla",
    ExportFormat.STL_ASCII: "application/sla",
    ExportFormat.OBJ: "model/obj",
    ExportFormat.PLY: "application/x-ply",
}


def get_extension(fmt: ExportFormat) -> str:
    return _EXTENSIONS[fmt]


def get_mime_type(fmt: ExportFormat) -> str:
    return _MIME_TYPES[fmt]


# ============================================================
#  Writers
# ============================================================

def _num(v) -> str:
    return repr(float(v))


def _facet_normals(mesh: Mesh) -> np.ndarray:
    """Unit normals recomputed from positions; zero for degenerate facets."""
    normals, _ = face_normals(mesh.vertex_array(), mesh.triangle_array())
    return normals


def _stl_header(mesh: Mesh) -> bytes:
    text = (STL_HEADER_PREFIX + mesh.id).encode("ascii", errors="replace")
    return text[:STL_HEADER_SIZE].ljust(STL_HEADER_SIZE, b" ")


def write_stl_binary(mesh: Mesh) -> bytes:
    """
    Binary STL, little-endian:
      80 bytes   header, space padded
      uint32     triangle count
      per facet  float32[3] normal, float32[3][3] vertices, uint16 0
    Total size is 84 + 50 * triangle_count bytes.
    """
    tris = mesh.triangle_array()
    records = np.zeros(tris.shape[0], dtype=STL_RECORD)
    if tris.shape[0]:
        records["normal"] = _facet_normals(mesh)
        records["vertices"] = mesh.vertex_array()[tris]
    count = np.array([tris.shape[0]], dtype="<u4")
    return _stl_header(mesh) + count.tobytes() + records.tobytes()


def write_stl_ascii(mesh: Mesh) -> bytes:
    verts = mesh.vertex_array()
    lines = [f"solid {mesh.id}"]
    for tri, n in zip(mesh.triangle_array(), _facet_normals(mesh)):
        lines.append(f"  facet normal {_num(n[0])} {_num(n[1])} {_num(n[2])}")
        lines.append("    outer loop")
        for i in tri:
            x, y, z = verts[i]
            lines.append(f"      vertex {_num(x)} {_num(y)} {_num(z)}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {mesh.id}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def write_obj(mesh: Mesh) -> bytes:
    lines = [
        "# meshview OBJ export",
        f"# Mesh: {mesh.id}",
        f"# Vertices: {mesh.vertex_count}",
        f"# Triangles: {mesh.triangle_count}",
        "",
        f"o {mesh.id}",
        "",
    ]
    for x, y, z in mesh.vertex_array():
        lines.append(f"v {_num(x)} {_num(y)} {_num(z)}")
    lines.append("")
    for x, y, z in mesh.normal_array():
        lines.append(f"vn {_num(x)} {_num(y)} {_num(z)}")
    lines.append("")
    # OBJ indices are 1-based
    for a, b, c in mesh.triangle_array() + 1:
        lines.append(f"f {a}//{a} {b}//{b} {c}//{c}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def write_ply(mesh: Mesh) -> bytes:
    lines = [
        "ply",
        "format ascii 1.0",
        "comment meshview export",
        f"element vertex {mesh.vertex_count}",
        "property float x",
        "property float y",
        "property float z",
        "property float nx",
        "property float ny",
        "property float nz",
        f"element face {mesh.triangle_count}",
        "property list uchar int vertex_indices",
        "end_header",
    ]
    for p, n in zip(mesh.vertex_array(), mesh.normal_array()):
        lines.append(" ".join(_num(v) for v in (*p, *n)))
    for a, b, c in mesh.triangle_array():
        lines.append(f"3 {a} {b} {c}")
    return ("\n".join(lines) + "\n").encode("utf-8")


WRITERS: Dict[ExportFormat, Callable[[Mesh], bytes]] = {
    ExportFormat.STL_BINARY: write_stl_binary,
    ExportFormat.STL_ASCII: write_stl_ascii,
    ExportFormat.OBJ: write_obj,
    ExportFormat.PLY: write_ply,
}


def encode_mesh(mesh: Mesh, fmt: ExportFormat) -> bytes:
    try:
        writer = WRITERS[fmt]
    except KeyError:
        raise InvalidArgumentError(f"unsupported export format {fmt!r}") from None
    return writer(mesh)


def encode_meshes(meshes: Sequence[Mesh], fmt: ExportFormat) -> bytes:
    """Encode one mesh directly, several after merging them."""
    meshes = list(meshes)
    if not meshes:
        raise InvalidArgumentError("No meshes to export")
    if len(meshes) == 1:
        return encode_mesh(meshes[0], fmt)
    return encode_mesh(merge_meshes(meshes), fmt)


# ============================================================
#  File output
# ============================================================

def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mode for newly created export files, from the umask at import time
_NEW_FILE_MODE = 0o666 & ~_umask()


def write_atomic(path: PathLike, data: bytes) -> None:
    """
    Write `data` to `path` through a temporary sibling file and a rename.
    The result keeps the mode of a file it replaces; new files get
    0o666 minus the umask, like open().
    On failure the temporary file is removed and ExportError is raised.
    """
    path = Path(path)
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp",
                                        dir=str(path.parent))
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = _NEW_FILE_MODE
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise ExportError(f"Failed to write {path}: {e}", path=path) from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError as e:
                logger.warning(f"Could not delete temp file '{tmp_name}': {e}")


def export_mesh(mesh: Mesh, file_path: PathLike, fmt: ExportFormat) -> None:
    data = encode_mesh(mesh, fmt)
    write_atomic(file_path, data)
    logger.info(f"Exported {mesh.id} ({mesh.triangle_count} triangles) as {fmt.value} to {file_path}")


def export_meshes(meshes: Sequence[Mesh], file_path: PathLike, fmt: ExportFormat) -> None:
    """Export several meshes as one file. An empty list is an error."""
    meshes = list(meshes)
    data = encode_meshes(meshes, fmt)
    write_atomic(file_path, data)
    logger.info(f"Exported {len(meshes)} mesh(es) as {fmt.value} to {file_path}")


async def export_mesh_async(mesh: Mesh, file_path: PathLike, fmt: ExportFormat) -> None:
    """export_mesh in a worker thread; failures surface from the await."""
    await asyncio.to_thread(export_mesh, mesh, file_path, fmt)


async def export_meshes_async(meshes: Sequence[Mesh], file_path: PathLike, fmt: ExportFormat) -> None:
    await asyncio.to_thread(export_meshes, list(meshes), file_path, fmt)
