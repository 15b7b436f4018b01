"""
Numba kernels shared by the renderer and the exporter.

Both kernels work on plain float64 / int64 numpy arrays so they compile
once (cache=True) and run without Python objects in the inner loop.
"""
import numpy as np
from numba import njit


@njit(cache=True)
def project_vertices(verts, vp, width, height):
    """
    Transform every vertex by the view-projection matrix and map it to
    screen pixels.

    Parameters:
      verts  - (N, 3) float64 positions
      vp     - (4, 4) float64 view-projection matrix (row-major)
      width, height - viewport size in pixels

    Returns (screen, w):
      screen - (N, 3): pixel x, pixel y, NDC z
      w      - (N,): homogeneous w before the divide; w <= 0 means the
               vertex is behind the camera and its screen row is NaN
    """
    n = verts.shape[0]
    screen = np.empty((n, 3), dtype=np.float64)
    w_out = np.empty(n, dtype=np.float64)
    for i in range(n):
        x = verts[i, 0]
        y = verts[i, 1]
        z = verts[i, 2]
        cx = vp[0, 0]*x + vp[0, 1]*y + vp[0, 2]*z + vp[0, 3]
        cy = vp[1, 0]*x + vp[1, 1]*y + vp[1, 2]*z + vp[1, 3]
        cz = vp[2, 0]*x + vp[2, 1]*y + vp[2, 2]*z + vp[2, 3]
        cw = vp[3, 0]*x + vp[3, 1]*y + vp[3, 2]*z + vp[3, 3]
        w_out[i] = cw
        if cw <= 0.0:
            screen[i, 0] = np.nan
            screen[i, 1] = np.nan
            screen[i, 2] = np.nan
            continue
        ndc_x = cx / cw
        ndc_y = cy / cw
        screen[i, 0] = (ndc_x + 1.0) * width / 2.0
        screen[i, 1] = (1.0 - ndc_y) * height / 2.0
        screen[i, 2] = cz / cw
    return screen, w_out


@njit(cache=True)
def face_normals(verts, tris):
    """
    Per-triangle face normal from the winding order.

    Parameters:
      verts - (N, 3) float64 positions
      tris  - (T, 3) int64 vertex indices

    Returns (normals, lengths):
      normals - (T, 3) unit normals of (v1-v0) x (v2-v0); zero where the
                cross product has zero length
      lengths - (T,) length of the raw cross product, so callers can pick
                their own degeneracy threshold
    """
    t = tris.shape[0]
    normals = np.zeros((t, 3), dtype=np.float64)
    lengths = np.zeros(t, dtype=np.float64)
    for i in range(t):
        a = tris[i, 0]
        b = tris[i, 1]
        c = tris[i, 2]
        e1x = verts[b, 0] - verts[a, 0]
        e1y = verts[b, 1] - verts[a, 1]
        e1z = verts[b, 2] - verts[a, 2]
        e2x = verts[c, 0] - verts[a, 0]
        e2y = verts[c, 1] - verts[a, 1]
        e2z = verts[c, 2] - verts[a, 2]
        nx = e1y * e2z - e1z * e2y
        ny = e1z * e2x - e1x * e2z
        nz = e1x * e2y - e1y * e2x
        ln = np.sqrt(nx*nx + ny*ny + nz*nz)
        lengths[i] = ln
        if ln > 0.0:
            normals[i, 0] = nx / ln
            normals[i, 1] = ny / ln
            normals[i, 2] = nz / ln
    return normals, lengths
