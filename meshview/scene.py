from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .camera import Camera
from .mesh import Mesh
from .renderer import RenderMode


@dataclass(frozen=True)
class Scene:
    """
    Everything one viewport frame is rendered from.

    Frozen like Mesh and Camera: each edit returns a new Scene, so the
    viewer can hand a snapshot to the renderer or an exporter while it keeps
    handling input.
    """
    meshes: Tuple[Mesh, ...] = ()
    camera: Camera = field(default_factory=Camera.default)
    mode: RenderMode = RenderMode.SOLID_WITH_EDGES
    selected_id: Optional[str] = None
    hovered_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "meshes", tuple(self.meshes))

    # meshes

    def add_mesh(self, mesh: Mesh) -> "Scene":
        return replace(self, meshes=self.meshes + (mesh,))

    def remove_mesh(self, mesh_id: str) -> "Scene":
        return replace(
            self,
            meshes=tuple(m for m in self.meshes if m.id != mesh_id),
            selected_id=None if self.selected_id == mesh_id else self.selected_id,
            hovered_id=None if self.hovered_id == mesh_id else self.hovered_id,
        )

    def update_mesh(self, mesh: Mesh) -> "Scene":
        """Swap in `mesh` wherever a mesh with the same id sits."""
        return replace(self, meshes=tuple(mesh if m.id == mesh.id else m for m in self.meshes))

    def clear(self) -> "Scene":
        return replace(self, meshes=(), selected_id=None, hovered_id=None)

    def get_mesh(self, mesh_id: str) -> Optional[Mesh]:
        for m in self.meshes:
            if m.id == mesh_id:
                return m
        return None

    # selection

    def select(self, mesh_id: Optional[str]) -> "Scene":
        return replace(self, selected_id=mesh_id)

    def hover(self, mesh_id: Optional[str]) -> "Scene":
        return replace(self, hovered_id=mesh_id)

    def cycle_selection(self) -> "Scene":
        """Select the mesh after the current one (the first if none is selected)."""
        if not self.meshes:
            return replace(self, selected_id=None)
        ids = [m.id for m in self.meshes]
        current = ids.index(self.selected_id) if self.selected_id in ids else -1
        return replace(self, selected_id=ids[(current + 1) % len(ids)])

    # view

    def with_mode(self, mode: RenderMode) -> "Scene":
        return replace(self, mode=RenderMode.parse(mode))

    def cycle_mode(self) -> "Scene":
        return replace(self, mode=self.mode.next())

    def with_camera(self, camera: Camera) -> "Scene":
        return replace(self, camera=camera)

    def reset_camera(self) -> "Scene":
        return replace(self, camera=Camera.default())
