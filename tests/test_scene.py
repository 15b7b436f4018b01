import pytest

from meshview import Camera, InvalidArgumentError, Mesh, RenderMode, Scene


@pytest.fixture
def scene():
    return Scene(meshes=[Mesh.cube("a"), Mesh.cube("b", center=(2, 0, 0))])


class TestSceneMeshes:

    def test_defaults(self):
        s = Scene()
        assert s.meshes == ()
        assert s.camera == Camera.default()
        assert s.mode is RenderMode.SOLID_WITH_EDGES
        assert s.selected_id is None and s.hovered_id is None

    def test_meshes_frozen_to_tuple(self, scene):
        assert isinstance(scene.meshes, tuple)

    def test_add_returns_new_scene(self, scene):
        bigger = scene.add_mesh(Mesh.cube("c"))
        assert [m.id for m in bigger.meshes] == ["a", "b", "c"]
        assert [m.id for m in scene.meshes] == ["a", "b"]

    def test_remove_clears_selection_and_hover(self, scene):
        s = scene.select("a").hover("a").remove_mesh("a")
        assert [m.id for m in s.meshes] == ["b"]
        assert s.selected_id is None
        assert s.hovered_id is None

    def test_remove_keeps_other_selection(self, scene):
        s = scene.select("b").remove_mesh("a")
        assert s.selected_id == "b"

    def test_update_replaces_by_id(self, scene):
        bigger = Mesh.cube("a", size=4.0)
        s = scene.update_mesh(bigger)
        assert s.get_mesh("a") is bigger
        assert [m.id for m in s.meshes] == ["a", "b"]

    def test_get_missing(self, scene):
        assert scene.get_mesh("nope") is None

    def test_clear(self, scene):
        s = scene.select("a").clear()
        assert s.meshes == ()
        assert s.selected_id is None


class TestSceneSelection:

    def test_cycle_selection(self, scene):
        s = scene.cycle_selection()
        assert s.selected_id == "a"
        s = s.cycle_selection()
        assert s.selected_id == "b"
        s = s.cycle_selection()
        assert s.selected_id == "a"

    def test_cycle_selection_empty(self):
        assert Scene().cycle_selection().selected_id is None

    def test_select_none(self, scene):
        assert scene.select("a").select(None).selected_id is None


class TestSceneView:

    def test_cycle_mode(self):
        s = Scene(mode=RenderMode.WIREFRAME)
        s = s.cycle_mode()
        assert s.mode is RenderMode.SOLID
        s = s.cycle_mode()
        assert s.mode is RenderMode.SOLID_WITH_EDGES
        assert s.cycle_mode().mode is RenderMode.WIREFRAME

    def test_with_mode_accepts_string(self):
        assert Scene().with_mode("wireframe").mode is RenderMode.WIREFRAME

    def test_with_mode_rejects_unknown(self):
        with pytest.raises(InvalidArgumentError):
            Scene().with_mode("hologram")

    def test_camera(self, scene):
        moved = scene.with_camera(scene.camera.zoom(0.5))
        assert moved.camera.distance == pytest.approx(5.0)
        assert moved.reset_camera().camera == Camera.default()


class TestDemoScene:

    def test_demo_scene(self):
        from meshview.config import ViewerConfig
        from meshview.viewer import demo_scene

        scene = demo_scene(ViewerConfig(render_mode="wireframe"))
        assert len(scene.meshes) == 3
        assert scene.mode is RenderMode.WIREFRAME
        assert len({m.id for m in scene.meshes}) == 3
