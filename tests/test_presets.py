"""Tests for the demo scene builders."""

import pytest

SCENE_NAMES = ["end_to_end", "room", "soap_bubbles", "sculpture", "mirror_cavity", "sphere_cavity"]


class TestBuilders:
    @pytest.mark.parametrize("name", SCENE_NAMES)
    def test_build_by_name(self, name):
        from src.whitted.camera.pinhole import PinholeCamera
        from src.whitted.scene.presets import build_scene

        scene, camera = build_scene(name)
        assert isinstance(camera, PinholeCamera)
        assert scene.object_count > 0
        assert scene.light_count > 0
        scene.clear()

    def test_every_builder_registered(self):
        from src.whitted.scene.presets import SCENE_BUILDERS

        assert set(SCENE_BUILDERS) == set(SCENE_NAMES)

    def test_unknown_scene(self):
        from src.whitted.scene.presets import build_scene

        with pytest.raises(ValueError):
            build_scene("teapot")

    def test_end_to_end_contents(self):
        from src.whitted.scene.presets import create_end_to_end_scene

        scene, camera = create_end_to_end_scene()
        assert scene.primitive_counts() == {"spheres": 1, "planes": 0, "triangles": 0}
        assert scene.lights[0].position == (0.0, 5.0, 0.0)
        assert camera.lookfrom == (0.0, 0.0, 0.0)

    def test_sphere_cavity_encloses_camera_and_light(self):
        import numpy as np

        from src.whitted.scene.presets import create_sphere_cavity_scene

        scene, camera = create_sphere_cavity_scene()
        shell = scene.get_object(0)
        assert shell.material.reflectivity == 1.0
        for point in (camera.lookfrom, scene.lights[0].position):
            assert np.linalg.norm(np.subtract(point, shell.center)) < shell.radius
        for ball in scene.objects[1:]:
            gap = np.linalg.norm(np.subtract(ball.center, shell.center)) + ball.radius
            assert gap < shell.radius
        scene.clear()

    def test_room_has_box_triangles(self):
        from src.whitted.scene.presets import create_room_scene

        scene, _ = create_room_scene()
        counts = scene.primitive_counts()
        assert counts["planes"] == 6
        assert counts["triangles"] == 12
        assert scene.light_count == 3


class TestSoapBubbles:
    def _bubbles(self, seed, count=6):
        from src.whitted.scene.presets import create_soap_bubble_scene

        scene, _ = create_soap_bubble_scene(seed=seed, count=count)
        bubbles = list(scene.objects)
        scene.clear()
        return bubbles

    def test_same_seed_same_scene(self):
        assert self._bubbles(5) == self._bubbles(5)

    def test_different_seed_different_scene(self):
        assert self._bubbles(5) != self._bubbles(6)

    def test_count(self):
        from src.whitted.scene.primitives import ThinFilmSphere

        bubbles = self._bubbles(1, count=9)
        assert len(bubbles) == 9
        assert all(isinstance(b, ThinFilmSphere) for b in bubbles)

    def test_seed_passed_through_build_scene(self):
        from src.whitted.scene.presets import build_scene

        first, _ = build_scene("soap_bubbles", seed=11)
        a = list(first.objects)
        first.clear()
        second, _ = build_scene("soap_bubbles", seed=11)
        assert list(second.objects) == a


class TestAddRoom:
    def test_single_material(self):
        from src.whitted.materials.phong import Material
        from src.whitted.scene.manager import Scene
        from src.whitted.scene.presets import add_room

        scene = Scene()
        ids = add_room(scene, (0.0, 0.0, 0.0), 2.0, 4.0, 6.0, Material())
        assert len(ids) == 6
        assert scene.primitive_counts()["planes"] == 6

        floor = scene.get_object(ids[0])
        assert floor.point == (0.0, -2.0, 0.0)
        assert floor.normal == pytest.approx((0.0, 1.0, 0.0))

    def test_walls_face_inward(self):
        from src.whitted.materials.phong import Material
        from src.whitted.scene.manager import Scene
        from src.whitted.scene.presets import add_room

        scene = Scene()
        ids = add_room(scene, (1.0, 2.0, 3.0), 4.0, 4.0, 4.0, Material())
        for object_id in ids:
            wall = scene.get_object(object_id)
            to_center = [c - p for c, p in zip((1.0, 2.0, 3.0), wall.point)]
            assert sum(n * d for n, d in zip(wall.normal, to_center)) > 0.0

    def test_missing_wall_material(self):
        from src.whitted.materials.phong import Material
        from src.whitted.scene.manager import Scene
        from src.whitted.scene.presets import add_room

        with pytest.raises(KeyError):
            add_room(Scene(), (0.0, 0.0, 0.0), 1.0, 1.0, 1.0, {"floor": Material()})
