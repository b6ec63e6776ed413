"""
Tests for the selection state machine, search and camera focus

Run with:
    python -m pytest tests/test_interaction.py -v
"""

import unittest

import numpy as np

from satglobe.animation import FrameScheduler
from satglobe.config import CAMERA_DEFAULT_VIEW, DEFAULT_COLOR, HIGHLIGHT_COLOR
from satglobe.interaction import (
    NOT_FOUND_MESSAGE,
    CameraTransition,
    InteractionController,
    LoggingInfoPanel,
    LoggingNotifier,
    SelectionState,
    pixel_to_ndc,
)
from satglobe.pipeline import TrackedObject
from satglobe.render import Camera, HeadlessScene


class InteractionTestCase(unittest.TestCase):

    def setUp(self):
        self.scene = HeadlessScene()
        self.globe = self.scene.add_globe()
        self.camera = Camera()
        self.scheduler = FrameScheduler()
        self.state = SelectionState()
        self.panel = LoggingInfoPanel()
        self.notifier = LoggingNotifier()
        self.now = 100.0
        self.controller = InteractionController(
            self.state, self.scene, self.camera, self.scheduler,
            info_panel=self.panel, notifier=self.notifier, clock=lambda: self.now,
        )
        self.alpha = self.add_object("Alpha", 1, (0.0, 0.0, 1.0))
        self.beta = self.add_object("Beta One", 2, (0.0, 1.0, 0.0))
        self.gamma = self.add_object("ALPHA-2", 3, (1.0, 0.0, 0.0))
        self.controller.set_objects([self.alpha, self.beta, self.gamma])

    def add_object(self, name, norad_id, position):
        handle = self.scene.create_point(position, DEFAULT_COLOR)
        return TrackedObject(name, norad_id, None, handle, np.array(position, dtype=float))

    def color(self, obj):
        return self.scene.color_of(obj.render_handle)


class TestSelection(InteractionTestCase):

    def test_select_from_idle(self):
        self.controller.select(self.alpha)

        self.assertIs(self.state.selected, self.alpha)
        self.assertEqual(self.color(self.alpha), HIGHLIGHT_COLOR)
        self.assertTrue(self.panel.visible)
        self.assertEqual(self.panel.info, {"name": "Alpha", "id": 1})

    def test_camera_eases_toward_object(self):
        start = self.camera.position.copy()
        self.controller.select(self.alpha)

        expected = start + (self.alpha.position * 2.0 - start) * 0.2
        np.testing.assert_allclose(self.camera.position, expected)
        np.testing.assert_allclose(self.camera.target, self.alpha.position)

    def test_reselect_toggles_to_idle(self):
        self.controller.select(self.alpha)
        self.controller.select(self.alpha)

        self.assertTrue(self.state.is_idle)
        self.assertEqual(self.color(self.alpha), DEFAULT_COLOR)
        self.assertFalse(self.panel.visible)

    def test_select_other_switches(self):
        self.controller.select(self.alpha)
        self.controller.select(self.beta)

        self.assertIs(self.state.selected, self.beta)
        self.assertEqual(self.color(self.alpha), DEFAULT_COLOR)
        self.assertEqual(self.color(self.beta), HIGHLIGHT_COLOR)
        self.assertEqual(self.panel.info["name"], "Beta One")

    def test_select_other_always_ends_selected(self):
        for prior in (None, self.alpha, self.beta, self.gamma):
            self.controller.deselect()
            if prior is not None:
                self.controller.select(prior)
            for target in (self.alpha, self.beta, self.gamma):
                if target is self.state.selected:
                    continue
                self.controller.select(target)
                self.assertIs(self.state.selected, target)
                highlighted = [o for o in (self.alpha, self.beta, self.gamma)
                               if self.color(o) == HIGHLIGHT_COLOR]
                self.assertEqual(highlighted, [target])


class TestEscape(InteractionTestCase):

    def test_escape_clears_selection(self):
        self.controller.select(self.beta)
        self.controller.escape()

        self.assertTrue(self.state.is_idle)
        self.assertEqual(self.color(self.beta), DEFAULT_COLOR)
        self.assertFalse(self.panel.visible)

    def test_camera_returns_to_default_view(self):
        self.controller.select(self.alpha)
        start = self.camera.position.copy()
        transition = self.controller.escape()

        self.scheduler.run_frame(self.now + 0.5)
        np.testing.assert_allclose(self.camera.position, start + (np.array(CAMERA_DEFAULT_VIEW) - start) * 0.5)
        self.assertEqual(len(self.scheduler), 1)

        self.scheduler.run_frame(self.now + 1.2)
        self.assertTrue(transition.done)
        np.testing.assert_allclose(self.camera.position, CAMERA_DEFAULT_VIEW)
        self.assertEqual(len(self.scheduler), 0)

    def test_target_drifts_toward_origin(self):
        self.controller.select(self.alpha)
        before = np.linalg.norm(self.camera.target)
        self.controller.escape()
        self.scheduler.run_frame(self.now + 1.0)
        self.assertLess(np.linalg.norm(self.camera.target), before)

    def test_escape_when_idle(self):
        self.controller.escape()
        self.assertTrue(self.state.is_idle)
        self.assertEqual(len(self.scheduler), 1)

    def test_zero_duration_finishes_immediately(self):
        transition = CameraTransition(self.camera, 0.0, duration_ms=0)
        self.assertTrue(transition.step(0.0))


class TestPointer(InteractionTestCase):

    def test_pixel_to_ndc(self):
        self.assertEqual(pixel_to_ndc(0, 0, 800, 600), (-1.0, 1.0))
        self.assertEqual(pixel_to_ndc(400, 300, 800, 600), (0.0, 0.0))
        self.assertEqual(pixel_to_ndc(800, 600, 800, 600), (1.0, -1.0))

    def test_click_on_object_selects(self):
        # Alpha sits between the camera (0, 0, 8) and the globe
        self.assertIs(self.controller.pointer(400, 300, 800, 600), self.alpha)
        self.assertIs(self.state.selected, self.alpha)

    def test_click_on_empty_space_deselects(self):
        self.controller.select(self.beta)
        self.assertIsNone(self.controller.pointer(5, 5, 800, 600))
        self.assertTrue(self.state.is_idle)
        self.assertEqual(self.color(self.beta), DEFAULT_COLOR)

    def test_click_on_empty_space_when_idle_is_noop(self):
        self.controller.pointer(5, 5, 800, 600)
        self.assertTrue(self.state.is_idle)
        self.assertFalse(self.panel.visible)

    def test_click_on_globe_is_ignored(self):
        self.controller.select(self.beta)
        # Aimed below Alpha, onto the globe
        self.controller.pointer_ndc((0.0, -0.06))
        self.assertIs(self.state.selected, self.beta)


class TestSearch(InteractionTestCase):

    def test_case_insensitive_first_match(self):
        self.assertIs(self.controller.search("  alp "), self.alpha)
        self.assertIs(self.state.selected, self.alpha)

    def test_substring_match(self):
        self.assertIs(self.controller.search("ONE"), self.beta)

    def test_blank_query_is_noop(self):
        self.controller.select(self.beta)
        self.assertIsNone(self.controller.search("   "))
        self.assertIs(self.state.selected, self.beta)
        self.assertEqual(self.notifier.messages, [])

    def test_no_match_notifies_and_keeps_state(self):
        self.controller.select(self.gamma)
        self.assertIsNone(self.controller.search("hubble"))

        self.assertEqual(self.notifier.messages, [NOT_FOUND_MESSAGE])
        self.assertIs(self.state.selected, self.gamma)
        self.assertEqual(self.color(self.gamma), HIGHLIGHT_COLOR)


if __name__ == "__main__":
    unittest.main()
