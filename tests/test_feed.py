import unittest
from unittest.mock import MagicMock, patch

import numpy as np

from chronotope import feed
from chronotope.feed import (
    FeedLayout,
    capture_region,
    compute_feed_layout,
    map_landmarks,
    render_feed,
)
from chronotope.types import Landmark, Rect, TrackedBody


class TestComputeFeedLayout(unittest.TestCase):

    def test_wide_canvas_covers_width(self):
        layout = compute_feed_layout(1280, 720, 640, 480)
        self.assertAlmostEqual(layout.x, 0.0)
        self.assertAlmostEqual(layout.scaled_width, 1280.0)
        self.assertAlmostEqual(layout.scaled_height, 960.0)
        self.assertAlmostEqual(layout.y, -120.0)

    def test_wide_canvas_fit_to_height(self):
        layout = compute_feed_layout(1280, 720, 640, 480, fit_to_height=True)
        self.assertAlmostEqual(layout.scaled_width, 960.0)
        self.assertAlmostEqual(layout.scaled_height, 720.0)
        self.assertAlmostEqual(layout.x, 160.0)
        self.assertAlmostEqual(layout.y, 0.0)

    def test_tall_canvas_spans_height(self):
        layout = compute_feed_layout(480, 640, 640, 480)
        self.assertAlmostEqual(layout.scaled_height, 640.0)
        self.assertAlmostEqual(layout.scaled_width, 640 * 4 / 3)
        self.assertAlmostEqual(layout.x, (480 - 640 * 4 / 3) / 2)

    def test_same_ratio_is_identity(self):
        layout = compute_feed_layout(640, 480, 640, 480)
        self.assertEqual((layout.x, layout.y), (0.0, 0.0))
        self.assertEqual((layout.scaled_width, layout.scaled_height), (640.0, 480.0))

    def test_invalid_sizes(self):
        with self.assertRaises(ValueError):
            compute_feed_layout(0, 720, 640, 480)
        with self.assertRaises(ValueError):
            compute_feed_layout(1280, 720, 640, 0)


class TestFeedLayoutMapping(unittest.TestCase):

    def setUp(self):
        self.layout = compute_feed_layout(1280, 720, 640, 480, fit_to_height=True)

    def test_to_canvas_includes_offset(self):
        self.assertEqual(self.layout.to_canvas(0.0, 0.0), (160.0, 0.0))
        self.assertEqual(self.layout.to_canvas(0.5, 0.5), (160.0 + 480.0, 360.0))

    def test_to_canvas_mirrored(self):
        self.assertEqual(self.layout.to_canvas(0.0, 1.0, mirror=True), (160.0 + 960.0, 720.0))

    def test_canvas_rect_to_video(self):
        rect = Rect(160 + 90, 30, 300, 150)
        self.assertEqual(self.layout.canvas_rect_to_video(rect), (60, 20, 260, 120))

    def test_canvas_rect_clamped_to_frame(self):
        rect = Rect(0, 600, 400, 400)
        x0, y0, x1, y1 = self.layout.canvas_rect_to_video(rect)
        self.assertEqual((x0, x1), (0, 160))
        self.assertEqual(y1, 480)

    def test_canvas_rect_outside_video(self):
        self.assertIsNone(self.layout.canvas_rect_to_video(Rect(0, 0, 100, 100)))

    def test_clip_to_feed(self):
        inside = Rect(200, 10, 100, 100)
        self.assertIs(self.layout.clip_to_feed(inside), inside)
        self.assertEqual(self.layout.clip_to_feed(Rect(100, 600, 200, 200)), Rect(160, 600, 140, 120))
        self.assertIsNone(self.layout.clip_to_feed(Rect(0, 0, 100, 100)))

    def test_map_landmarks_skips_missing_indices(self):
        body = TrackedBody(kind="hand", landmarks=[Landmark(i, 0.5, 0.25) for i in range(5)])
        pts = map_landmarks(body, self.layout, (0, 4, 8))
        self.assertEqual(sorted(pts), [0, 4])
        self.assertEqual(pts[4], (640.0, 180.0))


class TestFrames(unittest.TestCase):

    def test_render_feed_fills_canvas(self):
        canvas = np.zeros((50, 100, 3), dtype=np.uint8)
        frame = np.full((100, 200, 3), 7, dtype=np.uint8)
        render_feed(canvas, frame, compute_feed_layout(100, 50, 200, 100))
        self.assertTrue((canvas == 7).all())

    def test_render_feed_crops_overflow(self):
        canvas = np.zeros((720, 1280, 3), dtype=np.uint8)
        frame = np.full((480, 640, 3), 9, dtype=np.uint8)
        render_feed(canvas, frame, compute_feed_layout(1280, 720, 640, 480))
        self.assertTrue((canvas == 9).all())

    def test_capture_region_identity_layout(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        frame[100:250, 50:250] = (10, 20, 30)
        layout = compute_feed_layout(640, 480, 640, 480)
        snap = capture_region(frame, layout, Rect(50, 100, 200, 150))
        self.assertEqual(snap.shape, (150, 200, 3))
        self.assertTrue((snap == np.array([10, 20, 30], dtype=np.uint8)).all())

    def test_capture_region_resizes_to_canvas_size(self):
        frame = np.full((240, 320, 3), 200, dtype=np.uint8)
        layout = compute_feed_layout(640, 480, 320, 240)
        snap = capture_region(frame, layout, Rect(100, 100, 120, 90))
        self.assertEqual(snap.shape, (90, 120, 3))

    def test_capture_region_past_the_edge_is_not_stretched(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        frame[400:440] = 200
        frame[440:480] = 100
        layout = compute_feed_layout(640, 480, 640, 480)
        snap = capture_region(frame, layout, Rect(600, 400, 100, 100))
        self.assertEqual(snap.shape, (80, 40, 3))
        self.assertTrue((snap[:40] == 200).all())
        self.assertTrue((snap[40:] == 100).all())

    def test_capture_region_empty(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        layout = compute_feed_layout(640, 480, 640, 480)
        self.assertIsNone(capture_region(frame, layout, Rect(10, 10, 0, 50)))
        self.assertIsNone(capture_region(frame, layout, Rect(700, 10, 50, 50)))


class TestOpenCamera(unittest.TestCase):

    def test_unopened_camera_raises(self):
        cap = MagicMock()
        cap.isOpened.return_value = False
        with patch.object(feed.cv2, "VideoCapture", return_value=cap):
            with self.assertRaises(RuntimeError):
                feed.open_camera(3)

    def test_requests_resolution(self):
        cap = MagicMock()
        cap.isOpened.return_value = True
        cap.get.return_value = 1280
        with patch.object(feed.cv2, "VideoCapture", return_value=cap):
            self.assertIs(feed.open_camera(0, 1280, 720), cap)
        cap.set.assert_any_call(feed.cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set.assert_any_call(feed.cv2.CAP_PROP_FRAME_HEIGHT, 720)


if __name__ == "__main__":
    unittest.main()
