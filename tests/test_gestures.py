import unittest
from dataclasses import replace

from chronotope.config import MODES, SketchConfig
from chronotope.feed import compute_feed_layout
from chronotope.gestures import (
    CLASSIFIERS,
    CloseHandClassifier,
    FarHandsClassifier,
    FistPalmClassifier,
    LandmarkFistClassifier,
    PoseClassifier,
    TriPinchClassifier,
    create_classifier,
)
from chronotope.types import GestureState, Landmark, TrackedBody

W, H = 640, 480
LAYOUT = compute_feed_layout(W, H, W, H)


def body(points, kind="hand", n=21, gesture_label=None):
    """Body whose landmarks sit at the given canvas pixels (identity layout)."""
    lms = []
    for i in range(n):
        x, y = points.get(i, (W / 2, H / 2))
        lms.append(Landmark(i, x / W, y / H))
    return TrackedBody(kind=kind, landmarks=lms, gesture_label=gesture_label)


def pinched_hand(cx, cy):
    return body({4: (cx - 5, cy), 8: (cx + 5, cy), 12: (cx, cy), 0: (cx, cy + 128)})


def open_hand(cx, cy):
    return body({4: (cx - 100, cy), 8: (cx + 100, cy), 12: (cx, cy), 0: (cx, cy + 128)})


class TestCloseHandClassifier(unittest.TestCase):

    def setUp(self):
        self.clf = CloseHandClassifier(base_threshold=32, reference_hand_size=128)

    def test_pinch_is_selecting(self):
        reading = self.clf.classify([pinched_hand(300, 200)], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.SELECTING)
        self.assertAlmostEqual(reading.centroid[0], 300.0)
        self.assertAlmostEqual(reading.centroid[1], 200.0)

    def test_spread_fingers_are_released(self):
        reading = self.clf.classify([open_hand(300, 200)], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)
        self.assertIsNotNone(reading.centroid)

    def test_threshold_scales_with_hand_size(self):
        # Tips 20 px from their centroid: too far for a 128 px hand, fine for a 256 px one.
        small = body({4: (280, 200), 8: (320, 200), 12: (300, 200), 0: (300, 328)})
        large = body({4: (280, 200), 8: (320, 200), 12: (300, 200), 0: (300, 456)})
        self.assertEqual(self.clf.classify([small], LAYOUT).gesture, GestureState.SELECTING)
        tight = CloseHandClassifier(base_threshold=16, reference_hand_size=128)
        self.assertEqual(tight.classify([small], LAYOUT).gesture, GestureState.RELEASED)
        self.assertEqual(tight.classify([large], LAYOUT).gesture, GestureState.SELECTING)

    def test_no_hand(self):
        reading = self.clf.classify([], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)
        self.assertIsNone(reading.centroid)

    def test_missing_landmarks(self):
        partial = TrackedBody(kind="hand", landmarks=[Landmark(i, 0.5, 0.5) for i in range(5)])
        reading = self.clf.classify([partial], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)
        self.assertIsNone(reading.centroid)

    def test_ignores_pose_bodies(self):
        pose = body({}, kind="pose", n=33)
        self.assertIsNone(self.clf.classify([pose], LAYOUT).centroid)


class TestTriPinchClassifier(unittest.TestCase):

    def test_pairwise_threshold(self):
        clf = TriPinchClassifier(close_threshold=48)
        close = body({4: (100, 100), 8: (140, 100), 12: (120, 130)})
        far = body({4: (100, 100), 8: (160, 100), 12: (120, 130)})
        self.assertEqual(clf.classify([close], LAYOUT).gesture, GestureState.SELECTING)
        self.assertEqual(clf.classify([far], LAYOUT).gesture, GestureState.RELEASED)
        self.assertAlmostEqual(clf.classify([close], LAYOUT).centroid[0], 120.0)


class TestFarHandsClassifier(unittest.TestCase):

    def test_tips_together_select(self):
        clf = FarHandsClassifier(threshold=96, smoothing_window=6)
        reading = clf.classify([body({8: (300, 240)}), body({8: (350, 240)})], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.SELECTING)
        self.assertEqual(reading.centroid, (325.0, 240.0))
        self.assertEqual(set(reading.guides), {"hand0", "hand1"})

    def test_tips_apart_release(self):
        clf = FarHandsClassifier(threshold=96)
        reading = clf.classify([body({8: (100, 240)}), body({8: (500, 240)})], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)

    def test_needs_two_hands(self):
        clf = FarHandsClassifier()
        reading = clf.classify([body({8: (100, 240)})], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)
        self.assertIsNone(reading.centroid)

    def test_positions_are_smoothed(self):
        clf = FarHandsClassifier(threshold=96, smoothing_window=2)
        clf.classify([body({8: (300, 240)}), body({8: (350, 240)})], LAYOUT)
        reading = clf.classify([body({8: (100, 240)}), body({8: (500, 240)})], LAYOUT)
        self.assertEqual(reading.guides["hand0"], (200.0, 240.0))
        self.assertEqual(reading.guides["hand1"], (425.0, 240.0))
        clf.reset()
        reading = clf.classify([body({8: (100, 240)}), body({8: (500, 240)})], LAYOUT)
        self.assertEqual(reading.guides["hand0"], (100.0, 240.0))


    def test_smoothing_follows_handedness_not_detection_order(self):
        clf = FarHandsClassifier(threshold=96, smoothing_window=2)
        left = replace(body({8: (100, 240)}), handedness_label="Left")
        right = replace(body({8: (500, 240)}), handedness_label="Right")
        clf.classify([left, right], LAYOUT)
        reading = clf.classify([right, left], LAYOUT)
        self.assertEqual(reading.guides, {"Left": (100.0, 240.0), "Right": (500.0, 240.0)})
        self.assertEqual(reading.gesture, GestureState.RELEASED)


class TestPoseClassifier(unittest.TestCase):

    def test_hands_together(self):
        clf = PoseClassifier(threshold=96)
        self.assertEqual(clf.model, "pose")
        pose = body({21: (300, 300), 22: (360, 300)}, kind="pose", n=33)
        reading = clf.classify([pose], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.SELECTING)
        self.assertEqual(reading.centroid, (330.0, 300.0))

    def test_no_pose(self):
        reading = PoseClassifier().classify([body({})], LAYOUT)
        self.assertEqual(reading.gesture, GestureState.RELEASED)
        self.assertIsNone(reading.centroid)


def finger_hand(lengths, base_y=300):
    """Hand whose five fingers have the given tip-to-base lengths (pixels)."""
    bases = (3, 5, 9, 13, 17)
    tips = (4, 8, 12, 16, 20)
    points = {}
    for i, (tip, base, length) in enumerate(zip(tips, bases, lengths)):
        x = 200 + 40 * i
        points[base] = (x, base_y)
        points[tip] = (x, base_y - length)
    return body(points)


class TestLandmarkFistClassifier(unittest.TestCase):

    def setUp(self):
        self.clf = LandmarkFistClassifier(closed_threshold=35, open_threshold=70)

    def classify(self, lengths):
        return self.clf.classify([finger_hand(lengths)], LAYOUT)

    def test_fist_and_open_hand(self):
        self.assertEqual(self.clf.model, "hand")
        fist = self.classify([10, 10, 10, 10, 10])
        self.assertEqual(fist.gesture, GestureState.SELECTING)
        self.assertAlmostEqual(fist.centroid[0], 280.0)
        self.assertAlmostEqual(fist.centroid[1], 300.0)
        self.assertEqual(self.classify([100, 100, 100, 100, 100]).gesture, GestureState.RELEASED)

    def test_finger_counts(self):
        # Four short fingers are enough for a fist.
        self.assertEqual(self.classify([10, 10, 10, 10, 100]).gesture, GestureState.SELECTING)
        # Three open fingers are enough to release.
        self.assertEqual(self.classify([100, 100, 100, 10, 10]).gesture, GestureState.RELEASED)

    def test_thresholds_are_strict(self):
        self.assertEqual(self.classify([36, 36, 36, 36, 36]).gesture, GestureState.RELEASED)
        self.classify([34, 34, 34, 34, 34])
        self.assertEqual(self.clf._state, GestureState.SELECTING)
        # 69 px is not open: still held.
        self.assertEqual(self.classify([69, 69, 69, 69, 69]).gesture, GestureState.SELECTING)
        self.assertEqual(self.classify([71, 71, 71, 50, 50]).gesture, GestureState.RELEASED)

    def test_half_open_hand_keeps_the_state(self):
        self.assertEqual(self.classify([10, 10, 10, 50, 100]).gesture, GestureState.RELEASED)
        self.classify([10, 10, 10, 10, 10])
        self.assertEqual(self.classify([50, 50, 50, 50, 50]).gesture, GestureState.SELECTING)
        self.assertEqual(self.classify([100, 100, 50, 50, 50]).gesture, GestureState.SELECTING)

    def test_lost_hand_keeps_state_and_position(self):
        self.classify([10, 10, 10, 10, 10])
        lost = self.clf.classify([], LAYOUT)
        self.assertEqual(lost.gesture, GestureState.SELECTING)
        self.assertAlmostEqual(lost.centroid[0], 280.0)
        self.clf.reset()
        self.assertIsNone(self.clf.classify([], LAYOUT).centroid)


class TestFistPalmClassifier(unittest.TestCase):

    def test_labels_drive_the_state(self):
        clf = FistPalmClassifier()
        self.assertEqual(clf.model, "gesture")

        fist = clf.classify([body({9: (200, 120)}, gesture_label="Closed_Fist")], LAYOUT)
        self.assertEqual(fist.gesture, GestureState.SELECTING)
        self.assertEqual(fist.centroid, (200.0, 120.0))
        self.assertEqual(fist.label, "Closed_Fist")

        # Undecided labels keep the previous state.
        other = clf.classify([body({9: (220, 240)}, gesture_label="Pointing_Up")], LAYOUT)
        self.assertEqual(other.gesture, GestureState.SELECTING)

        palm = clf.classify([body({9: (240, 360)}, gesture_label="Open_Palm")], LAYOUT)
        self.assertEqual(palm.gesture, GestureState.RELEASED)

    def test_keeps_last_position_when_hand_is_lost(self):
        clf = FistPalmClassifier()
        clf.classify([body({9: (200, 120)}, gesture_label="Closed_Fist")], LAYOUT)
        lost = clf.classify([], LAYOUT)
        self.assertEqual(lost.centroid, (200.0, 120.0))
        self.assertEqual(lost.label, "None")
        self.assertEqual(lost.gesture, GestureState.SELECTING)
        clf.reset()
        self.assertIsNone(clf.classify([], LAYOUT).centroid)


class TestCreateClassifier(unittest.TestCase):

    def test_uses_config_thresholds(self):
        config = SketchConfig(mode="far", far_threshold=50, tripinch_threshold=10)
        far = create_classifier("far", config)
        self.assertIsInstance(far, FarHandsClassifier)
        self.assertEqual(far.threshold, 50)
        self.assertEqual(create_classifier("tripinch", config).close_threshold, 10)
        self.assertIsInstance(create_classifier("fist"), FistPalmClassifier)
        fistlm = create_classifier("fistlm", SketchConfig(fist_closed_threshold=30, fist_open_threshold=80))
        self.assertIsInstance(fistlm, LandmarkFistClassifier)
        self.assertEqual((fistlm.closed_threshold, fistlm.open_threshold), (30, 80))

    def test_every_mode_has_a_classifier(self):
        self.assertEqual(set(CLASSIFIERS), set(MODES))
        for mode in MODES:
            clf = create_classifier(mode)
            self.assertIsInstance(clf, CLASSIFIERS[mode])
            self.assertEqual(clf.name, mode)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            create_classifier("wave")


if __name__ == "__main__":
    unittest.main()
