import unittest

import numpy as np

from yolo_overlay.overlay import OverlayStyle, box_to_rect, build_overlay, draw_overlay, parse_color, scale_overlay
from yolo_overlay.types import Box, Overlay, Rect


class TestBuildOverlay(unittest.TestCase):
    def test_center_to_top_left(self) -> None:
        rect = box_to_rect(Box(x=100, y=100, w=40, h=40, conf=0.9))
        self.assertEqual(rect, Rect(x=80, y=80, width=40, height=40))

    def test_round_trip_recovers_center(self) -> None:
        box = Box(x=33.5, y=71.25, w=17.0, h=9.5, conf=0.7)
        rect = box_to_rect(box)
        self.assertEqual((rect.x, rect.y), (box.x - box.w / 2, box.y - box.h / 2))
        self.assertEqual((rect.width, rect.height), (box.w, box.h))
        self.assertEqual(rect.center(), (box.x, box.y))

    def test_keeps_order_and_count(self) -> None:
        boxes = [Box(x=10, y=10, w=2, h=2, conf=0.9), Box(x=50, y=50, w=4, h=4, conf=0.8)]
        overlay = build_overlay(boxes, 640, 480)
        self.assertEqual((overlay.width, overlay.height), (640, 480))
        self.assertEqual(overlay.rects, (Rect(9, 9, 2, 2), Rect(48, 48, 4, 4)))
        self.assertEqual(len(overlay), 2)

    def test_no_clamping(self) -> None:
        overlay = build_overlay([Box(x=5, y=630, w=40, h=40, conf=0.9)], 640, 640)
        self.assertEqual(overlay.rects[0], Rect(x=-15, y=610, width=40, height=40))

    def test_empty(self) -> None:
        overlay = build_overlay([], 640, 640)
        self.assertEqual(overlay.rects, ())
        self.assertEqual(len(overlay), 0)

    def test_source_does_not_alias_boxes(self) -> None:
        box = Box(x=100, y=100, w=40, h=40, conf=0.9)
        build_overlay([box], 200, 200)
        self.assertEqual(box, Box(x=100, y=100, w=40, h=40, conf=0.9))


class TestScaleOverlay(unittest.TestCase):
    def test_undoes_letterbox(self) -> None:
        # 400x200 source letterboxed into 200x200: ratio 0.5, 50 px on top.
        overlay = Overlay(width=200, height=200, rects=(Rect(80, 80, 40, 40),))
        scaled = scale_overlay(overlay, 0.5, (0.0, 50.0), 400, 200)
        self.assertEqual((scaled.width, scaled.height), (400, 200))
        self.assertEqual(scaled.rects, (Rect(160, 60, 80, 80),))

    def test_rejects_bad_ratio(self) -> None:
        with self.assertRaises(ValueError):
            scale_overlay(Overlay(10, 10), 0.0, (0.0, 0.0), 10, 10)


class TestOverlayStyle(unittest.TestCase):
    def test_default_is_red_two_px(self) -> None:
        style = OverlayStyle()
        self.assertEqual(style.color, "red")
        self.assertEqual(style.stroke_width, 2)
        self.assertEqual(style.bgr(), (0, 0, 255))

    def test_hex_color(self) -> None:
        self.assertEqual(parse_color("#10ff80"), (16, 255, 128))
        self.assertEqual(OverlayStyle(color="#10FF80").bgr(), (128, 255, 16))

    def test_invalid_style(self) -> None:
        with self.assertRaises(ValueError):
            OverlayStyle(color="not-a-color")
        with self.assertRaises(ValueError):
            OverlayStyle(color="#12345")
        with self.assertRaises(ValueError):
            OverlayStyle(stroke_width=0)


class TestDrawOverlay(unittest.TestCase):
    def test_draws_unfilled_outline_on_copy(self) -> None:
        image = np.zeros((100, 100, 3), dtype=np.uint8)
        overlay = Overlay(width=100, height=100, rects=(Rect(10, 10, 40, 40),))
        out = draw_overlay(image, overlay, OverlayStyle())

        self.assertFalse(image.any())
        self.assertEqual(tuple(out[10, 10]), (0, 0, 255))
        self.assertEqual(tuple(out[10, 30]), (0, 0, 255))
        self.assertEqual(tuple(out[50, 50]), (0, 0, 255))
        self.assertEqual(tuple(out[30, 30]), (0, 0, 0))

    def test_empty_overlay_leaves_image_unchanged(self) -> None:
        image = np.full((20, 30, 3), 7, dtype=np.uint8)
        out = draw_overlay(image, Overlay(width=30, height=20))
        self.assertTrue(np.array_equal(out, image))

    def test_out_of_bounds_and_non_finite_rects(self) -> None:
        image = np.zeros((20, 20, 3), dtype=np.uint8)
        overlay = Overlay(
            width=20,
            height=20,
            rects=(Rect(-15, -15, 40, 40), Rect(float("nan"), 0, 5, 5)),
        )
        with self.assertLogs("yolo_overlay.overlay", level="WARNING"):
            out = draw_overlay(image, overlay)
        self.assertEqual(out.shape, image.shape)

    def test_huge_finite_rect_is_clipped_when_drawn(self) -> None:
        image = np.zeros((64, 64, 3), dtype=np.uint8)
        overlay = build_overlay([Box(x=32, y=32, w=1e30, h=16, conf=0.9)], 64, 64)
        self.assertEqual(overlay.rects[0].width, 1e30)

        out = draw_overlay(image, overlay, OverlayStyle())

        # Left and right edges fall far off-canvas; top and bottom span the image.
        self.assertEqual(tuple(out[24, 0]), (0, 0, 255))
        self.assertEqual(tuple(out[40, 63]), (0, 0, 255))
        self.assertEqual(tuple(out[32, 32]), (0, 0, 0))
        self.assertEqual(overlay.rects[0].x, 32 - 5e29)

    def test_rejects_non_bgr_image(self) -> None:
        with self.assertRaises(ValueError):
            draw_overlay(np.zeros((10, 10), dtype=np.uint8), Overlay(10, 10))


if __name__ == "__main__":
    unittest.main()
