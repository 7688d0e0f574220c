import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from yolo_overlay.errors import InferenceError, PreconditionError, ShapeMismatchError
from yolo_overlay.image_io import load_and_fit
from yolo_overlay.postprocess import DetectionConfig
from yolo_overlay.runtime import OverlayPipeline, resolve_model_path
from yolo_overlay.types import Box, Rect


def _output(*predictions) -> np.ndarray:
    return np.array(predictions, dtype=np.float32).T[None, ...]


class _FakeEngine:
    """
    Stands in for the inference engine: checks the input contract and
    returns a fixed output tensor.
    """

    def __init__(self, output: np.ndarray, height: int = 200, width: int = 200):
        self.output = output
        self.height = height
        self.width = width
        self.calls = 0

    def __call__(self, blob: np.ndarray) -> np.ndarray:
        assert blob.shape == (1, 3, self.height, self.width)
        assert blob.dtype == np.float32
        self.calls += 1
        return self.output


class TestPipelineScenarios(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmp = Path(tmpdir.name)
        self.source = self.tmp / "in" / "photo.png"
        self.source.parent.mkdir()
        image = np.full((200, 200, 3), 60, dtype=np.uint8)
        self.assertTrue(cv2.imwrite(str(self.source), image))
        self.output = self.tmp / "out" / "photo.png"

    def _pipeline(self, output: np.ndarray, **kwargs) -> OverlayPipeline:
        return OverlayPipeline(
            _FakeEngine(output),
            input_size=(200, 200),
            num_predictions=output.shape[2],
            **kwargs,
        )

    def test_single_detection(self) -> None:
        pipe = self._pipeline(_output((100, 100, 40, 40, 0.9)), post_cfg=DetectionConfig(conf_threshold=0.6))
        result = pipe.process_file(self.source, self.output)

        self.assertEqual(len(result.boxes), 1)
        box = result.boxes[0]
        self.assertEqual((box.x, box.y, box.w, box.h), (100.0, 100.0, 40.0, 40.0))
        self.assertAlmostEqual(box.conf, 0.9, places=6)
        self.assertEqual(result.overlay.rects, (Rect(x=80, y=80, width=40, height=40),))

        written = cv2.imread(str(result.output))
        self.assertEqual(written.shape, (200, 200, 3))
        self.assertEqual(tuple(written[80, 100]), (0, 0, 255))
        self.assertEqual(tuple(written[100, 100]), (60, 60, 60))

    def test_overlapping_pair_keeps_higher_confidence(self) -> None:
        # IoU 0.7
        pipe = self._pipeline(_output((35, 50, 70, 100, 0.8), (50, 50, 100, 100, 0.9)))
        result = pipe.process_file(self.source, self.output)
        self.assertEqual([b.x for b in result.boxes], [50.0])
        self.assertAlmostEqual(result.boxes[0].conf, 0.9, places=6)

    def test_separated_pair_keeps_both(self) -> None:
        # IoU 0.3
        pipe = self._pipeline(_output((15, 50, 30, 100, 0.8), (50, 50, 100, 100, 0.9)))
        result = pipe.process_file(self.source, self.output)
        self.assertEqual([b.x for b in result.boxes], [50.0, 15.0])
        self.assertEqual(len(result.overlay), 2)

    def test_nothing_above_threshold_still_saves_image(self) -> None:
        pipe = self._pipeline(_output((100, 100, 40, 40, 0.2), (20, 20, 10, 10, 0.59)))
        result = pipe.process_file(self.source, self.output)

        self.assertEqual(result.boxes, ())
        self.assertEqual(result.overlay.rects, ())
        self.assertTrue(self.output.exists())
        expected = load_and_fit(self.source, 200, 200).canvas_bgr
        self.assertTrue(np.array_equal(cv2.imread(str(self.output)), expected))

    def test_detect_accepts_flat_pixel_buffer(self) -> None:
        pipe = self._pipeline(_output((100, 100, 40, 40, 0.9)))
        pixels = np.zeros((200, 200, 3), dtype=np.uint8).tobytes()
        self.assertEqual(len(pipe.detect(pixels)), 1)

    def test_render_on_source_rescales(self) -> None:
        wide = self.tmp / "in" / "wide.png"
        self.assertTrue(cv2.imwrite(str(wide), np.zeros((200, 400, 3), dtype=np.uint8)))
        pipe = self._pipeline(_output((100, 100, 40, 40, 0.9)), render_on="source")
        result = pipe.process_file(wide, self.tmp / "out" / "wide.png")

        self.assertEqual(result.overlay.rects, (Rect(x=160, y=60, width=80, height=80),))
        written = cv2.imread(str(result.output))
        self.assertEqual(written.shape, (200, 400, 3))
        self.assertEqual(tuple(written[60, 200]), (0, 0, 255))

    def test_prediction_count_mismatch_fails_image(self) -> None:
        pipe = OverlayPipeline(
            _FakeEngine(_output((100, 100, 40, 40, 0.9))),
            input_size=(200, 200),
            num_predictions=8400,
        )
        with self.assertRaises(ShapeMismatchError) as ctx:
            pipe.process_file(self.source, self.output)
        self.assertEqual(ctx.exception.stage, "decode")
        self.assertEqual(ctx.exception.path, self.source)
        self.assertFalse(self.output.exists())

    def test_engine_failure_is_wrapped(self) -> None:
        def broken(_blob: np.ndarray) -> np.ndarray:
            raise RuntimeError("boom")

        pipe = OverlayPipeline(broken, input_size=(200, 200))
        with self.assertRaises(InferenceError) as ctx:
            pipe.process_file(self.source, self.output)
        self.assertEqual(ctx.exception.stage, "inference")
        self.assertIn("boom", str(ctx.exception))
        self.assertIn("photo.png", str(ctx.exception))
        self.assertFalse(self.output.exists())

    def test_input_tensor_shape_checked(self) -> None:
        pipe = self._pipeline(_output((100, 100, 40, 40, 0.9)))
        with self.assertRaises(PreconditionError):
            pipe.infer(np.zeros((1, 3, 100, 100), dtype=np.float32))

    def test_images_do_not_share_state(self) -> None:
        engine = _FakeEngine(_output((100, 100, 40, 40, 0.9)))
        pipe = OverlayPipeline(engine, input_size=(200, 200), num_predictions=1)
        first = pipe.process_file(self.source, self.tmp / "out" / "a.png")
        second = pipe.process_file(self.source, self.tmp / "out" / "b.png")
        self.assertEqual(engine.calls, 2)
        self.assertEqual(first.boxes, second.boxes)
        self.assertIsNot(first.boxes, second.boxes)
        self.assertIsInstance(first.boxes[0], Box)

    def test_invalid_construction(self) -> None:
        with self.assertRaises(ValueError):
            OverlayPipeline(lambda b: b, input_size=(0, 200))
        with self.assertRaises(ValueError):
            OverlayPipeline(lambda b: b, input_size=(200, 200), render_on="canvas")


class TestResolveModelPath(unittest.TestCase):
    def test_absolute_path_untouched(self) -> None:
        p = Path(tempfile.gettempdir()).resolve() / "model.onnx"
        self.assertEqual(resolve_model_path(p), p)

    def test_relative_to_explicit_root(self) -> None:
        root = Path(tempfile.gettempdir()).resolve()
        self.assertEqual(resolve_model_path("models/model.onnx", root=root), root / "models" / "model.onnx")

    def test_relative_to_working_directory(self) -> None:
        self.assertEqual(resolve_model_path("models/model.onnx"), (Path.cwd() / "models" / "model.onnx").resolve())


if __name__ == "__main__":
    unittest.main()
