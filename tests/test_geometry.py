import unittest

import numpy as np

from cloud_utils import make_camera_info, make_test_image
from mas_perception.common.errors import DimensionMismatchError, InvalidArgumentError, OutOfRangeError
from mas_perception.common.types import BoundingBox2D
from mas_perception.perception.geometry import (
    PinholeCameraModel, as_transform_matrix, crop_image, fit_box_to_image)


class TestFitBoxToImage(unittest.TestCase):
    def test_clips_negative_origin(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (-5, -5, 20, 20))
        fitted = fit_box_to_image((100, 100), box, 0)
        self.assertEqual(fitted.to_rect(), (0, 0, 15, 15))
        self.assertLessEqual(fitted.width, box.width)
        self.assertLessEqual(fitted.height, box.height)

    def test_offset_expands_every_side(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (10, 10, 20, 20))
        self.assertEqual(fit_box_to_image((100, 100), box, 5).to_rect(), (5, 5, 30, 30))

    def test_each_edge_clamped_independently(self) -> None:
        # only the right and bottom edges violate the image
        box = BoundingBox2D("", (0, 0, 0), (90, 40, 20, 20))
        self.assertEqual(fit_box_to_image((100, 50), box, 0).to_rect(), (90, 40, 10, 10))
        # offset pushes the left edge out as well
        self.assertEqual(fit_box_to_image((100, 50), box, 95).to_rect(), (0, 0, 100, 50))

    def test_box_outside_image_becomes_empty(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (150, 10, 20, 20))
        fitted = fit_box_to_image((100, 100), box, 0)
        self.assertEqual((fitted.x, fitted.width), (100, 0))

    def test_input_box_is_not_modified(self) -> None:
        box = BoundingBox2D("label", (1, 2, 3), (-5, -5, 20, 20))
        fitted = fit_box_to_image((100, 100), box, 0)
        self.assertEqual(box.to_rect(), (-5, -5, 20, 20))
        self.assertEqual((fitted.label, fitted.color), ("label", (1, 2, 3)))

    def test_invalid_image_size(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (0, 0, 1, 1))
        with self.assertRaises(InvalidArgumentError):
            fit_box_to_image((0, 100), box)
        with self.assertRaises(InvalidArgumentError):
            fit_box_to_image((10, 10, 3), box)


class TestCropImage(unittest.TestCase):
    def setUp(self) -> None:
        self.image = make_test_image(100, 80)

    def test_crop_matches_fitted_box(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (-5, 70, 20, 20))
        fitted = fit_box_to_image((100, 80), box)
        crop = crop_image(self.image, box)
        self.assertEqual(crop.shape, (fitted.height, fitted.width, 3))
        self.assertEqual(crop.shape, (10, 15, 3))
        # pixel (0, 0) of the crop is pixel (x=0, y=70) of the source
        self.assertEqual(tuple(crop[0, 0]), (0, 70, 255))

    def test_crop_with_offset(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (20, 20, 10, 10))
        crop = crop_image(self.image, box, offset=2)
        self.assertEqual(crop.shape, (14, 14, 3))
        self.assertEqual(tuple(crop[0, 0]), (18, 18, 255))

    def test_crop_is_a_copy(self) -> None:
        box = BoundingBox2D("", (0, 0, 0), (0, 0, 10, 10))
        crop = crop_image(self.image, box)
        crop[:] = 0
        self.assertEqual(tuple(self.image[0, 0]), (0, 0, 255))

    def test_grayscale_crop(self) -> None:
        gray = self.image[..., 1].copy()
        crop = crop_image(gray, BoundingBox2D("", (0, 0, 0), (3, 4, 5, 6)))
        self.assertEqual(crop.shape, (6, 5))

    def test_degenerate_crop_raises(self) -> None:
        with self.assertRaises(OutOfRangeError):
            crop_image(self.image, BoundingBox2D("", (0, 0, 0), (200, 200, 10, 10)))
        with self.assertRaises(OutOfRangeError):
            crop_image(self.image, BoundingBox2D("", (0, 0, 0), (10, 10, 0, 10)))


class TestPinholeCameraModel(unittest.TestCase):
    def test_project_with_projection_matrix(self) -> None:
        camera = PinholeCameraModel(make_camera_info(fx=500.0, fy=500.0, cx=320.0, cy=240.0))
        uv = camera.project_3d_to_pixel([[0.1, -0.2, 2.0]])
        self.assertTrue(np.allclose(uv, [[345.0, 190.0]]))

    def test_falls_back_to_intrinsics(self) -> None:
        camera = PinholeCameraModel(make_camera_info(with_projection=False))
        uv = camera.project_3d_to_pixel([[0.0, 0.0, 1.0], [0.1, 0.1, 1.0]])
        self.assertTrue(np.allclose(uv, [[50.0, 40.0], [60.0, 50.0]]))
        self.assertEqual(camera.image_size, (100, 80))

    def test_point_on_camera_plane(self) -> None:
        camera = PinholeCameraModel(make_camera_info())
        with self.assertRaises(OutOfRangeError):
            camera.project_3d_to_pixel([[1.0, 1.0, 0.0]])

    def test_point_behind_camera(self) -> None:
        camera = PinholeCameraModel(make_camera_info())
        with self.assertRaises(OutOfRangeError):
            camera.project_3d_to_pixel([[0.0, 0.0, 1.0], [0.1, 0.1, -1.0]])


class TestTransformHelpers(unittest.TestCase):
    def test_non_4x4_matrix(self) -> None:
        with self.assertRaises(DimensionMismatchError):
            as_transform_matrix(np.zeros((3, 4)))


if __name__ == "__main__":
    unittest.main()
