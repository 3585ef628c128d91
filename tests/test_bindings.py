import unittest

import numpy as np

from cloud_utils import grid_xyz, make_camera_info, make_cloud, make_test_image
from mas_perception import bindings
from mas_perception.common.errors import (
    DeserializationError, DimensionMismatchError, InvalidArgumentError, OutOfRangeError)
from mas_perception.core.image_conversion import cv_to_image_msg, image_msg_to_cv
from mas_perception.core.messages import (
    BoundingBox, BoundingBoxList, Header, Image, ImageList, Point, PointCloud2, PoseStamped, Vector3)
from mas_perception.core.serialization import decode_message, encode_message


def _flat_box(x0, y0, x1, y1, z=1.0):
    """Box message whose vertices all lie on a plane at depth z; projects to a rectangle."""
    corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    vertices = [Point(x, y, z) for x, y in corners] * 2
    return BoundingBox(center=Point((x0 + x1) / 2, (y0 + y1) / 2, z),
                       dimensions=Vector3(x1 - x0, y1 - y0, 0.0), vertices=vertices)


class TestCropWrapper(unittest.TestCase):
    def setUp(self) -> None:
        self.image = make_test_image(100, 80)
        self.serial_image = encode_message(cv_to_image_msg(self.image, 'bgr8', header=Header(frame_id="camera")))
        self.serial_camera_info = encode_message(make_camera_info(width=100, height=80))

    def test_two_boxes(self) -> None:
        # f=100, c=(50, 40): x,y in metres at z=1 map to 100*x + 50, 100*y + 40
        box_list = BoundingBoxList([_flat_box(-0.3, -0.2, -0.1, 0.0), _flat_box(0.1, 0.1, 0.3, 0.3)])
        serial_images, vertices = bindings.get_crops_and_bounding_boxes_wrapper(
            self.serial_image, self.serial_camera_info, encode_message(box_list))

        image_list = decode_message(serial_images, ImageList)
        self.assertEqual(len(image_list.images), 2)
        self.assertEqual(len(vertices), 2)
        for polygon in vertices:
            self.assertEqual(len(polygon), 4)

        first = image_msg_to_cv(image_list.images[0])
        self.assertIn(int(first[0, 0, 0]), (19, 20))
        self.assertIn(int(first[0, 0, 1]), (19, 20))
        self.assertEqual(image_list.images[1].header.frame_id, "camera")

    def test_empty_box_list(self) -> None:
        serial_images, vertices = bindings.get_crops_and_bounding_boxes_wrapper(
            self.serial_image, self.serial_camera_info, encode_message(BoundingBoxList()))
        self.assertEqual(decode_message(serial_images, ImageList).images, [])
        self.assertEqual(vertices, [])

    def test_corrupt_image(self) -> None:
        with self.assertRaises(DeserializationError):
            bindings.get_crops_and_bounding_boxes_wrapper(
                self.serial_image[:10], self.serial_camera_info, encode_message(BoundingBoxList()))

    def test_box_outside_image(self) -> None:
        box_list = BoundingBoxList([_flat_box(5.0, 5.0, 6.0, 6.0)])
        with self.assertRaises(OutOfRangeError):
            bindings.get_crops_and_bounding_boxes_wrapper(
                self.serial_image, self.serial_camera_info, encode_message(box_list))


class TestImageHelpers(unittest.TestCase):
    def test_fit_box_mutates_and_returns(self) -> None:
        box = bindings.BoundingBox2DWrapper("cup", (0, 0, 255), (-5, -5, 20, 20))
        result = bindings.fit_box_to_image((100, 100), box)
        self.assertIs(result, box)
        self.assertEqual((box.x, box.y, box.width, box.height), (0, 0, 15, 15))
        self.assertEqual(box.label, "cup")

    def test_fit_box_bad_size(self) -> None:
        box = bindings.BoundingBox2DWrapper(box=(0, 0, 1, 1))
        with self.assertRaises(InvalidArgumentError):
            bindings.fit_box_to_image((100, 100, 3), box)

    def test_crop_and_draw(self) -> None:
        image = make_test_image(40, 30)
        box = bindings.BoundingBox2DWrapper("", (255, 0, 0), (5, 6, 10, 8))
        crop = bindings.crop_image(image, box)
        self.assertEqual(crop.shape, (8, 10, 3))
        drawn = bindings.draw_labeled_boxes(image, [box], thickness=1)
        self.assertEqual(tuple(drawn[6, 10]), (0, 0, 255))
        self.assertTrue(np.array_equal(image, make_test_image(40, 30)))

    def test_non_image_array(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            bindings.crop_image(np.zeros(10, dtype=np.uint8), bindings.BoundingBox2DWrapper(box=(0, 0, 1, 1)))


class TestCloudHelpers(unittest.TestCase):
    def setUp(self) -> None:
        bgr = np.zeros((2, 3, 3), dtype=np.uint8)
        bgr[..., 2] = 200
        self.bgr = bgr
        self.serial_cloud = encode_message(make_cloud(grid_xyz(2, 3), bgr=bgr, frame_id="head"))

    def test_cloud_to_image(self) -> None:
        self.assertTrue(np.array_equal(bindings.cloud_msg_to_cv_image(self.serial_cloud), self.bgr))
        msg = decode_message(bindings.cloud_msg_to_image_msg(self.serial_cloud), Image)
        self.assertEqual((msg.height, msg.width, msg.encoding), (2, 3, "bgr8"))
        self.assertEqual(msg.header.frame_id, "head")

    def test_unorganized_cloud(self) -> None:
        serial_cloud = encode_message(make_cloud(grid_xyz(1, 6), bgr=np.zeros((1, 6, 3), dtype=np.uint8)))
        with self.assertRaises(InvalidArgumentError):
            bindings.cloud_msg_to_cv_image(serial_cloud)

    def test_crop_cloud(self) -> None:
        box = bindings.BoundingBox2DWrapper(box=(1, 0, 2, 2))
        cropped = decode_message(bindings.crop_organized_cloud_msg(self.serial_cloud, box), PointCloud2)
        self.assertEqual((cropped.height, cropped.width), (2, 2))
        xyz = bindings.crop_cloud_to_xyz(self.serial_cloud, box)
        self.assertTrue(np.array_equal(xyz, grid_xyz(2, 3)[:, 1:3]))

    def test_transform(self) -> None:
        with self.assertRaises(DimensionMismatchError):
            bindings.transform_point_cloud(self.serial_cloud, np.eye(3))
        out = bindings.transform_point_cloud(self.serial_cloud, np.eye(4))
        self.assertEqual(decode_message(out, PointCloud2).data, decode_message(self.serial_cloud, PointCloud2).data)

    def test_bounding_box_wrapper(self) -> None:
        xs, ys, zs = np.meshgrid(np.linspace(0, 1, 5), np.linspace(0, 0.5, 3), np.linspace(0, 0.2, 3))
        points = np.stack([xs, ys, zs], axis=-1).reshape(-1, 3)
        wrapper = bindings.BoundingBoxWrapper(encode_message(make_cloud(points, frame_id="table")), (0, 0, 1))

        pose = decode_message(wrapper.get_pose(), PoseStamped)
        self.assertEqual(pose.header.frame_id, "table")
        self.assertAlmostEqual(pose.pose.position.z, 0.1, places=5)

        box = decode_message(wrapper.get_ros_message(), BoundingBox)
        self.assertEqual(len(box.vertices), 8)
        self.assertAlmostEqual(box.dimensions.z, 0.2, places=5)

    def test_bounding_box_wrapper_corrupt_cloud(self) -> None:
        with self.assertRaises(DeserializationError):
            bindings.BoundingBoxWrapper(b"\x00\x01", (0, 0, 1))


if __name__ == "__main__":
    unittest.main()
