"""
Serialized-payload facade over the perception utilities.

Every message argument and return value here is a CDR-serialized ROS 2 message
(bytes); images and coordinates are numpy arrays. Decoding failures raise
DeserializationError before any processing starts.
"""

import numpy as np

from mas_perception.common.errors import InvalidArgumentError
from mas_perception.common.types import BoundingBox2D
from mas_perception.core import visualizer
from mas_perception.core.messages import BoundingBoxList, CameraInfo, Image, PointCloud2
from mas_perception.core.serialization import decode_message, encode_message
from mas_perception.perception import geometry, point_cloud
from mas_perception.perception.bounding_box import BoundingBox3D
from mas_perception.perception.pipeline import get_crops_and_bounding_boxes

BoundingBox2DWrapper = BoundingBox2D


class BoundingBoxWrapper:
    """3D box fitted to a serialized sensor_msgs/PointCloud2 resting on a plane with the given normal."""

    def __init__(self, serial_cloud, normal):
        cloud = decode_message(serial_cloud, PointCloud2)
        self.bounding_box = BoundingBox3D.from_cloud(cloud, list(normal))

    def get_pose(self):
        """serialized geometry_msgs/PoseStamped"""
        return encode_message(self.bounding_box.get_pose())

    def get_ros_message(self):
        """serialized mcr_perception_msgs/BoundingBox"""
        return encode_message(self.bounding_box.get_ros_message())


def get_crops_and_bounding_boxes_wrapper(serial_image, serial_camera_info, serial_box_list, offset=0):
    """
    Crops every box of a serialized BoundingBoxList out of a serialized image.
    Returns (serialized mcr_perception_msgs/ImageList, list of 4-vertex pixel polygons).
    """
    image_msg = decode_message(serial_image, Image)
    camera_info = decode_message(serial_camera_info, CameraInfo)
    box_list = decode_message(serial_box_list, BoundingBoxList)

    image_list, box_vertices = get_crops_and_bounding_boxes(image_msg, camera_info, box_list, offset)
    return encode_message(image_list), box_vertices


def _as_image(image):
    image = np.asarray(image)
    if image.ndim not in (2, 3):
        raise InvalidArgumentError(f"image must be a 2D or 3D array, got shape {image.shape}")
    return image


def draw_labeled_boxes(image, boxes, thickness=2, font_scale=1.0, copy=True):
    return visualizer.draw_labeled_boxes(_as_image(image), list(boxes), thickness, font_scale, copy=copy)


def fit_box_to_image(image_size, box, offset=0):
    """Fits box into an image of size (width, height); box is updated in place and returned."""
    adjusted = geometry.fit_box_to_image(image_size, box, offset)
    box.update_box(*adjusted.to_rect())
    return box


def crop_image(image, box, offset=0):
    return geometry.crop_image(_as_image(image), box, offset)


def cloud_msg_to_cv_image(serial_cloud):
    return point_cloud.cloud_msg_to_cv_image(decode_message(serial_cloud, PointCloud2))


def cloud_msg_to_image_msg(serial_cloud):
    """serialized sensor_msgs/Image (bgr8) extracted from an organized cloud"""
    return encode_message(point_cloud.cloud_msg_to_image_msg(decode_message(serial_cloud, PointCloud2)))


def crop_organized_cloud_msg(serial_cloud, box, offset=0):
    cloud = decode_message(serial_cloud, PointCloud2)
    return encode_message(point_cloud.crop_organized_cloud_msg(cloud, box, offset))


def crop_cloud_to_xyz(serial_cloud, box, offset=0):
    return point_cloud.crop_cloud_msg_to_xyz(decode_message(serial_cloud, PointCloud2), box, offset)


def transform_point_cloud(serial_cloud, matrix):
    """
    Transforms a serialized cloud with a 4x4 matrix. The header is returned
    unchanged: the caller must set the new frame_id.
    """
    matrix = geometry.as_transform_matrix(matrix)
    cloud = decode_message(serial_cloud, PointCloud2)
    return encode_message(point_cloud.transform_point_cloud(cloud, matrix))
