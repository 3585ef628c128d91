import copy
import logging

import cv2
import numpy as np

from mas_perception.common.errors import InvalidArgumentError, PerceptionError
from mas_perception.common.profiler import ScopedTimer
from mas_perception.common.types import BoundingBox2D
from mas_perception.core.image_conversion import cv_to_image_msg, image_msg_to_cv
from mas_perception.core.messages import BoundingBox, BoundingBoxList, CameraInfo, Image, ImageList
from mas_perception.perception.bounding_box import BoundingBox3D
from mas_perception.perception.geometry import PinholeCameraModel, crop_image

logger = logging.getLogger(__name__)


class ImageBoundingBox:
    """
    Crops one sub-image per detection out of a camera image.

    detections may hold BoundingBox2D (pixel boxes), BoundingBox3D or
    mcr_perception_msgs/BoundingBox messages (3D, projected with the camera
    model). After construction:
      cropped_image_list - ImageList message, one bgr8 crop per detection
      box_vertices       - one [[x, y]] * 4 pixel polygon per detection
    both in input order. The first failing detection aborts the whole batch.
    """

    def __init__(self, image_msg: Image, camera_info: CameraInfo, detections, offset=0):
        if isinstance(detections, BoundingBoxList):
            detections = detections.bounding_boxes

        self.camera = PinholeCameraModel(camera_info)
        self.offset = offset
        self.box_vertices = []
        self.cropped_image_list = ImageList()

        with ScopedTimer("crop.decode_image"):
            image = image_msg_to_cv(image_msg, 'bgr8')

        with ScopedTimer("crop.detections"):
            for index, detection in enumerate(detections):
                try:
                    region, vertices = self._region_and_vertices(detection)
                    crop = crop_image(image, region, offset)
                except PerceptionError as e:
                    raise type(e)(f"detection {index}: {e}") from e
                self.cropped_image_list.images.append(
                    cv_to_image_msg(crop, 'bgr8', header=copy.deepcopy(image_msg.header)))
                self.box_vertices.append(vertices)

        logger.debug("[Pipeline] cropped %d detections from %dx%d image",
                     len(self.box_vertices), image_msg.width, image_msg.height)

    def _region_and_vertices(self, detection):
        if isinstance(detection, BoundingBox2D):
            return detection, detection.vertices()
        if isinstance(detection, BoundingBox):
            detection = BoundingBox3D.from_ros_message(detection)
        if not isinstance(detection, BoundingBox3D):
            raise InvalidArgumentError(f"unsupported detection type {type(detection).__name__}")
        if len(detection.vertices) == 0:
            raise InvalidArgumentError("3D bounding box has no vertices")

        pixels = self.camera.project_3d_to_pixel(detection.vertices).astype(np.float32)
        # footprint of the projected box as a rotated rectangle: exactly 4 corners
        corners = cv2.boxPoints(cv2.minAreaRect(pixels))
        x, y, w, h = cv2.boundingRect(corners)
        return BoundingBox2D(box=(x, y, w, h)), corners.astype(np.float64).tolist()


def get_crops_and_bounding_boxes(image_msg, camera_info, detections, offset=0):
    """Returns (ImageList message, list of 4-vertex pixel polygons), one entry per detection."""
    result = ImageBoundingBox(image_msg, camera_info, detections, offset)
    return result.cropped_image_list, result.box_vertices
