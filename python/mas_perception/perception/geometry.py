import logging

import numpy as np

from mas_perception.common.errors import DimensionMismatchError, InvalidArgumentError, OutOfRangeError
from mas_perception.common.types import BoundingBox2D
from mas_perception.core.messages import CameraInfo

logger = logging.getLogger(__name__)

# --- 1. Transformation Helpers ---

def as_transform_matrix(matrix):
    """Validates and returns a float64 4x4 transformation matrix."""
    T = np.asarray(matrix, dtype=np.float64)
    if T.shape != (4, 4):
        raise DimensionMismatchError(f"transformation is not a 4x4 matrix, got shape {T.shape}")
    return T

# --- 2. Pinhole camera built from sensor_msgs/CameraInfo ---

class PinholeCameraModel:
    def __init__(self, camera_info: CameraInfo):
        """
        Camera model for a (rectified) ROS camera.
        Points are expected in the optical frame: x right, y down, z forward.
        """
        if len(camera_info.k) != 9 or len(camera_info.p) != 12:
            raise InvalidArgumentError("camera info must carry a 3x3 K and a 3x4 P matrix")

        self.width = camera_info.width
        self.height = camera_info.height
        self.K = np.array(camera_info.k, dtype=np.float64).reshape(3, 3)
        self.D = np.array(camera_info.d, dtype=np.float64)
        self.P = np.array(camera_info.p, dtype=np.float64).reshape(3, 4)

        # uncalibrated P: fall back to [K | 0]
        if not np.any(self.P):
            self.P = np.hstack([self.K, np.zeros((3, 1))])
        if not np.any(self.P[:, :3]):
            raise InvalidArgumentError("camera info has neither a projection nor an intrinsic matrix")

    @property
    def image_size(self):
        return self.width, self.height

    def project_3d_to_pixel(self, points):
        """
        Projects (N, 3) points to (N, 2) pixel coordinates using P.
        Points on or behind the camera plane cannot be projected.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        homogeneous = np.hstack([points, np.ones((points.shape[0], 1))])
        uvw = homogeneous @ self.P.T

        if np.any(uvw[:, 2] <= 1e-12):
            raise OutOfRangeError("point is not in front of the camera and cannot be projected to a pixel")
        return uvw[:, :2] / uvw[:, 2:3]

# --- 3. Boxes in image space ---

def fit_box_to_image(image_size, box: BoundingBox2D, offset=0) -> BoundingBox2D:
    """
    Grows box by offset on every side, then pulls each violating edge back to
    the image border independently of the others. A box that lies completely
    outside the image collapses to a zero-size box on the nearest border.

    image_size: (width, height)
    """
    if len(image_size) != 2:
        raise InvalidArgumentError("image size is not a tuple containing 2 numerics")
    width, height = (int(float(v)) for v in image_size)
    if width <= 0 or height <= 0:
        raise InvalidArgumentError(f"image size must be positive, got ({width}, {height})")

    x1 = min(max(box.x - offset, 0), width)
    y1 = min(max(box.y - offset, 0), height)
    x2 = min(max(box.x + box.width + offset, 0), width)
    y2 = min(max(box.y + box.height + offset, 0), height)

    fitted = box.copy()
    fitted.update_box(x1, y1, max(x2 - x1, 0), max(y2 - y1, 0))
    return fitted


def crop_image(image: np.ndarray, box: BoundingBox2D, offset=0) -> np.ndarray:
    """Returns a copy of the image region under box (fitted to the image first)."""
    img_h, img_w = image.shape[:2]
    fitted = fit_box_to_image((img_w, img_h), box, offset)
    if fitted.width <= 0 or fitted.height <= 0:
        raise OutOfRangeError(
            f"crop region {fitted.to_rect()} is empty for image of size ({img_w}, {img_h})")

    return image[fitted.y:fitted.y + fitted.height, fitted.x:fitted.x + fitted.width].copy()
