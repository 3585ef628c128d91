import copy
import logging

import cv2
import numpy as np
from scipy.spatial.transform import Rotation

from mas_perception.common.errors import InvalidArgumentError
from mas_perception.core.messages import (
    BoundingBox, Header, Point, Pose, PoseStamped, PointCloud2, Quaternion, Vector3)
from mas_perception.perception.point_cloud import cloud_msg_to_xyz_array

logger = logging.getLogger(__name__)


def _plane_basis(normal):
    """Two unit vectors u, v such that (u, v, normal) is a right-handed frame."""
    helper = np.array([1.0, 0.0, 0.0]) if abs(normal[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    u = helper - np.dot(helper, normal) * normal
    u /= np.linalg.norm(u)
    v = np.cross(normal, u)
    return u, v


def _rotation_from_vertices(vertices):
    """Box frame recovered from vertex layout (0-1 and 0-3 bottom edges, 0-4 vertical edge)."""
    if len(vertices) != 8:
        return np.eye(3)
    x_axis = vertices[1] - vertices[0]
    y_axis = vertices[3] - vertices[0]
    if np.linalg.norm(x_axis) < 1e-9 or np.linalg.norm(y_axis) < 1e-9:
        return np.eye(3)
    x_axis = x_axis / np.linalg.norm(x_axis)
    z_axis = np.cross(x_axis, y_axis)
    if np.linalg.norm(z_axis) < 1e-9:
        return np.eye(3)
    z_axis /= np.linalg.norm(z_axis)
    y_axis = np.cross(z_axis, x_axis)
    return np.column_stack([x_axis, y_axis, z_axis])


class BoundingBox3D:
    """
    Oriented 3D box of an object resting on a plane.
    vertices: (8, 3), the 4 bottom corners followed by the 4 top corners,
    each group in the same order around the footprint.
    rotation: (3, 3) with columns = box x (length), y (width), z (plane normal) axes.
    """

    def __init__(self, center, dimensions, vertices, rotation=None, header=None):
        self.center = np.asarray(center, dtype=np.float64).reshape(3)
        self.dimensions = np.asarray(dimensions, dtype=np.float64).reshape(3)
        self.vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        self.rotation = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.float64)
        self.header = header if header is not None else Header()

    @classmethod
    def from_cloud(cls, cloud: PointCloud2, normal):
        """
        Fits a box to the finite points of cloud. The footprint is the minimum
        area rectangle of the points projected on the plane orthogonal to
        normal, the height is the point extent along normal.
        """
        normal = np.asarray(normal, dtype=np.float64).reshape(-1)
        if normal.shape != (3,):
            raise InvalidArgumentError("normal is not a list containing 3 numerics")
        length = np.linalg.norm(normal)
        if not np.isfinite(length) or length < 1e-9:
            raise InvalidArgumentError("normal must be a finite, non-zero vector")
        normal = normal / length

        points = cloud_msg_to_xyz_array(cloud, remove_nans=True).astype(np.float64)
        if len(points) == 0:
            raise InvalidArgumentError("point cloud contains no finite points")

        u, v = _plane_basis(normal)
        footprint = np.column_stack([points @ u, points @ v]).astype(np.float32)
        rect = cv2.minAreaRect(footprint)
        (rect_cx, rect_cy), (rect_w, rect_h), angle = rect
        corners = cv2.boxPoints(rect).astype(np.float64)

        heights = points @ normal
        h_min, h_max = float(heights.min()), float(heights.max())

        bottom = corners[:, 0:1] * u + corners[:, 1:2] * v + h_min * normal
        top = bottom + (h_max - h_min) * normal
        center = rect_cx * u + rect_cy * v + 0.5 * (h_min + h_max) * normal

        # RotatedRect width runs along (cos(angle), sin(angle)) in the plane
        theta = np.deg2rad(angle)
        x_axis = np.cos(theta) * u + np.sin(theta) * v
        y_axis = np.cross(normal, x_axis)
        rotation = np.column_stack([x_axis, y_axis, normal])

        logger.debug("[BoundingBox3D] %d points -> dims (%.3f, %.3f, %.3f)",
                     len(points), rect_w, rect_h, h_max - h_min)
        return cls(center, (rect_w, rect_h, h_max - h_min), np.vstack([bottom, top]),
                   rotation=rotation, header=copy.deepcopy(cloud.header))

    @classmethod
    def from_ros_message(cls, msg: BoundingBox, header=None):
        vertices = np.array([[p.x, p.y, p.z] for p in msg.vertices], dtype=np.float64).reshape(-1, 3)
        return cls((msg.center.x, msg.center.y, msg.center.z),
                   (msg.dimensions.x, msg.dimensions.y, msg.dimensions.z),
                   vertices,
                   rotation=_rotation_from_vertices(vertices),
                   header=header)

    def get_pose(self) -> PoseStamped:
        qx, qy, qz, qw = Rotation.from_matrix(self.rotation).as_quat()
        return PoseStamped(
            header=copy.deepcopy(self.header),
            pose=Pose(position=Point(*(float(c) for c in self.center)),
                      orientation=Quaternion(float(qx), float(qy), float(qz), float(qw))))

    def get_ros_message(self) -> BoundingBox:
        return BoundingBox(
            center=Point(*(float(c) for c in self.center)),
            dimensions=Vector3(*(float(d) for d in self.dimensions)),
            vertices=[Point(*(float(c) for c in vertex)) for vertex in self.vertices])

    def __repr__(self):
        return (f"BoundingBox3D(center={np.round(self.center, 3).tolist()}, "
                f"dimensions={np.round(self.dimensions, 3).tolist()})")
