"""
Helpers for sensor_msgs/PointCloud2 messages.

Point data is read in place through numpy structured dtypes built from the
message's PointField list (offsets, datatypes and point_step), with row_step
honored through explicit strides so padded rows never need to be repacked.
"""

import copy
import dataclasses
import logging

import numpy as np
import open3d as o3d

from mas_perception.common.errors import InvalidArgumentError, OutOfRangeError
from mas_perception.common.types import BoundingBox2D
from mas_perception.core.image_conversion import cv_to_image_msg
from mas_perception.core.messages import Image, PointCloud2, PointField
from mas_perception.perception.geometry import as_transform_matrix, fit_box_to_image

logger = logging.getLogger(__name__)

_FIELD_FORMATS = {
    PointField.INT8: 'i1',
    PointField.UINT8: 'u1',
    PointField.INT16: 'i2',
    PointField.UINT16: 'u2',
    PointField.INT32: 'i4',
    PointField.UINT32: 'u4',
    PointField.FLOAT32: 'f4',
    PointField.FLOAT64: 'f8',
}


def _field_map(cloud):
    return {f.name: f for f in cloud.fields}


def _point_dtype(cloud, names, overrides=None):
    """Structured dtype covering the requested fields, with itemsize == point_step."""
    fields = _field_map(cloud)
    byte_order = '>' if cloud.is_bigendian else '<'
    overrides = overrides or {}

    formats = []
    offsets = []
    for name in names:
        if name not in fields:
            raise InvalidArgumentError(f"point cloud has no '{name}' field")
        f = fields[name]
        if name in overrides:
            fmt = overrides[name]
        elif f.datatype in _FIELD_FORMATS:
            fmt = _FIELD_FORMATS[f.datatype]
        else:
            raise InvalidArgumentError(f"field '{name}' has unknown datatype {f.datatype}")
        fmt = byte_order + fmt
        formats.append((fmt, (f.count,)) if f.count > 1 else fmt)
        offsets.append(f.offset)

    try:
        return np.dtype({'names': list(names), 'formats': formats,
                         'offsets': offsets, 'itemsize': cloud.point_step})
    except ValueError as e:
        raise InvalidArgumentError(f"point fields do not fit in point_step {cloud.point_step}: {e}") from e


def _check_layout(cloud):
    if cloud.point_step <= 0:
        raise InvalidArgumentError("point cloud has a non-positive point_step")
    if cloud.row_step < cloud.width * cloud.point_step:
        raise InvalidArgumentError(
            f"row_step {cloud.row_step} is smaller than width * point_step "
            f"({cloud.width} * {cloud.point_step})")
    if len(cloud.data) < cloud.row_step * cloud.height:
        raise InvalidArgumentError(
            f"point cloud data too short: {len(cloud.data)} bytes for {cloud.height} rows of {cloud.row_step}")


def _structured_view(cloud, dtype, buffer=None):
    """(height, width) structured array over buffer (defaults to the message data, read-only)."""
    _check_layout(cloud)
    return np.ndarray(shape=(cloud.height, cloud.width), dtype=dtype,
                      buffer=cloud.data if buffer is None else buffer,
                      strides=(cloud.row_step, cloud.point_step))


def is_organized(cloud: PointCloud2) -> bool:
    return cloud.height > 1


def require_organized(cloud: PointCloud2):
    if not is_organized(cloud):
        raise InvalidArgumentError("Input point cloud is not organized!")


def _xyz_grid(cloud):
    points = _structured_view(cloud, _point_dtype(cloud, ('x', 'y', 'z')))
    return np.stack([points['x'], points['y'], points['z']], axis=-1).astype(np.float32)


def cloud_msg_to_xyz_array(cloud: PointCloud2, remove_nans=False) -> np.ndarray:
    """
    Coordinates as float32: (H, W, 3) for an organized cloud, (N, 3) otherwise
    or when remove_nans is set (non-finite points are then dropped).
    """
    xyz = _xyz_grid(cloud)
    if remove_nans:
        xyz = xyz.reshape(-1, 3)
        return xyz[np.all(np.isfinite(xyz), axis=1)]
    if not is_organized(cloud):
        return xyz.reshape(-1, 3)
    return xyz


def _color_field(cloud):
    fields = _field_map(cloud)
    for name in ('rgb', 'rgba'):
        if name in fields:
            return name
    raise InvalidArgumentError("point cloud has no 'rgb' or 'rgba' field")


def cloud_msg_to_cv_image(cloud: PointCloud2) -> np.ndarray:
    """BGR image (H, W, 3) from the packed color field of an organized cloud."""
    require_organized(cloud)
    name = _color_field(cloud)
    # packed colors are 0x00RRGGBB (or 0xAARRGGBB) whatever the declared datatype
    points = _structured_view(cloud, _point_dtype(cloud, (name,), overrides={name: 'u4'}))
    packed = points[name]
    blue = packed & 0xFF
    green = (packed >> 8) & 0xFF
    red = (packed >> 16) & 0xFF
    return np.dstack([blue, green, red]).astype(np.uint8)


def cloud_msg_to_image_msg(cloud: PointCloud2) -> Image:
    """sensor_msgs/Image (bgr8) carrying the cloud's colors and header."""
    return cv_to_image_msg(cloud_msg_to_cv_image(cloud), 'bgr8', header=copy.deepcopy(cloud.header))


def crop_organized_cloud_msg(cloud: PointCloud2, box: BoundingBox2D, offset=0) -> PointCloud2:
    """
    Crops the 2D grid of an organized cloud like an image. Fields, point layout,
    endianness and header are kept; only the extent shrinks.
    """
    require_organized(cloud)
    _check_layout(cloud)
    fitted = fit_box_to_image((cloud.width, cloud.height), box, offset)
    if fitted.width <= 0 or fitted.height <= 0:
        raise OutOfRangeError(
            f"crop region {fitted.to_rect()} is empty for cloud of size ({cloud.width}, {cloud.height})")

    step = cloud.point_step
    rows = np.frombuffer(cloud.data, dtype=np.uint8, count=cloud.row_step * cloud.height)
    rows = rows.reshape(cloud.height, cloud.row_step)
    region = rows[fitted.y:fitted.y + fitted.height, fitted.x * step:(fitted.x + fitted.width) * step]

    return dataclasses.replace(
        cloud,
        header=copy.deepcopy(cloud.header),
        fields=copy.deepcopy(cloud.fields),
        height=fitted.height,
        width=fitted.width,
        row_step=fitted.width * step,
        data=np.ascontiguousarray(region).tobytes())


def crop_cloud_msg_to_xyz(cloud: PointCloud2, box: BoundingBox2D, offset=0) -> np.ndarray:
    """(h, w, 3) float32 coordinates of the cropped region."""
    return _xyz_grid(crop_organized_cloud_msg(cloud, box, offset))


def transform_point_cloud(cloud: PointCloud2, matrix) -> PointCloud2:
    """
    Applies a 4x4 transform to every finite point (and rotates normals when the
    cloud has normal_x/normal_y/normal_z). Non-finite points are left untouched.
    The header is copied as is: updating frame_id is up to the caller.
    """
    T = as_transform_matrix(matrix)
    buffer = bytearray(cloud.data)
    points = _structured_view(cloud, _point_dtype(cloud, ('x', 'y', 'z')), buffer=buffer)

    xyz = np.stack([points['x'], points['y'], points['z']], axis=-1).astype(np.float64)
    finite = np.all(np.isfinite(xyz), axis=-1)

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(xyz[finite])
    pcd.transform(T)
    moved = np.asarray(pcd.points)
    for i, name in enumerate(('x', 'y', 'z')):
        points[name][finite] = moved[:, i]

    fields = _field_map(cloud)
    normal_names = ('normal_x', 'normal_y', 'normal_z')
    if all(n in fields for n in normal_names):
        normals_view = _structured_view(cloud, _point_dtype(cloud, normal_names), buffer=buffer)
        normals = np.stack([normals_view[n] for n in normal_names], axis=-1).astype(np.float64)
        valid = np.all(np.isfinite(normals), axis=-1)
        rotated = normals[valid] @ T[:3, :3].T
        for i, name in enumerate(normal_names):
            normals_view[name][valid] = rotated[:, i]

    logger.debug("[Cloud] transformed %d of %d points", int(finite.sum()), finite.size)
    return dataclasses.replace(cloud,
                               header=copy.deepcopy(cloud.header),
                               fields=copy.deepcopy(cloud.fields),
                               data=bytes(buffer))
