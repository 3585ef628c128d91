"""Typed in-memory counterparts of the ROS 2 messages crossing the boundary."""

from dataclasses import dataclass, field
from typing import ClassVar, List


@dataclass
class Time:
    ROS_TYPE: ClassVar[str] = "builtin_interfaces/Time"
    sec: int = 0
    nanosec: int = 0


@dataclass
class Header:
    ROS_TYPE: ClassVar[str] = "std_msgs/Header"
    stamp: Time = field(default_factory=Time)
    frame_id: str = ""


@dataclass
class Image:
    ROS_TYPE: ClassVar[str] = "sensor_msgs/Image"
    header: Header = field(default_factory=Header)
    height: int = 0
    width: int = 0
    encoding: str = ""
    is_bigendian: int = 0
    step: int = 0
    data: bytes = b""


@dataclass
class RegionOfInterest:
    ROS_TYPE: ClassVar[str] = "sensor_msgs/RegionOfInterest"
    x_offset: int = 0
    y_offset: int = 0
    height: int = 0
    width: int = 0
    do_rectify: bool = False


@dataclass
class CameraInfo:
    ROS_TYPE: ClassVar[str] = "sensor_msgs/CameraInfo"
    header: Header = field(default_factory=Header)
    height: int = 0
    width: int = 0
    distortion_model: str = ""
    d: List[float] = field(default_factory=list)
    k: List[float] = field(default_factory=lambda: [0.0] * 9)
    r: List[float] = field(default_factory=lambda: [0.0] * 9)
    p: List[float] = field(default_factory=lambda: [0.0] * 12)
    binning_x: int = 0
    binning_y: int = 0
    roi: RegionOfInterest = field(default_factory=RegionOfInterest)


@dataclass
class PointField:
    ROS_TYPE: ClassVar[str] = "sensor_msgs/PointField"
    INT8: ClassVar[int] = 1
    UINT8: ClassVar[int] = 2
    INT16: ClassVar[int] = 3
    UINT16: ClassVar[int] = 4
    INT32: ClassVar[int] = 5
    UINT32: ClassVar[int] = 6
    FLOAT32: ClassVar[int] = 7
    FLOAT64: ClassVar[int] = 8
    name: str = ""
    offset: int = 0
    datatype: int = 0
    count: int = 1


@dataclass
class PointCloud2:
    ROS_TYPE: ClassVar[str] = "sensor_msgs/PointCloud2"
    header: Header = field(default_factory=Header)
    height: int = 0
    width: int = 0
    fields: List[PointField] = field(default_factory=list)
    is_bigendian: bool = False
    point_step: int = 0
    row_step: int = 0
    data: bytes = b""
    is_dense: bool = False


@dataclass
class Point:
    ROS_TYPE: ClassVar[str] = "geometry_msgs/Point"
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Vector3:
    ROS_TYPE: ClassVar[str] = "geometry_msgs/Vector3"
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Quaternion:
    ROS_TYPE: ClassVar[str] = "geometry_msgs/Quaternion"
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


@dataclass
class Pose:
    ROS_TYPE: ClassVar[str] = "geometry_msgs/Pose"
    position: Point = field(default_factory=Point)
    orientation: Quaternion = field(default_factory=Quaternion)


@dataclass
class PoseStamped:
    ROS_TYPE: ClassVar[str] = "geometry_msgs/PoseStamped"
    header: Header = field(default_factory=Header)
    pose: Pose = field(default_factory=Pose)


@dataclass
class BoundingBox:
    """mcr_perception_msgs/BoundingBox: 3D box with its 8 corner vertices."""
    ROS_TYPE: ClassVar[str] = "mcr_perception_msgs/BoundingBox"
    center: Point = field(default_factory=Point)
    dimensions: Vector3 = field(default_factory=Vector3)
    vertices: List[Point] = field(default_factory=list)


@dataclass
class BoundingBoxList:
    ROS_TYPE: ClassVar[str] = "mcr_perception_msgs/BoundingBoxList"
    bounding_boxes: List[BoundingBox] = field(default_factory=list)


@dataclass
class ImageList:
    ROS_TYPE: ClassVar[str] = "mcr_perception_msgs/ImageList"
    images: List[Image] = field(default_factory=list)


MESSAGE_TYPES = {cls.ROS_TYPE: cls for cls in (
    Time, Header, Image, RegionOfInterest, CameraInfo, PointField, PointCloud2, Point, Vector3,
    Quaternion, Pose, PoseStamped, BoundingBox, BoundingBoxList, ImageList)}
