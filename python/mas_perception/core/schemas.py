"""
ROS 2 message definitions used at the serialization boundary.

Each entry is the plain .msg text of one type. full_definition() concatenates a
type with all of its dependencies in the same layout that ROS 2 bags store in
MCAP schemas ("MSG: pkg/Name" sections separated by a line of 80 '=').
"""

SEPARATOR = "=" * 80

MSG_DEFINITIONS = {
    "builtin_interfaces/Time": """\
int32 sec
uint32 nanosec
""",
    "std_msgs/Header": """\
builtin_interfaces/Time stamp
string frame_id
""",
    "sensor_msgs/Image": """\
std_msgs/Header header
uint32 height
uint32 width
string encoding
uint8 is_bigendian
uint32 step
uint8[] data
""",
    "sensor_msgs/RegionOfInterest": """\
uint32 x_offset
uint32 y_offset
uint32 height
uint32 width
bool do_rectify
""",
    "sensor_msgs/CameraInfo": """\
std_msgs/Header header
uint32 height
uint32 width
string distortion_model
float64[] d
float64[9] k
float64[9] r
float64[12] p
uint32 binning_x
uint32 binning_y
sensor_msgs/RegionOfInterest roi
""",
    "sensor_msgs/PointField": """\
string name
uint32 offset
uint8 datatype
uint32 count
""",
    "sensor_msgs/PointCloud2": """\
std_msgs/Header header
uint32 height
uint32 width
sensor_msgs/PointField[] fields
bool is_bigendian
uint32 point_step
uint32 row_step
uint8[] data
bool is_dense
""",
    "geometry_msgs/Point": """\
float64 x
float64 y
float64 z
""",
    "geometry_msgs/Vector3": """\
float64 x
float64 y
float64 z
""",
    "geometry_msgs/Quaternion": """\
float64 x
float64 y
float64 z
float64 w
""",
    "geometry_msgs/Pose": """\
geometry_msgs/Point position
geometry_msgs/Quaternion orientation
""",
    "geometry_msgs/PoseStamped": """\
std_msgs/Header header
geometry_msgs/Pose pose
""",
    "mcr_perception_msgs/BoundingBox": """\
geometry_msgs/Point center
geometry_msgs/Vector3 dimensions
geometry_msgs/Point[] vertices
""",
    "mcr_perception_msgs/BoundingBoxList": """\
mcr_perception_msgs/BoundingBox[] bounding_boxes
""",
    "mcr_perception_msgs/ImageList": """\
sensor_msgs/Image[] images
""",
}


def _dependencies(type_name):
    deps = []
    for line in MSG_DEFINITIONS[type_name].splitlines():
        field_type = line.split()[0].split("[")[0]
        if "/" in field_type:
            deps.append(field_type)
    return deps


def full_definition(type_name):
    """Concatenated definition of type_name followed by every nested type it uses."""
    if type_name not in MSG_DEFINITIONS:
        raise KeyError(f"unknown message type: {type_name}")

    ordered = []
    stack = list(reversed(_dependencies(type_name)))
    while stack:
        dep = stack.pop()
        if dep in ordered or dep == type_name:
            continue
        ordered.append(dep)
        stack.extend(reversed(_dependencies(dep)))

    sections = [MSG_DEFINITIONS[type_name]]
    for dep in ordered:
        sections.append(f"{SEPARATOR}\nMSG: {dep}\n{MSG_DEFINITIONS[dep]}")
    return "\n".join(sections)
