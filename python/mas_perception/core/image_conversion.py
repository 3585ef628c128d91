import re

import cv2
import numpy as np

from mas_perception.common.errors import InvalidArgumentError
from mas_perception.core.messages import Header, Image

_NAMED_ENCODINGS = {
    'bgr8': (np.uint8, 3), 'rgb8': (np.uint8, 3),
    'bgra8': (np.uint8, 4), 'rgba8': (np.uint8, 4),
    'mono8': (np.uint8, 1), 'mono16': (np.uint16, 1),
    'bgr16': (np.uint16, 3), 'rgb16': (np.uint16, 3),
}

_GENERIC_ENCODING = re.compile(r'^(8|16|32|64)(U|S|F)C([1-4])$')
_GENERIC_DTYPES = {
    ('8', 'U'): np.uint8, ('8', 'S'): np.int8,
    ('16', 'U'): np.uint16, ('16', 'S'): np.int16,
    ('32', 'S'): np.int32, ('32', 'F'): np.float32,
    ('64', 'F'): np.float64,
}

_COLOR_CONVERSIONS = {
    ('bgr8', 'rgb8'): cv2.COLOR_BGR2RGB,
    ('rgb8', 'bgr8'): cv2.COLOR_RGB2BGR,
    ('bgra8', 'bgr8'): cv2.COLOR_BGRA2BGR,
    ('rgba8', 'bgr8'): cv2.COLOR_RGBA2BGR,
    ('bgra8', 'rgb8'): cv2.COLOR_BGRA2RGB,
    ('rgba8', 'rgb8'): cv2.COLOR_RGBA2RGB,
    ('mono8', 'bgr8'): cv2.COLOR_GRAY2BGR,
    ('mono8', 'rgb8'): cv2.COLOR_GRAY2RGB,
    ('bgr8', 'mono8'): cv2.COLOR_BGR2GRAY,
    ('rgb8', 'mono8'): cv2.COLOR_RGB2GRAY,
    ('bgr8', 'bgra8'): cv2.COLOR_BGR2BGRA,
    ('rgb8', 'rgba8'): cv2.COLOR_RGB2RGBA,
}


def encoding_info(encoding):
    """Returns (numpy dtype, channel count) for a sensor_msgs/Image encoding string."""
    if encoding in _NAMED_ENCODINGS:
        dtype, channels = _NAMED_ENCODINGS[encoding]
        return np.dtype(dtype), channels
    match = _GENERIC_ENCODING.match(encoding)
    if match and (match.group(1), match.group(2)) in _GENERIC_DTYPES:
        return np.dtype(_GENERIC_DTYPES[(match.group(1), match.group(2))]), int(match.group(3))
    raise InvalidArgumentError(f"unsupported image encoding '{encoding}'")


def image_msg_to_cv(msg: Image, desired_encoding='passthrough') -> np.ndarray:
    """
    Decode a sensor_msgs/Image into an (H, W[, C]) array, honoring row padding
    (step) and byte order. The result never aliases the message buffer.
    """
    dtype, channels = encoding_info(msg.encoding)
    row_bytes = msg.width * channels * dtype.itemsize
    if msg.step < row_bytes or len(msg.data) < msg.step * msg.height:
        raise InvalidArgumentError(
            f"image data too short: {len(msg.data)} bytes for {msg.height} rows of step {msg.step}")

    rows = np.frombuffer(msg.data, dtype=np.uint8, count=msg.step * msg.height)
    rows = rows.reshape(msg.height, msg.step)[:, :row_bytes]
    src_dtype = dtype.newbyteorder('>' if msg.is_bigendian else '<') if dtype.itemsize > 1 else dtype
    image = np.ascontiguousarray(rows).view(src_dtype).astype(dtype)
    if channels > 1:
        image = image.reshape(msg.height, msg.width, channels)
    else:
        image = image.reshape(msg.height, msg.width)

    if desired_encoding in ('passthrough', msg.encoding):
        return image
    code = _COLOR_CONVERSIONS.get((msg.encoding, desired_encoding))
    if code is None:
        raise InvalidArgumentError(f"cannot convert image from '{msg.encoding}' to '{desired_encoding}'")
    return cv2.cvtColor(image, code)


def cv_to_image_msg(image: np.ndarray, encoding='bgr8', header: Header = None) -> Image:
    """Pack an (H, W[, C]) array into a little-endian, unpadded sensor_msgs/Image."""
    dtype, channels = encoding_info(encoding)
    image = np.asarray(image)
    actual_channels = 1 if image.ndim == 2 else image.shape[2]
    if image.ndim not in (2, 3) or actual_channels != channels:
        raise InvalidArgumentError(
            f"array of shape {image.shape} does not match encoding '{encoding}' ({channels} channels)")
    if image.dtype != dtype:
        raise InvalidArgumentError(f"array dtype {image.dtype} does not match encoding '{encoding}' ({dtype})")

    data = np.ascontiguousarray(image.astype(dtype.newbyteorder('<'), copy=False))
    height, width = image.shape[:2]
    return Image(header=header if header is not None else Header(),
                 height=height,
                 width=width,
                 encoding=encoding,
                 is_bigendian=0,
                 step=width * channels * dtype.itemsize,
                 data=data.tobytes())
