"""
Serialization boundary: typed message dataclasses <-> CDR bytes.

Encoders and decoders are generated from the definitions in core.schemas with
mcap_ros2 (the same codec used to read ROS 2 MCAP recordings) and cached per
message type.
"""

import dataclasses
import logging
import typing
from functools import lru_cache

from mcap_ros2._dynamic import generate_dynamic, serialize_dynamic

from mas_perception.common.errors import DeserializationError
from mas_perception.core.schemas import full_definition

logger = logging.getLogger(__name__)


def schema_name(type_name):
    """'sensor_msgs/Image' -> 'sensor_msgs/msg/Image' (name stored in ROS 2 MCAP schemas)"""
    pkg, name = type_name.split("/")
    return f"{pkg}/msg/{name}"


def _lookup(functions, type_name):
    full_name = schema_name(type_name)
    if full_name in functions:
        return functions[full_name]
    return functions[type_name]


@lru_cache(maxsize=None)
def _encoder(type_name):
    return _lookup(serialize_dynamic(schema_name(type_name), full_definition(type_name)), type_name)


@lru_cache(maxsize=None)
def _decoder(type_name):
    return _lookup(generate_dynamic(schema_name(type_name), full_definition(type_name)), type_name)


def _get(obj, name):
    if isinstance(obj, dict):
        return obj[name]
    return getattr(obj, name)


def from_ros(cls, obj):
    """Rebuild dataclass cls from a decoded (dynamic) ROS message object."""
    hints = typing.get_type_hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        value = _get(obj, f.name)
        hint = hints[f.name]
        if dataclasses.is_dataclass(hint):
            value = from_ros(hint, value)
        elif typing.get_origin(hint) is list:
            item_type = typing.get_args(hint)[0]
            if dataclasses.is_dataclass(item_type):
                value = [from_ros(item_type, v) for v in value]
            else:
                value = [item_type(v) for v in value]
        elif hint is bytes:
            value = bytes(value)
        kwargs[f.name] = value
    return cls(**kwargs)


def encode_message(msg):
    """Serialize a message dataclass (see core.messages) to CDR bytes."""
    return bytes(_encoder(msg.ROS_TYPE)(dataclasses.asdict(msg)))


def decode_message(data, msg_type):
    """
    Deserialize CDR bytes into an instance of msg_type (a core.messages dataclass).
    Any codec failure surfaces as DeserializationError.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DeserializationError(
            f"expected serialized {msg_type.ROS_TYPE} as bytes, got {type(data).__name__}")
    try:
        decoded = _decoder(msg_type.ROS_TYPE)(bytes(data))
        return from_ros(msg_type, decoded)
    except Exception as e:
        logger.debug("[Codec] failed to decode %s: %s", msg_type.ROS_TYPE, e)
        raise DeserializationError(f"corrupt serialized {msg_type.ROS_TYPE}: {e}") from e
