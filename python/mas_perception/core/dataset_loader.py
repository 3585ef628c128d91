import logging
import os

from mcap.reader import make_reader
from mcap_ros2.decoder import DecoderFactory

from mas_perception.core.messages import BoundingBoxList, CameraInfo, Image
from mas_perception.core.serialization import from_ros

logger = logging.getLogger(__name__)


class DatasetLoader:
    """
    Streams detection batches out of a ROS 2 MCAP recording.

    Every bounding-box list message is paired with the latest image and camera
    info seen before it; box lists arriving before both are available are skipped.
    """

    def __init__(self, mcap_path, image_topic="/camera/image_raw",
                 camera_info_topic="/camera/camera_info",
                 bounding_box_topic="/mcr_perception/bounding_boxes"):
        if not os.path.exists(mcap_path):
            raise FileNotFoundError(f"MCAP file not found: {mcap_path}")

        self.mcap_path = mcap_path
        self.topic_types = {
            image_topic: Image,
            camera_info_topic: CameraInfo,
            bounding_box_topic: BoundingBoxList,
        }
        self.image_topic = image_topic
        self.camera_info_topic = camera_info_topic
        self.bounding_box_topic = bounding_box_topic

        self.stream = open(mcap_path, "rb")
        try:
            self.reader = make_reader(self.stream, decoder_factories=[DecoderFactory()])
            summary = self.reader.get_summary()
        except Exception:
            self.stream.close()
            raise

        if summary is not None:
            available_topics = [c.topic for c in summary.channels.values()]
            for topic in self.topic_types:
                if topic not in available_topics:
                    logger.warning("[Loader] Topic %s not found! Available: %s", topic, available_topics)

    def __iter__(self):
        """Yields (image, camera_info, box_list, log_time_sec) tuples of typed messages."""
        latest = {self.image_topic: None, self.camera_info_topic: None}
        skipped = 0

        for _, channel, message, ros_msg in self.reader.iter_decoded_messages(topics=list(self.topic_types)):
            msg = from_ros(self.topic_types[channel.topic], ros_msg)
            if channel.topic != self.bounding_box_topic:
                latest[channel.topic] = msg
                continue

            image, camera_info = latest[self.image_topic], latest[self.camera_info_topic]
            if image is None or camera_info is None:
                skipped += 1
                continue
            yield image, camera_info, msg, message.log_time * 1e-9

        if skipped:
            logger.warning("[Loader] %d box lists arrived before an image and camera info and were skipped",
                           skipped)

    def close(self):
        self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
