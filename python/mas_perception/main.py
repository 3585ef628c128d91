import argparse
import logging
import os

import cv2
import numpy as np
import yaml

from mas_perception.common.types import BoundingBox2D
from mas_perception.core.dataset_loader import DatasetLoader
from mas_perception.core.image_conversion import image_msg_to_cv
from mas_perception.core.visualizer import Visualizer
from mas_perception.perception.pipeline import get_crops_and_bounding_boxes

logger = logging.getLogger("mas_perception")


def load_config(path):
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Crop detected objects out of a ROS 2 MCAP recording")
    parser.add_argument("--config", default="config/perception.yaml", help="YAML configuration file")
    parser.add_argument("--mcap", required=True, help="recording with image, camera info and box list topics")
    parser.add_argument("--output", default=None, help="output directory (overrides output.directory)")
    parser.add_argument("--draw", action="store_true", help="also write annotated frames")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')

    cfg = load_config(args.config)
    pipeline_cfg = cfg.get('pipeline', {})
    vis_cfg = cfg.get('visualization', {})
    dataset_cfg = cfg.get('dataset', {})
    output_dir = args.output or cfg.get('output', {}).get('directory', 'crops')
    os.makedirs(output_dir, exist_ok=True)

    offset = pipeline_cfg.get('crop_offset', 0)
    box_color = tuple(vis_cfg.get('color', (0, 255, 0)))
    viz = Visualizer(vis_cfg)

    loader = DatasetLoader(
        args.mcap,
        image_topic=dataset_cfg.get('image_topic', '/camera/image_raw'),
        camera_info_topic=dataset_cfg.get('camera_info_topic', '/camera/camera_info'),
        bounding_box_topic=dataset_cfg.get('bounding_box_topic', '/mcr_perception/bounding_boxes'),
    )

    logger.info("[Main] Reading %s, writing crops to %s", args.mcap, output_dir)
    batch_count = 0
    crop_count = 0
    with loader:
        for batch_idx, (image_msg, camera_info, box_list, stamp) in enumerate(loader):
            image_list, box_vertices = get_crops_and_bounding_boxes(image_msg, camera_info, box_list, offset)

            for obj_idx, crop_msg in enumerate(image_list.images):
                path = os.path.join(output_dir, f"batch{batch_idx:05d}_obj{obj_idx:02d}.png")
                cv2.imwrite(path, image_msg_to_cv(crop_msg))
            crop_count += len(image_list.images)
            batch_count += 1

            if args.draw:
                frame = image_msg_to_cv(image_msg, 'bgr8')
                boxes = [BoundingBox2D(f"obj_{i}", box_color, cv2.boundingRect(
                    np.asarray(vertices, dtype=np.float32))) for i, vertices in enumerate(box_vertices)]
                cv2.imwrite(os.path.join(output_dir, f"batch{batch_idx:05d}_annotated.png"),
                            viz.draw(frame, boxes, box_vertices))

            logger.debug("[Main] t=%.3f: %d crops", stamp, len(image_list.images))

    logger.info("[Main] Done: %d batches, %d crops", batch_count, crop_count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
