import cv2
import numpy as np

FONT = cv2.FONT_HERSHEY_PLAIN


def _bgr(rgb):
    return tuple(int(c) for c in rgb)[::-1]


def _text_color(box_color):
    # dark text on bright banners, white text otherwise
    return (0, 0, 0) if sum(box_color) > 382 else (255, 255, 255)


def draw_labeled_boxes(image, boxes, thickness=2, font_scale=1.0, copy=True):
    """
    Draws every box rectangle in its color and, for labeled boxes, a filled
    banner with the label over the top-left corner. Boxes are drawn in list
    order, so later boxes cover earlier ones where they overlap.

    By default the drawing happens on a copy; copy=False draws into image
    itself and returns that same array.
    """
    canvas = image.copy() if copy else image

    for box in boxes:
        color = _bgr(box.color)
        top_left = (box.x, box.y)
        bottom_right = (box.x + box.width - 1, box.y + box.height - 1)
        cv2.rectangle(canvas, top_left, bottom_right, color, thickness)

        if not box.label:
            continue

        (text_w, text_h), baseline = cv2.getTextSize(box.label, FONT, font_scale, thickness)
        banner_top = box.y - text_h - baseline
        # box touches the top border: put the banner inside the box
        if banner_top < 0:
            banner_top = box.y
        cv2.rectangle(canvas, (box.x, banner_top), (box.x + text_w, banner_top + text_h + baseline),
                      color, cv2.FILLED)
        cv2.putText(canvas, box.label, (box.x, banner_top + text_h), FONT, font_scale,
                    _text_color(color), thickness)

    return canvas


class Visualizer:
    def __init__(self, config):
        self.thickness = config.get('thickness', 2)
        self.font_scale = config.get('font_scale', 1.0)
        self.vertex_color = _bgr(config.get('vertex_color', (255, 0, 0)))

    def draw(self, frame, boxes, box_vertices=None):
        """
        Annotated copy of frame: labeled boxes plus, optionally, the (rotated)
        4-vertex footprints returned by the crop pipeline.
        """
        vis_frame = draw_labeled_boxes(frame, boxes, self.thickness, self.font_scale)
        for vertices in box_vertices or []:
            polygon = np.round(np.asarray(vertices, dtype=np.float64)).astype(np.int32)
            cv2.polylines(vis_frame, [polygon], True, self.vertex_color, self.thickness)
        return vis_frame
