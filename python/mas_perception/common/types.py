from mas_perception.common.errors import InvalidArgumentError


def _truncated_ints(values, size, what):
    try:
        count = len(values)
    except TypeError:
        count = -1
    if count != size:
        raise InvalidArgumentError(f"{what} is not a tuple containing {size} numerics")
    # int() truncates toward zero, 1.9 -> 1 and -1.9 -> -1
    return tuple(int(float(v)) for v in values)


class BoundingBox2D:
    """
    Axis-aligned box in pixel space with a text label and a display color.
    x, y is the top-left corner; geometry may lie partly (or fully) outside
    the image until it is fitted with fit_box_to_image.
    """

    def __init__(self, label='', color=(0, 0, 0), box=(0, 0, 0, 0)):
        self.label = str(label)
        # color is (R, G, B); drawing converts to OpenCV channel order
        self.color = _truncated_ints(color, 3, "color")
        self.x, self.y, self.width, self.height = _truncated_ints(box, 4, "box geometry")

    def update_box(self, x, y, width, height):
        """Replace the geometry in one step (used after fitting)."""
        self.x, self.y, self.width, self.height = _truncated_ints(
            (x, y, width, height), 4, "box geometry")

    def to_rect(self):
        return self.x, self.y, self.width, self.height

    def vertices(self):
        """Corners clockwise from top-left: TL -> TR -> BR -> BL"""
        x2 = self.x + self.width
        y2 = self.y + self.height
        return [[float(self.x), float(self.y)], [float(x2), float(self.y)],
                [float(x2), float(y2)], [float(self.x), float(y2)]]

    def copy(self):
        return BoundingBox2D(self.label, self.color, self.to_rect())

    def __eq__(self, other):
        if not isinstance(other, BoundingBox2D):
            return NotImplemented
        return (self.label, self.color, self.to_rect()) == (other.label, other.color, other.to_rect())

    def __repr__(self):
        return (f"BoundingBox2D(label='{self.label}', "
                f"box=({self.x},{self.y},{self.width},{self.height}), color={self.color})")
