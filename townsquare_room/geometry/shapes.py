"""
Geometric Shapes Module
========================

Pure geometric representations - NO state, NO side effects.

Design:
- Immutable bounding box (frozen dataclass)
- Box is centred at (x, y); height and width are full extents
- Containment and overlap use different boundary rules:
    contains(): a point on any edge is outside
    overlaps(): boxes that only share an edge or corner do not overlap
"""

from dataclasses import dataclass, asdict
from typing import Dict, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Immutable axis-aligned rectangle centred at (x, y).

    Attributes:
        x: Centre x-coordinate
        y: Centre y-coordinate
        height: Full height of the box
        width: Full width of the box

    Invariants:
        - height >= 0
        - width >= 0

    Example:
        >>> box = BoundingBox(x=100, y=100, height=10, width=10)
        >>> box.bounds
        (95.0, 95.0, 105.0, 105.0)
    """

    x: float
    y: float
    height: float
    width: float

    def __post_init__(self):
        """Validate extents."""
        if self.height < 0:
            raise ValueError(f"BoundingBox height must be >= 0, got {self.height}")
        if self.width < 0:
            raise ValueError(f"BoundingBox width must be >= 0, got {self.width}")

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_height(self) -> float:
        return self.height / 2

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) edges of the box."""
        return (
            self.x - self.half_width,
            self.y - self.half_height,
            self.x + self.half_width,
            self.y + self.half_height,
        )

    def contains_point(self, x: float, y: float) -> bool:
        """Strict containment: points on the boundary are outside."""
        return contains(self, x, y)

    def overlaps(self, other: "BoundingBox") -> bool:
        """Interior intersection test against another box."""
        return overlaps(self, other)

    def to_dict(self) -> Dict[str, float]:
        """Serialize to JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "BoundingBox":
        """
        Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                height=float(data["height"]),
                width=float(data["width"]),
            )
        except KeyError as e:
            raise ValueError(f"Missing required BoundingBox field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid BoundingBox data: {e}")


def contains(box: BoundingBox, x: float, y: float) -> bool:
    """
    Check if a point lies strictly inside a box.

    A point exactly on an edge (or corner) is NOT contained.

    Args:
        box: Bounding box
        x: Point x-coordinate
        y: Point y-coordinate

    Returns:
        True if the point is in the open interior of the box
    """
    min_x, min_y, max_x, max_y = box.bounds
    return min_x < x < max_x and min_y < y < max_y


def overlaps(a: BoundingBox, b: BoundingBox) -> bool:
    """
    Check if two boxes share interior area (separating-axis test).

    Boxes that only touch along an edge or at a corner do NOT overlap.
    The test is symmetric: overlaps(a, b) == overlaps(b, a).
    """
    return (
        abs(a.x - b.x) < a.half_width + b.half_width
        and abs(a.y - b.y) < a.half_height + b.half_height
    )
