"""
Geometry Layer
==============

Bounded Context: Pure geometric shapes and spatial queries.

Responsibilities:
- Bounding box representation (immutable)
- Point-in-box tests (boundary excluded)
- Box overlap tests (edge contact allowed)
- NO state, NO membership bookkeeping
"""

from townsquare_room.geometry.shapes import BoundingBox, contains, overlaps
from townsquare_room.geometry.detector import OccupancyDetector

__all__ = [
    "BoundingBox",
    "contains",
    "overlaps",
    "OccupancyDetector",
]
