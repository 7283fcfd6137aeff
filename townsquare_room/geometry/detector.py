"""
Occupancy Detector Module
=========================

Stateless spatial queries over many positions / boxes at once.

Design:
- Pure functions (no state)
- Vectorised with numpy, same boundary rules as shapes.contains/overlaps
- Returns boolean masks, caller maps them back to participants/zones
"""

from typing import Sequence

import numpy as np

from townsquare_room.geometry.shapes import BoundingBox


class OccupancyDetector:
    """
    Stateless detector for applying box geometry to batches of positions.

    All methods are static (no instance state).
    """

    @staticmethod
    def contained_mask(box: BoundingBox, points: np.ndarray) -> np.ndarray:
        """
        Detect which points are strictly inside a box.

        Args:
            box: Bounding box geometry
            points: Nx2 array of (x, y) positions

        Returns:
            Boolean mask of shape (N,) where True = inside box

        Raises:
            ValueError: If points is not an Nx2 array
        """
        if len(points) == 0:
            return np.array([], dtype=bool)

        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"points must be Nx2 array, got shape {points.shape}")

        min_x, min_y, max_x, max_y = box.bounds
        xs = points[:, 0]
        ys = points[:, 1]

        return (min_x < xs) & (xs < max_x) & (min_y < ys) & (ys < max_y)

    @staticmethod
    def overlap_mask(box: BoundingBox, others: Sequence[BoundingBox]) -> np.ndarray:
        """
        Detect which of `others` share interior area with `box`.

        Returns:
            Boolean mask of shape (len(others),)
        """
        if len(others) == 0:
            return np.array([], dtype=bool)

        # columns: x, y, half_width, half_height
        table = np.array(
            [[o.x, o.y, o.half_width, o.half_height] for o in others],
            dtype=float,
        )

        return (
            (np.abs(table[:, 0] - box.x) < table[:, 2] + box.half_width)
            & (np.abs(table[:, 1] - box.y) < table[:, 3] + box.half_height)
        )

    @staticmethod
    def overlaps_any(box: BoundingBox, others: Sequence[BoundingBox]) -> bool:
        """True if `box` overlaps at least one of `others`."""
        return bool(OccupancyDetector.overlap_mask(box, others).any())
