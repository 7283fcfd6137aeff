"""
Test Room Geometry
==================

Containment and overlap rules for conversation zone boxes.

Usage:
    pytest test_geometry.py
"""

import numpy as np
import pytest

from townsquare_room.geometry import BoundingBox, OccupancyDetector, contains, overlaps


def test_box_rejects_negative_dimensions():
    with pytest.raises(ValueError):
        BoundingBox(x=0, y=0, height=-1, width=10)

    with pytest.raises(ValueError):
        BoundingBox(x=0, y=0, height=10, width=-1)


def test_box_bounds_are_centred():
    box = BoundingBox(x=10, y=20, height=4, width=6)
    assert box.bounds == (7, 18, 13, 22)


def test_box_from_dict_validates():
    box = BoundingBox.from_dict({"x": "1", "y": 2, "height": 3, "width": 4})
    assert box == BoundingBox(x=1, y=2, height=3, width=4)
    assert box.to_dict() == {"x": 1.0, "y": 2.0, "height": 3.0, "width": 4.0}

    with pytest.raises(ValueError):
        BoundingBox.from_dict({"x": 1, "y": 2, "height": 3})

    with pytest.raises(ValueError):
        BoundingBox.from_dict({"x": "left", "y": 2, "height": 3, "width": 4})


def test_contains_interior_point():
    assert contains(BoundingBox(x=54, y=54, height=10, width=10), 50, 50)


def test_contains_excludes_boundary():
    # (50, 50) sits on the bottom edge of the first box, the left edge of the second
    assert not contains(BoundingBox(x=50, y=55, height=10, width=10), 50, 50)
    assert not contains(BoundingBox(x=60, y=52, height=20, width=20), 50, 50)

    # corner
    assert not contains(BoundingBox(x=55, y=55, height=10, width=10), 50, 50)


def test_contains_point_method_matches_function():
    box = BoundingBox(x=10, y=10, height=10, width=10)
    for x, y in [(10, 10), (5, 10), (14.9, 14.9), (15, 15), (100, 100)]:
        assert box.contains_point(x, y) == contains(box, x, y)


def test_overlap_rejected():
    existing = BoundingBox(x=100, y=100, height=10, width=10)
    assert overlaps(existing, BoundingBox(x=95, y=95, height=20, width=20))
    assert overlaps(existing, BoundingBox(x=90, y=90, height=20, width=20))


def test_edge_adjacency_is_not_overlap():
    existing = BoundingBox(x=100, y=100, height=10, width=10)
    assert not overlaps(existing, BoundingBox(x=100, y=90, height=10, width=10))
    assert not overlaps(existing, BoundingBox(x=110, y=100, height=10, width=10))


def test_corner_contact_is_not_overlap():
    existing = BoundingBox(x=100, y=100, height=10, width=10)
    assert not overlaps(existing, BoundingBox(x=90, y=90, height=10, width=10))


def test_overlap_is_symmetric():
    boxes = [
        BoundingBox(x=100, y=100, height=10, width=10),
        BoundingBox(x=95, y=95, height=20, width=20),
        BoundingBox(x=100, y=90, height=10, width=10),
        BoundingBox(x=90, y=90, height=10, width=10),
        BoundingBox(x=0, y=0, height=1, width=1),
        BoundingBox(x=100, y=100, height=2, width=2),
    ]
    for a in boxes:
        for b in boxes:
            assert overlaps(a, b) == overlaps(b, a)


def test_nested_box_overlaps():
    outer = BoundingBox(x=0, y=0, height=100, width=100)
    inner = BoundingBox(x=10, y=10, height=2, width=2)
    assert overlaps(outer, inner)
    assert inner.overlaps(outer)


def test_contained_mask_matches_contains():
    box = BoundingBox(x=54, y=54, height=10, width=10)
    points = np.array([[50, 50], [49, 54], [58.9, 58.9], [0, 0], [54, 59]], dtype=float)

    mask = OccupancyDetector.contained_mask(box, points)

    assert mask.tolist() == [contains(box, x, y) for x, y in points]
    assert mask.tolist() == [True, False, True, False, False]


def test_contained_mask_empty_and_bad_shape():
    box = BoundingBox(x=0, y=0, height=10, width=10)

    empty = OccupancyDetector.contained_mask(box, np.empty((0, 2)))
    assert empty.shape == (0,)
    assert empty.dtype == bool

    with pytest.raises(ValueError):
        OccupancyDetector.contained_mask(box, np.array([[1, 2, 3]]))


def test_overlap_mask_matches_pairwise_overlaps():
    box = BoundingBox(x=100, y=100, height=10, width=10)
    others = [
        BoundingBox(x=95, y=95, height=20, width=20),
        BoundingBox(x=100, y=90, height=10, width=10),
        BoundingBox(x=90, y=90, height=10, width=10),
    ]

    mask = OccupancyDetector.overlap_mask(box, others)

    assert mask.tolist() == [overlaps(box, o) for o in others]
    assert OccupancyDetector.overlaps_any(box, others)
    assert not OccupancyDetector.overlaps_any(box, others[1:])
    assert not OccupancyDetector.overlaps_any(box, [])
