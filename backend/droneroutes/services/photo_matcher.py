"""
Drone Routes Backend — Photo Matcher
======================================

What:  Pairs flight points with uploaded photo files by file name.
How:   Exact string equality between a point's file_name and the uploaded
       file's original name. No case folding, no extension swapping
       ("IMG_0001.TIF" and "IMG_0001.tif" are different photos).

Everything here is pure: no I/O, no logging, no failure modes.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence


@dataclass(frozen=True)
class PhotoPayload:
    """An uploaded photo held in memory for the duration of one request."""
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


def build_photo_map(photos: Iterable[PhotoPayload]) -> Dict[str, PhotoPayload]:
    """name → payload. When two uploads share a name the later one wins."""
    return {photo.name: photo for photo in photos}


def required_file_names(points: Sequence) -> List[str]:
    """Distinct file names referenced by the points, first-seen order."""
    return list(dict.fromkeys(p.file_name for p in points if p.file_name))


def missing_file_names(points: Sequence, photo_map: Dict[str, PhotoPayload]) -> List[str]:
    """Required file names with no entry in the uploaded-file map."""
    return [name for name in required_file_names(points) if name not in photo_map]


def pending_file_names(points: Sequence) -> List[str]:
    """Distinct file names of points that still have no stored photo."""
    return list(dict.fromkeys(p.file_name for p in points if not p.has_photo))


def plan_uploads(
    points: Sequence,
    photo_map: Dict[str, PhotoPayload],
    skip_with_photo: bool = False,
) -> Dict[str, List[int]]:
    """
    Group the indices of matched points by file name.

    Args:
        points: Route points in flight-path order.
        photo_map: Uploaded files keyed by name.
        skip_with_photo: Leave out points that already have a photo
            (add-photos never re-uploads those).

    Returns:
        file name → indices of the points it belongs to. One upload per key.
    """
    plan: Dict[str, List[int]] = {}
    for index, point in enumerate(points):
        if skip_with_photo and point.has_photo:
            continue
        if point.file_name in photo_map:
            plan.setdefault(point.file_name, []).append(index)
    return plan
