"""
Drone Routes Backend — Photo Matcher Unit Tests
=================================================

Exact-name matching, missing/pending computation and upload planning.
"""

from types import SimpleNamespace

from droneroutes.services.photo_matcher import (
    PhotoPayload,
    build_photo_map,
    missing_file_names,
    pending_file_names,
    plan_uploads,
    required_file_names,
)


def point(file_name, has_photo=False):
    return SimpleNamespace(file_name=file_name, has_photo=has_photo)


def photos(*names):
    return build_photo_map(PhotoPayload(name=n, content=n.encode()) for n in names)


class TestMatching:

    def test_every_point_matched(self):
        points = [point("A.tif"), point("B.tif")]
        assert missing_file_names(points, photos("A.tif", "B.tif")) == []

    def test_missing_names_listed_once_in_first_seen_order(self):
        points = [point("C.tif"), point("A.tif"), point("C.tif"), point("B.tif")]
        assert missing_file_names(points, photos("A.tif")) == ["C.tif", "B.tif"]

    def test_matching_is_case_sensitive(self):
        points = [point("IMG_0001.TIF")]
        assert missing_file_names(points, photos("IMG_0001.tif")) == ["IMG_0001.TIF"]

    def test_extra_photos_are_ignored(self):
        points = [point("A.tif")]
        plan = plan_uploads(points, photos("A.tif", "unrelated.tif"))
        assert list(plan) == ["A.tif"]

    def test_later_duplicate_upload_wins(self):
        photo_map = build_photo_map([
            PhotoPayload(name="A.tif", content=b"first"),
            PhotoPayload(name="A.tif", content=b"second"),
        ])
        assert photo_map["A.tif"].content == b"second"
        assert photo_map["A.tif"].size == 6

    def test_required_file_names_are_distinct(self):
        points = [point("A.tif"), point("A.tif"), point("B.tif")]
        assert required_file_names(points) == ["A.tif", "B.tif"]


class TestPlanUploads:

    def test_shared_file_name_is_one_upload_for_all_points(self):
        points = [point("A.tif"), point("B.tif"), point("A.tif")]
        plan = plan_uploads(points, photos("A.tif", "B.tif"))
        assert plan == {"A.tif": [0, 2], "B.tif": [1]}

    def test_skip_with_photo_leaves_out_photographed_points(self):
        points = [point("A.tif", has_photo=True), point("B.tif")]
        plan = plan_uploads(points, photos("A.tif", "B.tif"), skip_with_photo=True)
        assert plan == {"B.tif": [1]}

    def test_without_skip_photographed_points_are_planned(self):
        points = [point("A.tif", has_photo=True)]
        assert plan_uploads(points, photos("A.tif")) == {"A.tif": [0]}

    def test_no_photos_no_plan(self):
        assert plan_uploads([point("A.tif")], {}) == {}


def test_pending_names_only_cover_points_without_photo():
    points = [
        point("A.tif", has_photo=True),
        point("B.tif"),
        point("C.tif"),
        point("B.tif"),
    ]
    assert pending_file_names(points) == ["B.tif", "C.tif"]
