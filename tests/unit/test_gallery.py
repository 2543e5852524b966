"""Unit tests for sketchy.core.gallery — the read-side join."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from sketchy.core.artifact_store import S3ArtifactStore, image_name, new_token, thumbnail_name
from sketchy.core.gallery import Gallery, newest_first, primary_artifacts
from sketchy.core.records import Artifact, GenerationRecord

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)
CDN = "https://cdn.example.com/images/"


def _artifact(name: str, minutes: int) -> Artifact:
    return Artifact(name=name, url=f"{CDN}{name}", uploaded_at=BASE + timedelta(minutes=minutes))


def _record(name: str, prompt: str, minutes: int) -> GenerationRecord:
    return GenerationRecord(
        original_prompt=prompt,
        generated_prompt=prompt,
        image_url=f"{CDN}{name}",
        thumbnail_url=f"{CDN}{name.replace('.png', '_thumb.jpg')}",
        created_at=BASE + timedelta(minutes=minutes),
    )


class TestOrdering:
    def test_primary_artifacts_drop_thumbnails(self):
        artifacts = [_artifact("a.png", 0), _artifact("a_thumb.jpg", 0)]
        assert [a.name for a in primary_artifacts(artifacts)] == ["a.png"]

    def test_newest_first(self):
        artifacts = [_artifact("a.png", 1), _artifact("b.png", 3), _artifact("c.png", 2)]
        assert [a.name for a in newest_first(artifacts)] == ["b.png", "c.png", "a.png"]

    def test_ties_prefer_later_listing(self):
        artifacts = [_artifact("a.png", 0), _artifact("b.png", 0)]
        assert [a.name for a in newest_first(artifacts)] == ["b.png", "a.png"]


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock()
    client.list_objects_v2.return_value = {
        "Contents": [
            {"Key": f"images/{name}", "LastModified": BASE + timedelta(minutes=m), "Size": 1}
            for name, m in [
                ("a.png", 1),
                ("a_thumb.jpg", 1),
                ("b.png", 2),
                ("b_thumb.jpg", 2),
                ("c.png", 3),
                ("c_thumb.jpg", 3),
            ]
        ]
    }
    return client


@pytest.fixture
def remote_gallery(s3_client, memory_index) -> Gallery:
    store = S3ArtifactStore(s3_client, "bucket", "https://cdn.example.com")
    return Gallery(store, memory_index, max_items=2)


class TestGalleryView:
    def test_joins_and_orders(self, remote_gallery, memory_index):
        for name, prompt, m in [("a.png", "A", 1), ("b.png", "B", 2), ("c.png", "C", 3)]:
            memory_index.put(_record(name, prompt, m))

        view = remote_gallery.view(limit=10)

        assert view.total == 3
        assert [item.original_prompt for item in view.items] == ["C", "B"]
        assert view.items[0].thumbnail_url == f"{CDN}c_thumb.jpg"

    def test_truncates_before_metadata_lookup(self, remote_gallery, memory_index):
        memory_index.get_many = MagicMock(return_value={})
        remote_gallery.view()
        urls = list(memory_index.get_many.call_args.args[0])
        assert urls == [f"{CDN}c.png", f"{CDN}b.png"]

    def test_offset(self, remote_gallery, memory_index):
        memory_index.put(_record("a.png", "A", 1))
        view = remote_gallery.view(offset=2)
        assert [item.original_prompt for item in view.items] == ["A"]

    def test_missing_metadata_degrades(self, remote_gallery, memory_index):
        memory_index.put(_record("c.png", "C", 3))

        items = remote_gallery.view().items

        assert items[0].has_metadata
        degraded = items[1]
        assert degraded.image_url == f"{CDN}b.png"
        assert degraded.created_at == BASE + timedelta(minutes=2)
        assert degraded.original_prompt == ""
        assert degraded.generated_prompt == ""
        assert degraded.thumbnail_url == ""
        assert not degraded.has_metadata

    def test_reads_are_repeatable(self, remote_gallery, memory_index):
        memory_index.put(_record("b.png", "B", 2))
        assert remote_gallery.view().to_json() == remote_gallery.view().to_json()

    def test_to_json_shape(self, remote_gallery):
        data = remote_gallery.view().to_json()
        assert set(data) == {"galleryItems", "totalItems", "returnedItems"}
        assert data["returnedItems"] == 2
        assert set(data["galleryItems"][0]) == {
            "imageUrl",
            "thumbnailUrl",
            "originalPrompt",
            "generatedPrompt",
            "createdAt",
        }


class TestRemoteRecentPage:
    def test_single_page_holds_newest_generations(self, fake_s3, memory_index):
        store = S3ArtifactStore(fake_s3, "bucket", "https://cdn.example.com", page_size=4)
        urls = []
        for minutes in range(6):
            name = image_name(new_token(BASE + timedelta(minutes=minutes)))
            urls.append(store.save(name, b"img", "image/png"))
            store.save(thumbnail_name(name), b"t", "image/jpeg")

        view = Gallery(store, memory_index, max_items=20).view()

        assert fake_s3.list_calls == 1
        assert [item.image_url for item in view.items] == [urls[5], urls[4]]
        assert view.total == 2
