"""Shared pytest fixtures for Sketchy tests."""

import io
import random
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from sketchy.api.main import create_app
from sketchy.core.artifact_store import LocalArtifactStore
from sketchy.core.config import SketchyConfig
from sketchy.core.image_producer import CanvasImageProducer
from sketchy.core.metadata_index import InMemoryMetadataIndex
from sketchy.core.prompt_expander import IdentityPromptExpander
from sketchy.core.services import Services, build_services

ADMIN_SECRET = "test-admin-secret"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> SketchyConfig:
    """Create a local, mock-mode configuration rooted in a temp directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        SketchyConfig instance for testing
    """
    return SketchyConfig(
        gallery_dir=temp_dir / "images",
        admin_secret=ADMIN_SECRET,
        use_openai_api=False,
        storage_backend="local",
        mock_width=64,
        mock_height=64,
        thumbnail_size=32,
        _env_file=None,
    )


@pytest.fixture
def local_store(test_config: SketchyConfig) -> LocalArtifactStore:
    """Local artifact store writing into the test gallery directory."""
    return LocalArtifactStore(test_config.gallery_dir, test_config.static_url_prefix)


@pytest.fixture
def memory_index() -> InMemoryMetadataIndex:
    return InMemoryMetadataIndex()


@pytest.fixture
def canvas_producer() -> CanvasImageProducer:
    """Deterministic, small mock image producer."""
    return CanvasImageProducer(64, 64, rng=random.Random(42))


@pytest.fixture
def services(
    test_config: SketchyConfig,
    local_store: LocalArtifactStore,
    memory_index: InMemoryMetadataIndex,
    canvas_producer: CanvasImageProducer,
) -> Services:
    """Services wired for local storage and mock generation."""
    return build_services(
        test_config,
        store=local_store,
        index=memory_index,
        expander=IdentityPromptExpander(),
        producer=canvas_producer,
    )


@pytest.fixture
def test_client(test_config: SketchyConfig, services: Services) -> TestClient:
    """FastAPI TestClient for an app built on the test services."""
    return TestClient(create_app(test_config, services))


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": ADMIN_SECRET}


@pytest.fixture
def png_bytes() -> bytes:
    """A small 80x40 PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client.

    Listings come back in key order and honour ``MaxKeys`` the way S3 does,
    so callers that read a single page see only part of a larger bucket.
    Every upload is stamped one minute after the previous one.
    """

    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.list_calls = 0
        self._clock = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def put_object(self, Bucket, Key, Body, ContentType, ACL):
        self._clock += timedelta(minutes=1)
        self.objects[Key] = {"Key": Key, "LastModified": self._clock, "Size": len(Body)}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def list_objects_v2(self, Bucket, Prefix, MaxKeys=1000, ContinuationToken=None):
        self.list_calls += 1
        keys = sorted(k for k in self.objects if k.startswith(Prefix))
        start = int(ContinuationToken or 0)
        page = keys[start : start + MaxKeys]
        response = {
            "Contents": [dict(self.objects[k]) for k in page],
            "KeyCount": len(page),
            "IsTruncated": start + MaxKeys < len(keys),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + MaxKeys)
        return response

    def get_paginator(self, operation_name):
        assert operation_name == "list_objects_v2"
        return self

    def paginate(self, Bucket, Prefix, PaginationConfig=None):
        page_size = (PaginationConfig or {}).get("PageSize", 1000)
        token = None
        while True:
            page = self.list_objects_v2(Bucket, Prefix, MaxKeys=page_size, ContinuationToken=token)
            yield page
            if not page["IsTruncated"]:
                return
            token = page["NextContinuationToken"]


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()
