"""Metadata indexes: generation records keyed by image URL.

The image URL itself is the key, which ties a record's lifetime to its
artifact.  The two are still written and deleted as separate operations.

:class:`InMemoryMetadataIndex`
    Insertion-ordered mapping held by the process (development).
:class:`DynamoMetadataIndex`
    DynamoDB table with partition key ``image_url`` (production).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError

from sketchy.core.errors import StorageError
from sketchy.core.records import GenerationRecord

logger = logging.getLogger(__name__)

# DynamoDB BatchGetItem accepts at most 100 keys per request.
_BATCH_GET_LIMIT = 100


class MetadataIndex(ABC):
    """Abstract key-value index of :class:`GenerationRecord` by image URL."""

    @abstractmethod
    def put(self, record: GenerationRecord) -> None:
        """Store *record* under ``record.image_url``."""

    @abstractmethod
    def get(self, image_url: str) -> GenerationRecord | None:
        """Return the record for *image_url*, or None when absent."""

    def get_many(self, image_urls: Iterable[str]) -> dict[str, GenerationRecord]:
        """Return the records found for *image_urls*, keyed by URL.

        Missing keys are simply absent from the result.
        """
        found = {}
        for url in image_urls:
            record = self.get(url)
            if record is not None:
                found[url] = record
        return found

    @abstractmethod
    def delete(self, image_url: str) -> bool:
        """Delete the record for *image_url*; return whether it existed."""

    @abstractmethod
    def clear(self) -> int:
        """Delete every record and return how many were removed."""


class InMemoryMetadataIndex(MetadataIndex):
    """Process-local index backed by an insertion-ordered dict."""

    def __init__(self):
        self._records: dict[str, GenerationRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def put(self, record: GenerationRecord) -> None:
        self._records[record.image_url] = record

    def get(self, image_url: str) -> GenerationRecord | None:
        return self._records.get(image_url)

    def delete(self, image_url: str) -> bool:
        return self._records.pop(image_url, None) is not None

    def clear(self) -> int:
        count = len(self._records)
        self._records = {}
        return count


def _record_to_item(record: GenerationRecord) -> dict:
    return {
        "image_url": record.image_url,
        "thumbnail_url": record.thumbnail_url,
        "original_prompt": record.original_prompt,
        "generated_prompt": record.generated_prompt,
        "created_at": record.created_at.isoformat(),
    }


def _item_to_record(item: dict) -> GenerationRecord:
    return GenerationRecord(
        image_url=item["image_url"],
        thumbnail_url=item.get("thumbnail_url") or item["image_url"],
        original_prompt=item["original_prompt"],
        generated_prompt=item.get("generated_prompt", item["original_prompt"]),
        created_at=datetime.fromisoformat(item["created_at"]),
    )


class DynamoMetadataIndex(MetadataIndex):
    """Index backed by a DynamoDB table.

    The table must use ``image_url`` (string) as its partition key.

    Args:
        table: A boto3 DynamoDB ``Table`` resource.
    """

    key_name = "image_url"

    def __init__(self, table):
        self.table = table

    def put(self, record: GenerationRecord) -> None:
        try:
            self.table.put_item(Item=_record_to_item(record))
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to save image metadata", str(e)) from e

    def get(self, image_url: str) -> GenerationRecord | None:
        try:
            response = self.table.get_item(Key={self.key_name: image_url})
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to read image metadata", str(e)) from e

        item = response.get("Item")
        return _item_to_record(item) if item else None

    def get_many(self, image_urls: Iterable[str]) -> dict[str, GenerationRecord]:
        urls = list(dict.fromkeys(image_urls))
        found: dict[str, GenerationRecord] = {}
        client = self.table.meta.client

        for start in range(0, len(urls), _BATCH_GET_LIMIT):
            keys = [{self.key_name: url} for url in urls[start : start + _BATCH_GET_LIMIT]]
            try:
                response = client.batch_get_item(
                    RequestItems={self.table.name: {"Keys": keys}}
                )
            except (BotoCoreError, ClientError) as e:
                raise StorageError("Failed to read image metadata", str(e)) from e

            for item in response.get("Responses", {}).get(self.table.name, []):
                record = _item_to_record(item)
                found[record.image_url] = record

            unprocessed = response.get("UnprocessedKeys", {}).get(self.table.name)
            if unprocessed:
                logger.warning(
                    f"{len(unprocessed.get('Keys', []))} metadata keys were not processed; "
                    "treating them as missing"
                )

        return found

    def delete(self, image_url: str) -> bool:
        try:
            response = self.table.delete_item(
                Key={self.key_name: image_url},
                ReturnValues="ALL_OLD",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to delete image metadata", str(e)) from e
        return bool(response.get("Attributes"))

    def clear(self) -> int:
        removed = 0
        scan_kwargs = {"ProjectionExpression": self.key_name}
        try:
            with self.table.batch_writer() as batch:
                while True:
                    response = self.table.scan(**scan_kwargs)
                    for item in response.get("Items", []):
                        batch.delete_item(Key={self.key_name: item[self.key_name]})
                        removed += 1
                    last_key = response.get("LastEvaluatedKey")
                    if not last_key:
                        break
                    scan_kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise StorageError("Failed to clear image metadata", str(e)) from e
        return removed
