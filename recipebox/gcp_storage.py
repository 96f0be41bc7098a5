from __future__ import annotations

import logging
import os
from typing import Optional

from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore, storage

from .errors import StorageError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

_GCP_ERRORS = (gcloud_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class FirestoreKeyValueStore(KeyValueStore):
    """Key-value backend keeping one Firestore document per key.

    The serialised value lives in the document's ``value`` field.
    """

    def __init__(
        self,
        *,
        project: Optional[str] = None,
        collection_name: str = "recipes",
        client: Optional[firestore.Client] = None,
    ) -> None:
        self._project = project
        self._collection_name = collection_name

        self._firestore_client = client if client is not None else firestore.Client(project=project)
        self._collection = self._firestore_client.collection(collection_name)

    @classmethod
    def from_env(cls) -> "FirestoreKeyValueStore":
        """Build a storage instance from environment variables."""

        project = os.environ.get("GCP_PROJECT")
        collection_name = os.environ.get("RECIPES_COLLECTION", "recipes")
        return cls(project=project, collection_name=collection_name)

    def get(self, key: str) -> Optional[str]:
        try:
            snapshot = self._collection.document(key).get()
        except _GCP_ERRORS as exc:
            raise StorageError(f"Could not read '{key}' from Firestore: {exc}") from exc

        if not snapshot.exists:
            return None

        data = snapshot.to_dict() or {}
        value = data.get("value")
        if value is None:
            return None
        if not isinstance(value, str):
            raise StorageError(f"Firestore document '{key}' holds a non-text value.")
        return value

    def set(self, key: str, value: str) -> None:
        doc = {
            "value": value,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }
        try:
            self._collection.document(key).set(doc)
        except _GCP_ERRORS as exc:
            raise StorageError(f"Could not write '{key}' to Firestore: {exc}") from exc

        logger.debug("Stored '%s' in Firestore collection %s", key, self._collection_name)


class CloudStorageKeyValueStore(KeyValueStore):
    """Key-value backend keeping one JSON object per key in a Cloud Storage bucket."""

    def __init__(
        self,
        *,
        bucket_name: str,
        project: Optional[str] = None,
        prefix: str = "recipebox/",
        client: Optional[storage.Client] = None,
    ) -> None:
        self._project = project
        self._bucket_name = bucket_name
        self._prefix = prefix

        self._storage_client = client if client is not None else storage.Client(project=project)
        self._bucket = self._storage_client.bucket(bucket_name)

    @classmethod
    def from_env(cls) -> "CloudStorageKeyValueStore":
        """Build a storage instance from environment variables."""

        bucket_name = os.environ.get("GCS_BUCKET")
        if not bucket_name:
            raise RuntimeError("GCS_BUCKET must be set to use the Cloud Storage backend.")
        project = os.environ.get("GCP_PROJECT")
        prefix = os.environ.get("GCS_PREFIX", "recipebox/")
        return cls(bucket_name=bucket_name, project=project, prefix=prefix)

    def blob_name(self, key: str) -> str:
        return f"{self._prefix}{key}.json"

    def get(self, key: str) -> Optional[str]:
        blob = self._bucket.blob(self.blob_name(key))

        try:
            return blob.download_as_text(encoding="utf-8")
        except gcloud_exceptions.NotFound:
            return None
        except _GCP_ERRORS as exc:
            raise StorageError(f"Could not read '{key}' from bucket {self._bucket_name}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        blob = self._bucket.blob(self.blob_name(key))

        try:
            blob.upload_from_string(value, content_type="application/json")
        except _GCP_ERRORS as exc:
            raise StorageError(f"Could not write '{key}' to bucket {self._bucket_name}: {exc}") from exc

        logger.debug("Uploaded '%s' to gs://%s/%s", key, self._bucket_name, blob.name)


__all__ = ["CloudStorageKeyValueStore", "FirestoreKeyValueStore"]
