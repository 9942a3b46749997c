from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings
from loguru import logger

from photo_pipeline.config import StorageCredentials
from photo_pipeline.services.errors import StorageDeleteError, StorageReadError, StorageWriteError


class BlobStore:
    """Thin wrapper over ``BlobServiceClient`` that maps SDK failures onto pipeline errors."""

    def __init__(self, service_client: BlobServiceClient):
        self._service = service_client

    @classmethod
    def from_credentials(cls, credentials: StorageCredentials) -> "BlobStore":
        service_client = BlobServiceClient(
            account_url=credentials.account_url,
            credential={
                "account_name": credentials.account_name,
                "account_key": credentials.account_key.get_secret_value(),
            },
        )
        return cls(service_client)

    def read(self, container: str, blob_name: str) -> bytes | None:
        """Return the blob's bytes, or ``None`` when it does not exist."""
        blob_client = self._service.get_blob_client(container=container, blob=blob_name)
        try:
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            logger.debug("Blob not found container={} blob_name={}", container, blob_name)
            return None
        except AzureError as exc:
            logger.error("Blob read failed container={} blob_name={} error={}", container, blob_name, str(exc))
            raise StorageReadError(f"Failed to read {container}/{blob_name}: {exc}") from exc
        logger.debug("Blob read container={} blob_name={} size_bytes={}", container, blob_name, len(data))
        return data

    def write(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        metadata: dict[str, str],
        content_type: str | None = None,
    ) -> None:
        blob_client = self._service.get_blob_client(container=container, blob=blob_name)
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        try:
            blob_client.upload_blob(
                data,
                overwrite=True,
                metadata=metadata,
                content_settings=content_settings,
            )
        except AzureError as exc:
            logger.error("Blob write failed container={} blob_name={} error={}", container, blob_name, str(exc))
            raise StorageWriteError(f"Failed to write {container}/{blob_name}: {exc}") from exc
        logger.debug("Blob written container={} blob_name={} size_bytes={}", container, blob_name, len(data))

    def delete(self, container: str, blob_name: str) -> None:
        blob_client = self._service.get_blob_client(container=container, blob=blob_name)
        try:
            blob_client.delete_blob()
        except ResourceNotFoundError:
            # A concurrent duplicate delivery got there first.
            logger.warning("Blob already deleted container={} blob_name={}", container, blob_name)
        except AzureError as exc:
            logger.error("Blob delete failed container={} blob_name={} error={}", container, blob_name, str(exc))
            raise StorageDeleteError(f"Failed to delete {container}/{blob_name}: {exc}") from exc
