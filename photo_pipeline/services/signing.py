from datetime import datetime
from urllib.parse import quote

from azure.storage.blob import BlobSasPermissions, generate_blob_sas
from loguru import logger

from photo_pipeline.config import StorageCredentials
from photo_pipeline.services.errors import SigningError

# Write only: the grant must not allow read, list, add, create or delete.
UPLOAD_PERMISSION = BlobSasPermissions(write=True)


def sign_upload_url(
    credentials: StorageCredentials,
    container_name: str,
    blob_name: str,
    expires_at: datetime,
) -> str:
    try:
        sas_token = generate_blob_sas(
            account_name=credentials.account_name,
            container_name=container_name,
            blob_name=blob_name,
            account_key=credentials.account_key.get_secret_value(),
            permission=UPLOAD_PERMISSION,
            expiry=expires_at,
        )
    except Exception as exc:
        logger.error(
            "SAS signing failed container={} blob_name={} error={}",
            container_name,
            blob_name,
            str(exc),
        )
        raise SigningError(f"Could not sign upload URL: {exc}") from exc

    return f"{credentials.account_url}/{container_name}/{quote(blob_name)}?{sas_token}"
