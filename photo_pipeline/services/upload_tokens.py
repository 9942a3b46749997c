from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from photo_pipeline.config import IssuerConfig
from photo_pipeline.models.upload import UploadGrant
from photo_pipeline.services.signing import sign_upload_url
from photo_pipeline.validators.upload import build_storage_key, parse_upload_request


def issue_upload_grant(payload: Any, config: IssuerConfig, now: datetime | None = None) -> UploadGrant:
    """Issue a write-only SAS URL for one new blob in the landing zone.

    Nothing is created in storage here; the client performs the upload itself.
    Raises ``InvalidRequest`` before any signing when the payload is unusable.
    """
    upload_request = parse_upload_request(payload)
    issued_at = now or datetime.now(timezone.utc)
    storage_key = build_storage_key(upload_request.filename, issued_at)
    expires_at = issued_at + timedelta(minutes=config.expiry_minutes)

    url = sign_upload_url(
        config.credentials,
        config.landing_zone_container,
        storage_key,
        expires_at,
    )
    logger.info(
        "Upload grant issued blob_name={} container={} content_type={} expires_at={}",
        storage_key,
        config.landing_zone_container,
        upload_request.content_type,
        expires_at.isoformat(),
    )
    return UploadGrant(
        url=url,
        storage_key=storage_key,
        container_name=config.landing_zone_container,
        expires_at=expires_at,
    )
