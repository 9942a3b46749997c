import re
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from photo_pipeline.models.upload import UploadTokenRequest
from photo_pipeline.services.errors import InvalidRequest

DISALLOWED_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def parse_upload_request(payload: Any) -> UploadTokenRequest:
    if isinstance(payload, UploadTokenRequest):
        return payload
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must include a valid filename string")
    try:
        return UploadTokenRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequest("Request body must include a valid filename string") from exc


def sanitize_filename(filename: str) -> str:
    # Also strips path separators, so a key can never climb out of its container.
    return DISALLOWED_FILENAME_CHARS.sub("_", filename)


def build_storage_key(filename: str, issued_at: datetime) -> str:
    epoch_millis = int(issued_at.timestamp()) * 1000 + issued_at.microsecond // 1000
    return f"{epoch_millis}-{sanitize_filename(filename)}"
