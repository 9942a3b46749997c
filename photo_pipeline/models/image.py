from pydantic import BaseModel


class ImageMetadata(BaseModel):
    width: int
    height: int
    format: str
    byte_size: int
    mime_type: str | None = None


class IngestEvent(BaseModel):
    subject: str
    container_name: str
    storage_key: str
