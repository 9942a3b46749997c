from fastapi import Request

from photo_pipeline.config import IssuerConfig, ProcessorConfig, require_config
from photo_pipeline.services.errors import ConfigurationError
from photo_pipeline.services.storage import BlobStore


def get_issuer_config(request: Request) -> IssuerConfig:
    return require_config(getattr(request.app.state, "issuer_config", None))


def get_processor_config(request: Request) -> ProcessorConfig:
    return require_config(getattr(request.app.state, "processor_config", None))


def get_blob_store(request: Request) -> BlobStore | None:
    """The store built at startup, or ``None`` when the processor config is broken."""
    return getattr(request.app.state, "blob_store", None)


def require_blob_store(store: BlobStore | None) -> BlobStore:
    if store is None:
        raise ConfigurationError("Blob storage client not initialised")
    return store
