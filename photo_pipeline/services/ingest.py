from datetime import datetime, timezone

from loguru import logger

from photo_pipeline.config import ProcessorConfig
from photo_pipeline.models.image import ImageMetadata, IngestEvent
from photo_pipeline.services.errors import MalformedTrigger
from photo_pipeline.services.imaging import THUMBNAIL_CONTENT_TYPE, generate_thumbnail, read_image_metadata
from photo_pipeline.services.storage import BlobStore

CONTAINERS_MARKER = "/containers/"
BLOBS_MARKER = "/blobs/"


def resolve_ingest_event(subject: str | None) -> IngestEvent:
    """Parse ``/blobServices/default/containers/<container>/blobs/<path>``.

    The storage key is the final segment of the blob path.
    """
    if not subject or CONTAINERS_MARKER not in subject or BLOBS_MARKER not in subject:
        logger.error("Blob trigger path not found subject={!r}", subject)
        raise MalformedTrigger(f"Blob trigger path not found in subject {subject!r}")

    container_part, _, blob_path = subject.partition(BLOBS_MARKER)
    container_name = container_part.rsplit(CONTAINERS_MARKER, 1)[-1].strip("/")
    storage_key = blob_path.rsplit("/", 1)[-1]
    if not container_name or not storage_key:
        logger.error("Blob trigger path incomplete subject={!r}", subject)
        raise MalformedTrigger(f"Cannot resolve a storage key from subject {subject!r}")

    return IngestEvent(subject=subject, container_name=container_name, storage_key=storage_key)


def process_ingest_event(
    storage_key: str,
    object_bytes: bytes,
    config: ProcessorConfig,
    store: BlobStore,
    now: datetime | None = None,
) -> ImageMetadata:
    """Move one landing-zone blob into the photos and thumbnails containers.

    The landing-zone blob is deleted only after both writes succeed. Any error
    propagates with the source left in place so the delivery can be retried;
    rerunning overwrites the permanent copies with identical bytes.
    """
    logger.info("Processing image blob_name={} size_bytes={}", storage_key, len(object_bytes))
    try:
        metadata = read_image_metadata(object_bytes)
        logger.info(
            "Image metadata blob_name={} width={} height={} format={}",
            storage_key,
            metadata.width,
            metadata.height,
            metadata.format,
        )

        logger.info("Generating thumbnail blob_name={} width={}", storage_key, config.thumbnail_width)
        thumbnail_bytes = generate_thumbnail(object_bytes, config.thumbnail_width, config.thumbnail_quality)

        uploaded_at = now or datetime.now(timezone.utc)
        logger.info("Copying original to {}/{}", config.photos_container, storage_key)
        store.write(
            config.photos_container,
            storage_key,
            object_bytes,
            metadata={
                "originalName": storage_key,
                "uploadDate": uploaded_at.isoformat(),
                "width": str(metadata.width),
                "height": str(metadata.height),
                "format": metadata.format,
            },
            content_type=metadata.mime_type,
        )

        logger.info("Copying thumbnail to {}/{}", config.thumbnails_container, storage_key)
        store.write(
            config.thumbnails_container,
            storage_key,
            thumbnail_bytes,
            metadata={"originalName": storage_key},
            content_type=THUMBNAIL_CONTENT_TYPE,
        )

        logger.info("Deleting from {}/{}", config.landing_zone_container, storage_key)
        store.delete(config.landing_zone_container, storage_key)
    except Exception as exc:
        logger.error("Failed to process image blob_name={} error={}", storage_key, str(exc))
        raise

    logger.info("Successfully processed image blob_name={}", storage_key)
    return metadata
