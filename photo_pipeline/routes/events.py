from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from photo_pipeline.models.events import (
    BLOB_CREATED_EVENT,
    SUBSCRIPTION_VALIDATION_EVENT,
    BlobEventsResult,
    EventGridEvent,
    SubscriptionValidationResponse,
)
from photo_pipeline.models.upload import ErrorResponse
from photo_pipeline.routes.deps import get_blob_store, get_processor_config, require_blob_store
from photo_pipeline.services.errors import MalformedTrigger
from photo_pipeline.services.ingest import process_ingest_event, resolve_ingest_event
from photo_pipeline.services.storage import BlobStore

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post(
    "/blob-created",
    response_model=BlobEventsResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def handle_blob_events(
    events: list[EventGridEvent],
    request: Request,
    blob_store: BlobStore | None = Depends(get_blob_store),
):
    # The handshake must succeed even while the processor config is broken.
    for event in events:
        if event.event_type == SUBSCRIPTION_VALIDATION_EVENT:
            code = event.data.get("validationCode")
            if not code:
                raise MalformedTrigger("Subscription validation event without validationCode")
            logger.info("Event Grid subscription validated event_id={} topic={}", event.id, event.topic)
            return JSONResponse(content=SubscriptionValidationResponse(validationResponse=code).model_dump())

    config = get_processor_config(request)
    store = require_blob_store(blob_store)

    result = BlobEventsResult()
    for event in events:
        if event.event_type != BLOB_CREATED_EVENT:
            logger.info("Ignoring event event_id={} event_type={}", event.id, event.event_type)
            continue

        ingest_event = resolve_ingest_event(event.subject)
        if ingest_event.container_name != config.landing_zone_container:
            logger.error(
                "Event for unexpected container event_id={} container={} expected={}",
                event.id,
                ingest_event.container_name,
                config.landing_zone_container,
            )
            raise MalformedTrigger(
                f"Event targets container {ingest_event.container_name!r}, "
                f"expected {config.landing_zone_container!r}"
            )

        object_bytes = store.read(config.landing_zone_container, ingest_event.storage_key)
        if object_bytes is None:
            logger.warning(
                "Landing blob gone, already processed event_id={} blob_name={}",
                event.id,
                ingest_event.storage_key,
            )
            result.skipped.append(ingest_event.storage_key)
            continue

        process_ingest_event(ingest_event.storage_key, object_bytes, config, store)
        result.processed.append(ingest_event.storage_key)

    logger.info("Blob events handled processed={} skipped={}", len(result.processed), len(result.skipped))
    return result
