from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SUBSCRIPTION_VALIDATION_EVENT = "Microsoft.EventGrid.SubscriptionValidationEvent"
BLOB_CREATED_EVENT = "Microsoft.Storage.BlobCreated"


class EventGridEvent(BaseModel):
    """One entry of an Event Grid webhook delivery (Event Grid schema)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    event_type: str = Field(alias="eventType")
    subject: str = ""
    topic: str | None = None
    event_time: datetime | None = Field(default=None, alias="eventTime")
    data: dict[str, Any] = Field(default_factory=dict)


class BlobEventsResult(BaseModel):
    processed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class SubscriptionValidationResponse(BaseModel):
    validationResponse: str
