"""Deal event payloads - one fixed shape per event type.

Events are stored in a single ``deal_event`` table with a JSON ``payload``
column; the ``type`` field inside the payload is the discriminator, so a
stored row can always be read back into exactly one of these models.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class CreatedPayload(BaseModel):
    type: Literal["CREATED"] = "CREATED"
    title: str


class _StageTransition(BaseModel):
    from_stage_id: uuid.UUID | None = None
    to_stage_id: uuid.UUID
    stage_name: str
    notes: str | None = None


class StageChangedPayload(_StageTransition):
    type: Literal["STAGE_CHANGED"] = "STAGE_CHANGED"


class WonPayload(_StageTransition):
    type: Literal["WON"] = "WON"


class LostPayload(_StageTransition):
    type: Literal["LOST"] = "LOST"
    lost_reason_id: uuid.UUID | None = None


class AssignedPayload(BaseModel):
    type: Literal["ASSIGNED"] = "ASSIGNED"
    assigned_to_id: uuid.UUID | None = None


class ActivityAddedPayload(BaseModel):
    type: Literal["ACTIVITY_ADDED"] = "ACTIVITY_ADDED"
    activity_id: uuid.UUID
    activity_type: str
    title: str


class ProductAddedPayload(BaseModel):
    type: Literal["PRODUCT_ADDED"] = "PRODUCT_ADDED"
    product_id: uuid.UUID
    product_name: str


DealEventPayload = Annotated[
    Union[
        CreatedPayload,
        StageChangedPayload,
        WonPayload,
        LostPayload,
        AssignedPayload,
        ActivityAddedPayload,
        ProductAddedPayload,
    ],
    Field(discriminator="type"),
]

payload_adapter: TypeAdapter[DealEventPayload] = TypeAdapter(DealEventPayload)


def parse_payload(raw: dict) -> DealEventPayload:
    return payload_adapter.validate_python(raw)
