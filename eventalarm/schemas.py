"""
Wire schemas for the sync and push endpoints.

Field names on the wire are camelCase (``deliveryAddress``, ``startTime``);
the Python attributes are snake_case. Serialize with ``by_alias=True``.
"""

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class PushKeys(BaseModel):
    """Client keys of a Web Push subscription"""
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class DeliveryAddress(BaseModel):
    """Web Push subscription of one device"""
    endpoint: str = Field(..., min_length=1, description="Push service endpoint URL")
    keys: PushKeys


class SyncEvent(BaseModel):
    """One event as mirrored to the edge dispatcher"""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    start_time: int = Field(..., alias="startTime", description="Epoch seconds")
    icon: str | None = None


class AlarmSyncPayload(BaseModel):
    """Full alarm state of a device; replaces the previous payload on the edge"""
    model_config = ConfigDict(populate_by_name=True)

    delivery_address: DeliveryAddress = Field(..., alias="deliveryAddress")
    events: list[SyncEvent]
    alarms: dict[str, NonNegativeInt | None] = Field(
        ..., description="Event id (as string) to alarm minutes"
    )

    def alarm_for(self, event_id: int) -> int | None:
        return self.alarms.get(str(event_id))


class PushTestRequest(BaseModel):
    """Send one notification immediately, to check a subscription works"""
    model_config = ConfigDict(populate_by_name=True)

    delivery_address: DeliveryAddress = Field(..., alias="deliveryAddress")
    title: str | None = None
    body: str | None = None
