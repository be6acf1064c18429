"""Relay API schemas: device configuration, upload/stats responses, WebSocket envelopes."""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceConfig(BaseModel):
    """Configuration document shared by the camera device and the control app."""
    model_config = ConfigDict(populate_by_name=True)

    ssid: str = "Mon_SSID_WiFi"
    password: str = "Mon_MotDePasse_WiFi"
    phone_number: str = Field("+261000000000", alias="phoneNumber")
    start_hour: int = Field(18, alias="startHour", ge=0, le=23)
    end_hour: int = Field(6, alias="endHour", ge=0, le=23)


class DeviceConfigUpdate(BaseModel):
    """Partial document; only the fields present are merged."""
    model_config = ConfigDict(populate_by_name=True)

    ssid: Optional[str] = None
    password: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    start_hour: Optional[int] = Field(None, alias="startHour", ge=0, le=23)
    end_hour: Optional[int] = Field(None, alias="endHour", ge=0, le=23)

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value):
        if value is None:
            raise ValueError("null is not accepted; omit the field to keep its value")
        return value


class UploadOut(BaseModel):
    status: str = "ok"
    size: int
    delivered: int


class StatsOut(BaseModel):
    """Registry and fanout counters."""
    producer_connected: bool = False
    consumers: int = 0
    broadcast_mode: str = "inline"
    uploads: int = 0
    rejected_uploads: int = 0
    broadcasts: int = 0
    delivered: int = 0
    failed: int = 0


# ── WebSocket envelopes (outbound) ────────────────────────────


class ImageMessage(BaseModel):
    type: Literal["image"] = "image"
    data: str


class ImageRefMessage(BaseModel):
    type: Literal["image"] = "image"
    url: str


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str
