"""Typed decoding of GroundControl Launchpad records."""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator


class DeviceSnapshot(BaseModel):
    """State of one Launchpad as reported by GroundControl for a single cycle.

    Records missing ``name``, ``connected`` or ``connectedDeviceCount`` fail
    validation instead of being coerced to a default.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(..., description="Launchpad display name")
    connected: StrictBool = Field(..., description="Launchpad is reachable")
    docked_device_count: StrictInt = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("connectedDeviceCount", "docked_device_count"),
        description="Number of docked handheld devices",
    )
    hub_present: Optional[StrictBool] = Field(
        default=None,
        validation_alias=AliasChoices("connectedBadgeReader", "hubConnected", "hub_present"),
        description="Badge reader (SmartHub) attached and reporting",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Launchpad name cannot be empty")
        return v

    @classmethod
    def from_api_response(cls, record: Dict[str, Any]) -> "DeviceSnapshot":
        """Factory for creating a DeviceSnapshot from a raw GroundControl record."""
        return cls.model_validate(record)
