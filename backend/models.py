"""
Pydantic models used across the backend.

The canonical event is `SensorEvent`: a `(timestamp, sensor, data)` triple
where the shape of `data` follows from `sensor`:
- health-metric kinds (`lamp.height`, `lamp.steps`, ...) carry a `Reading`
- `lamp.gps.contextual` carries a `ContextualLocation`
- custom kinds carry any JSON document, stored and returned verbatim

A payload that does not fit its sensor's shape fails validation.

Events are frozen once built. `ScopeFilter` and `TimeWindow` describe
which storage rows a read or retraction may touch.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)


class SensorName(str, Enum):
    """The kinds of sensors currently available."""

    Analytics = "lamp.analytics"
    Accelerometer = "lamp.accelerometer"
    Bluetooth = "lamp.bluetooth"
    Calls = "lamp.calls"
    ScreenState = "lamp.screen_state"
    SMS = "lamp.sms"
    WiFi = "lamp.wifi"
    Audio = "lamp.audio_recordings"
    Location = "lamp.gps"
    ContextualLocation = "lamp.gps.contextual"
    Height = "lamp.height"
    Weight = "lamp.weight"
    HeartRate = "lamp.heart_rate"
    BloodPressure = "lamp.blood_pressure"
    RespiratoryRate = "lamp.respiratory_rate"
    Sleep = "lamp.sleep"
    Steps = "lamp.steps"
    Flights = "lamp.flights"
    Segment = "lamp.segment"
    Distance = "lamp.distance"


class LocationContext(str, Enum):
    Home = "home"
    School = "school"
    Work = "work"
    Hospital = "hospital"
    Outside = "outside"
    Shopping = "shopping"
    Transit = "transit"


class SocialContext(str, Enum):
    Alone = "alone"
    Friends = "friends"
    Family = "family"
    Peers = "peers"
    Crowd = "crowd"


class Reading(BaseModel):
    """A health-metric value. `value is None` means no data was recorded."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: Optional[Union[float, str]] = None
    units: str = ""


class ContextualLocation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=True)

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None
    location_context: Optional[LocationContext] = None
    social_context: Optional[SocialContext] = None


# Health-metric kinds; each has a codec in sensor_codecs.CODECS.
READING_SENSORS = frozenset({
    SensorName.Height.value,
    SensorName.Weight.value,
    SensorName.HeartRate.value,
    SensorName.BloodPressure.value,
    SensorName.RespiratoryRate.value,
    SensorName.Sleep.value,
    SensorName.Steps.value,
    SensorName.Flights.value,
    SensorName.Segment.value,
    SensorName.Distance.value,
})

PAYLOAD_SHAPES = {
    **{sensor: Reading for sensor in READING_SENSORS},
    SensorName.ContextualLocation.value: ContextualLocation,
}


class SensorEvent(BaseModel):
    """An event generated by a participant interacting with the app.

    Fields:
    - `timestamp`: milliseconds since the Unix epoch.
    - `sensor`: a `SensorName` value or any custom sensor kind.
    - `data`: payload whose shape depends on `sensor`.

    The model is frozen, but a custom JSON payload is a plain dict or list
    and is not. Treat it as read-only; readers hand out their own copy.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int
    sensor: str
    # Left to right: client payloads stay plain JSON, readers pass model instances.
    data: Union[JsonValue, Reading, ContextualLocation] = Field(
        default=None, union_mode="left_to_right"
    )

    @field_validator("data")
    @classmethod
    def _shape_follows_sensor(cls, v, info: ValidationInfo):
        sensor = info.data.get("sensor")
        shape = PAYLOAD_SHAPES.get(sensor)
        if shape is None or isinstance(v, shape):
            return v
        try:
            return shape.model_validate(v)
        except ValidationError as e:
            raise ValueError(f"{sensor} data must be a {shape.__name__}: {e.errors()[0]['msg']}") from e


class ScopeFilter(BaseModel):
    """Storage-level filter resolved from a scope identifier.

    `user_scope` is the encrypted participant key matched against
    `users.study_id`; `owner_scope` is the admin id of a study or
    researcher. Both unset means every row.
    """

    model_config = ConfigDict(frozen=True)

    user_scope: Optional[str] = None
    owner_scope: Optional[int] = None

    @model_validator(mode="after")
    def _one_scope(self) -> "ScopeFilter":
        if self.user_scope is not None and self.owner_scope is not None:
            raise ValueError("ScopeFilter takes a user scope or an owner scope, not both")
        return self


class TimeWindow(BaseModel):
    """Inclusive `[from_date, to_date]` bounds in epoch ms; `None` is unbounded."""

    model_config = ConfigDict(frozen=True)

    from_date: Optional[int] = None
    to_date: Optional[int] = None

    def contains(self, timestamp: int) -> bool:
        if self.from_date is not None and timestamp < self.from_date:
            return False
        if self.to_date is not None and timestamp > self.to_date:
            return False
        return True
