"""
Codec registry: health-metric values <-> canonical `Reading`s.

Upstream health values are stored as unit-suffixed strings such as
`"172 cm"` or `"64 bpm"`, usually encrypted. Each health sensor kind has one
`Codec` that knows its suffix, the units it reports, and whether the value
is numeric.

Important notes:
- decode lower-cases the decrypted plaintext before stripping the suffix.
- encode encrypts the value only and appends the unit suffix in clear. The
  legacy writer produced stored values this way, so decode of such a value
  only works with ciphers that leave the trailing text decryptable (or with
  plaintext storage). Keep this asymmetry; existing rows depend on it.
- steps and flights treat zero as "no data".

The tables at the bottom are read-only module state.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Union

from crypto import Cipher
from errors import DecodeAmbiguity
from models import Reading, SensorName

MISSING_SENTINEL = "NA"

_LEADING_FLOAT = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def parse_float(text: str) -> Optional[float]:
    """Parse the leading floating-point literal of `text`, like JS `parseFloat`.

    Returns None where `parseFloat` would give NaN.
    """

    match = _LEADING_FLOAT.match(text)
    if match is None:
        return None
    return float(match.group(0))


def format_value(value: Union[float, int, str]) -> str:
    """Render a value the way the legacy writer did (`172`, not `172.0`)."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class Codec:
    sensor: str
    column: str
    suffix: str
    units: str
    numeric: bool = True
    zero_is_absent: bool = False

    def _plaintext(self, raw: Optional[str], cipher: Cipher) -> Optional[str]:
        if raw is None:
            return None
        plain = cipher.decrypt(raw)
        if not plain or plain == MISSING_SENTINEL:
            return None
        return plain.lower()

    def decode(self, raw: Optional[str], cipher: Cipher) -> Reading:
        plain = self._plaintext(raw, cipher)
        if not plain:
            return Reading(value=None, units=self.units)

        stripped = plain.replace(self.suffix, "", 1) if self.suffix else plain
        if not self.numeric:
            return Reading(value=stripped, units=self.units)

        value = parse_float(stripped)
        if self.zero_is_absent and value == 0:
            value = None
        return Reading(value=value, units=self.units)

    def encode(self, reading: Reading, cipher: Cipher) -> str:
        if reading.value is None:
            return MISSING_SENTINEL
        return f"{cipher.encrypt(format_value(reading.value))}{self.suffix}"


_REGISTRY = (
    Codec(SensorName.Height.value, "Height", " cm", "cm"),
    Codec(SensorName.Weight.value, "Weight", " kg", "kg"),
    Codec(SensorName.HeartRate.value, "HeartRate", " bpm", "bpm"),
    Codec(SensorName.BloodPressure.value, "BloodPressure", " mmhg", "mmHg", numeric=False),
    Codec(SensorName.RespiratoryRate.value, "RespiratoryRate", " breaths/min", "bpm"),
    Codec(SensorName.Sleep.value, "Sleep", "", "", numeric=False),
    Codec(SensorName.Steps.value, "Steps", " steps", "steps", zero_is_absent=True),
    # Flights share the steps suffix upstream.
    Codec(SensorName.Flights.value, "FlightClimbed", " steps", "flights", zero_is_absent=True),
    Codec(SensorName.Segment.value, "Segment", "", ""),
    Codec(SensorName.Distance.value, "Distance", " meters", "meters"),
)

CODECS: Mapping[str, Codec] = MappingProxyType({c.sensor: c for c in _REGISTRY})

SENSOR_TO_COLUMN: Mapping[str, str] = MappingProxyType({c.sensor: c.column for c in _REGISTRY})
COLUMN_TO_SENSOR: Mapping[str, str] = MappingProxyType({c.column: c.sensor for c in _REGISTRY})

# Column order of the unpivoted daily-values table.
HEALTH_COLUMNS = tuple(c.column for c in _REGISTRY)


def sensor_for_column(type_name: str) -> str:
    try:
        return COLUMN_TO_SENSOR[type_name]
    except KeyError:
        raise DecodeAmbiguity(type_name) from None


def decode(sensor: str, raw: Optional[str], cipher: Cipher) -> Reading:
    return CODECS[sensor].decode(raw, cipher)


def encode(sensor: str, reading: Reading, cipher: Cipher) -> str:
    return CODECS[sensor].encode(reading, cipher)
