"""
Source readers: one per upstream table family.

Each reader runs a single repository query and turns its rows into
canonical `SensorEvent`s. Readers never write and hold no state besides
their collaborators, so the merge engine may run them side by side.
"""

import copy
import logging
from typing import List, Optional, Tuple

import context_parser
import sensor_codecs
from crypto import Cipher, decrypt_or_raw
from models import ContextualLocation, ScopeFilter, SensorEvent, SensorName, TimeWindow
from repo_events import SensorEventRepo

logger = logging.getLogger(__name__)


class HealthMetricsReader:
    """Daily (pivoted) and parameter (long-form) health values."""

    name = "health_metrics"

    def __init__(self, repo: SensorEventRepo, cipher: Cipher):
        self.repo = repo
        self.cipher = cipher

    def read(self, scope: ScopeFilter, window: TimeWindow) -> List[SensorEvent]:
        """Decode every row; an unknown type name aborts the whole read."""

        events = []
        for row in self.repo.fetch_health_metric_rows(scope, window):
            sensor = sensor_codecs.sensor_for_column(row["type"])
            events.append(SensorEvent(
                timestamp=row["timestamp"],
                sensor=sensor,
                data=sensor_codecs.decode(sensor, row["data"], self.cipher),
            ))
        logger.debug("health_metrics: %d events", len(events))
        return events


def _split_coordinates(raw: Optional[str], cipher: Cipher) -> Tuple[Optional[float], Optional[float]]:
    if not raw:
        return None, None
    parts = decrypt_or_raw(cipher, raw).split(",")
    latitude = sensor_codecs.parse_float(parts[0])
    longitude = sensor_codecs.parse_float(parts[1]) if len(parts) > 1 else None
    return latitude, longitude


class LocationReader:
    """GPS rows with their self-reported context, as `lamp.gps.contextual`."""

    name = "locations"

    def __init__(self, repo: SensorEventRepo, cipher: Cipher):
        self.repo = repo
        self.cipher = cipher

    def read(self, scope: ScopeFilter, window: TimeWindow) -> List[SensorEvent]:
        events = []
        for row in self.repo.fetch_location_rows(scope, window):
            latitude, longitude = _split_coordinates(row["coordinates"], self.cipher)
            location_context, social_context = context_parser.parse(row["location_name"], self.cipher)
            events.append(SensorEvent(
                timestamp=row["timestamp"],
                sensor=SensorName.ContextualLocation.value,
                data=ContextualLocation(
                    latitude=latitude,
                    longitude=longitude,
                    accuracy=row["accuracy"],
                    location_context=location_context,
                    social_context=social_context,
                ),
            ))
        logger.debug("locations: %d events", len(events))
        return events


class CustomReader:
    """Events written through the write path; payloads are returned as stored."""

    name = "custom"

    def __init__(self, repo: SensorEventRepo):
        self.repo = repo

    def read(self, scope: ScopeFilter, window: TimeWindow) -> List[SensorEvent]:
        events = [
            SensorEvent(timestamp=row["timestamp"], sensor=row["sensor_name"], data=copy.deepcopy(row["data"]))
            for row in self.repo.fetch_custom_rows(scope, window)
        ]
        logger.debug("custom: %d events", len(events))
        return events
