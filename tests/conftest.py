"""
Shared fixtures: an in-memory stand-in for `SensorEventRepo` and a
deterministic test cipher.

`InMemoryRepo` applies the same filters as the SQL in `repo_events.py`
(non-deleted users, user/owner scope, inclusive window, `edited_out`), so
the service and readers can be exercised without PostgreSQL.
"""

from typing import Any, Dict, List, Optional

import pytest

from identifiers import ScopeKind, pack_identifier
from models import ScopeFilter, TimeWindow
from service_events import SensorEventService


class PrefixCipher:
    """Deterministic reversible cipher: ciphertext is `enc:` + plaintext."""

    PREFIX = "enc:"

    def encrypt(self, plaintext: str) -> str:
        return self.PREFIX + plaintext

    def decrypt(self, ciphertext: str) -> Optional[str]:
        if not ciphertext.startswith(self.PREFIX):
            return None
        return ciphertext[len(self.PREFIX):]


DAILY_COLUMNS = (
    "Height", "Weight", "HeartRate", "BloodPressure", "RespiratoryRate",
    "Sleep", "Steps", "FlightClimbed", "Segment", "Distance",
)


class InMemoryRepo:
    def __init__(self, cipher):
        self.cipher = cipher
        self.users: Dict[int, Dict[str, Any]] = {}
        self.daily: List[Dict[str, Any]] = []
        self.params: List[Dict[str, Any]] = []
        self.locations: List[Dict[str, Any]] = []
        self.gps_lookup: Dict[str, str] = {}
        self.custom: List[Dict[str, Any]] = []

    # -- seeding helpers --

    def add_user(self, user_id: int, study_id: str, admin_id: int, is_deleted: bool = False):
        self.users[user_id] = {
            "study_id": self.cipher.encrypt(study_id),
            "admin_id": admin_id,
            "is_deleted": is_deleted,
        }

    def add_daily(self, user_id: int, timestamp: int, **values: str):
        row = {"user_id": user_id, "timestamp": timestamp, "edited_out": False}
        row.update(values)
        self.daily.append(row)

    def add_param(self, user_id: int, timestamp: int, name: str, value: str):
        self.params.append({"user_id": user_id, "timestamp": timestamp, "name": name, "value": value})

    def add_location(self, user_id: int, timestamp: int, coordinates: Optional[str] = None,
                     address: Optional[str] = None, location_name: Optional[str] = None):
        self.locations.append({
            "user_id": user_id,
            "timestamp": timestamp,
            "coordinates": coordinates,
            "address": address,
            "location_name": location_name,
            "edited_out": False,
        })

    # -- SensorEventRepo surface --

    def _visible(self, user_id: int, scope: ScopeFilter) -> bool:
        user = self.users.get(user_id)
        if user is None or user["is_deleted"]:
            return False
        if scope.user_scope is not None and user["study_id"] != scope.user_scope:
            return False
        if scope.owner_scope is not None and user["admin_id"] != scope.owner_scope:
            return False
        return True

    def fetch_health_metric_rows(self, scope: ScopeFilter, window: TimeWindow):
        rows = []
        for r in self.daily:
            if r["edited_out"] or not self._visible(r["user_id"], scope) or not window.contains(r["timestamp"]):
                continue
            for column in DAILY_COLUMNS:
                if r.get(column):
                    rows.append({"timestamp": r["timestamp"], "type": column, "data": r[column]})
        for r in self.params:
            if self._visible(r["user_id"], scope) and window.contains(r["timestamp"]):
                rows.append({"timestamp": r["timestamp"], "type": r["name"].replace(" ", ""), "data": r["value"]})
        return rows

    def fetch_location_rows(self, scope: ScopeFilter, window: TimeWindow):
        rows = []
        for r in self.locations:
            if r["edited_out"] or not self._visible(r["user_id"], scope) or not window.contains(r["timestamp"]):
                continue
            rows.append({
                "timestamp": r["timestamp"],
                "coordinates": r["coordinates"] if r["coordinates"] is not None else r["address"],
                "accuracy": None if r["coordinates"] is None else 1,
                "location_name": r["location_name"] or self.gps_lookup.get(r["address"]),
            })
        return rows

    def fetch_custom_rows(self, scope: ScopeFilter, window: TimeWindow):
        return [
            {"timestamp": r["timestamp"], "sensor_name": r["sensor_name"], "data": r["data"]}
            for r in self.custom
            if self._visible(r["user_id"], scope) and window.contains(r["timestamp"])
        ]

    def find_user_id(self, study_key: str) -> Optional[int]:
        for user_id in sorted(self.users):
            user = self.users[user_id]
            if user["study_id"] == study_key and not user["is_deleted"]:
                return user_id
        return None

    def insert_custom_event(self, study_key: str, timestamp: int, sensor: str, data: Any) -> int:
        user_id = self.find_user_id(study_key)
        if user_id is None:
            return 0
        self.custom.append({"user_id": user_id, "timestamp": timestamp, "sensor_name": sensor, "data": data})
        return 1

    def _retract(self, rows, user_id: int, window: TimeWindow) -> int:
        count = 0
        for r in rows:
            if r["user_id"] == user_id and window.contains(r["timestamp"]):
                r["edited_out"] = True
                count += 1
        return count

    def retract_health_metrics(self, user_id: int, window: TimeWindow) -> int:
        return self._retract(self.daily, user_id, window)

    def retract_locations(self, user_id: int, window: TimeWindow) -> int:
        return self._retract(self.locations, user_id, window)

    def ping(self) -> None:
        pass


# ============================================================
# FIXTURES
# ============================================================

ALICE = "U1001"
BOB = "U2002"
STUDY_A = pack_identifier(ScopeKind.Study, 10)
STUDY_B = pack_identifier(ScopeKind.Study, 20)
RESEARCHER_A = pack_identifier(ScopeKind.Researcher, 10)


@pytest.fixture
def cipher():
    return PrefixCipher()


@pytest.fixture
def repo(cipher):
    """Two participants in different studies, one deleted user, data in every table."""

    repo = InMemoryRepo(cipher)
    repo.add_user(1, ALICE, admin_id=10)
    repo.add_user(2, BOB, admin_id=20)
    repo.add_user(3, "U3003", admin_id=10, is_deleted=True)

    repo.add_daily(1, 1000, Height=cipher.encrypt("172 cm"), Steps=cipher.encrypt("4200 steps"))
    repo.add_param(1, 4000, "Heart Rate", cipher.encrypt("64 bpm"))
    repo.add_location(1, 2000, coordinates=cipher.encrypt("42.36,-71.06"),
                      location_name=cipher.encrypt("I am at work with peers"))
    repo.custom.append({"user_id": 1, "timestamp": 3000, "sensor_name": "lamp.analytics",
                        "data": {"page": "survey"}})

    repo.add_daily(2, 1500, Weight=cipher.encrypt("80 kg"))
    repo.add_location(2, 2500, coordinates=cipher.encrypt("40.71,-74.00"))
    repo.custom.append({"user_id": 2, "timestamp": 3500, "sensor_name": "lamp.analytics",
                        "data": {"page": "home"}})

    repo.add_daily(3, 1200, Height=cipher.encrypt("150 cm"))
    return repo


@pytest.fixture
def service(repo, cipher):
    return SensorEventService(repo, cipher, parallel_reads=False)
