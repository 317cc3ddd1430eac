"""
Repository: SQL operations for sensor events.

This file contains only DB interaction code. It binds scope and window
filters as query parameters and returns plain dict rows (`db.get_conn()`
uses a `dict_row` factory). Decoding rows into `SensorEvent`s happens in
`readers.py`; keep business rules out of this module.

Important notes:
- Every filter is a bound parameter. Optional filters use the
  `(%(x)s IS NULL OR col = %(x)s)` form so the SQL text never changes.
- Timestamps leave the database as epoch milliseconds (BIGINT).
- Custom payloads are written with `Jsonb` and read back already parsed.
- Every method opens its own connection, so readers may run in parallel.
"""

from typing import Any, Dict, List, Optional

from psycopg.types.json import Jsonb

from db import get_conn
from models import ScopeFilter, TimeWindow

Row = Dict[str, Any]

_HEALTH_METRICS_SQL = """
SELECT x.timestamp, x.type, x.data
FROM (
    SELECT
        users.admin_id,
        users.study_id,
        users.is_deleted,
        (EXTRACT(EPOCH FROM d.created_on) * 1000)::bigint AS timestamp,
        u.type,
        u.data
    FROM healthkit_daily_values d
    CROSS JOIN LATERAL (VALUES
        ('Height', d.height),
        ('Weight', d.weight),
        ('HeartRate', d.heart_rate),
        ('BloodPressure', d.blood_pressure),
        ('RespiratoryRate', d.respiratory_rate),
        ('Sleep', d.sleep),
        ('Steps', d.steps),
        ('FlightClimbed', d.flight_climbed),
        ('Segment', d.segment),
        ('Distance', d.distance)
    ) AS u (type, data)
    LEFT JOIN users ON d.user_id = users.user_id
    WHERE u.data IS NOT NULL AND u.data <> '' AND NOT d.edited_out
    UNION ALL
    SELECT
        users.admin_id,
        users.study_id,
        users.is_deleted,
        (EXTRACT(EPOCH FROM v.date_time) * 1000)::bigint AS timestamp,
        REPLACE(p.hk_param_name, ' ', '') AS type,
        v.value AS data
    FROM healthkit_param_values v
    LEFT JOIN users ON v.user_id = users.user_id
    LEFT JOIN healthkit_parameters p ON p.hk_param_id = v.hk_param_id
) x
WHERE x.is_deleted = false
    AND (%(user_scope)s::text IS NULL OR x.study_id = %(user_scope)s::text)
    AND (%(owner_scope)s::int IS NULL OR x.admin_id = %(owner_scope)s::int)
    AND (%(from_date)s::bigint IS NULL OR x.timestamp >= %(from_date)s::bigint)
    AND (%(to_date)s::bigint IS NULL OR x.timestamp <= %(to_date)s::bigint)
"""

_LOCATIONS_SQL = """
SELECT
    (EXTRACT(EPOCH FROM l.created_on) * 1000)::bigint AS timestamp,
    COALESCE(l.coordinates, l.address) AS coordinates,
    (CASE WHEN l.coordinates IS NULL THEN NULL ELSE 1 END) AS accuracy,
    COALESCE(l.location_name, g.location_name) AS location_name
FROM locations l
LEFT JOIN users ON l.user_id = users.user_id
LEFT JOIN gps_lookup g ON l.address = g.address
WHERE users.is_deleted = false
    AND NOT l.edited_out
    AND (%(user_scope)s::text IS NULL OR users.study_id = %(user_scope)s::text)
    AND (%(owner_scope)s::int IS NULL OR users.admin_id = %(owner_scope)s::int)
    AND (%(from_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM l.created_on) * 1000)::bigint >= %(from_date)s::bigint)
    AND (%(to_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM l.created_on) * 1000)::bigint <= %(to_date)s::bigint)
"""

_CUSTOM_SQL = """
SELECT c.timestamp, c.sensor_name, c.data
FROM custom_sensor_events c
LEFT JOIN users ON c.user_id = users.user_id
WHERE users.is_deleted = false
    AND (%(user_scope)s::text IS NULL OR users.study_id = %(user_scope)s::text)
    AND (%(owner_scope)s::int IS NULL OR users.admin_id = %(owner_scope)s::int)
    AND (%(from_date)s::bigint IS NULL OR c.timestamp >= %(from_date)s::bigint)
    AND (%(to_date)s::bigint IS NULL OR c.timestamp <= %(to_date)s::bigint)
"""

_INSERT_CUSTOM_SQL = """
INSERT INTO custom_sensor_events (user_id, timestamp, sensor_name, data)
SELECT user_id, %(timestamp)s::bigint, %(sensor)s::text, %(data)s::jsonb
FROM users
WHERE study_id = %(study_key)s AND is_deleted = false
ORDER BY user_id
LIMIT 1
"""

_RETRACT_DAILY_VALUES_SQL = """
UPDATE healthkit_daily_values
SET edited_out = true, edited_on = now()
WHERE user_id = %(user_id)s
    AND (%(from_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM created_on) * 1000)::bigint >= %(from_date)s::bigint)
    AND (%(to_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM created_on) * 1000)::bigint <= %(to_date)s::bigint)
"""

_RETRACT_LOCATIONS_SQL = """
UPDATE locations
SET edited_out = true
WHERE user_id = %(user_id)s
    AND (%(from_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM created_on) * 1000)::bigint >= %(from_date)s::bigint)
    AND (%(to_date)s::bigint IS NULL
         OR (EXTRACT(EPOCH FROM created_on) * 1000)::bigint <= %(to_date)s::bigint)
"""


def _filter_params(scope: ScopeFilter, window: TimeWindow) -> Dict[str, Any]:
    return {
        "user_scope": scope.user_scope,
        "owner_scope": scope.owner_scope,
        "from_date": window.from_date,
        "to_date": window.to_date,
    }


class SensorEventRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Run the three read queries with a shared scope/window filter
    - Resolve a participant key to its internal user id
    - Insert custom events and flag legacy rows as edited out
    """

    def _fetch(self, sql: str, params: Dict[str, Any]) -> List[Row]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()

    def fetch_health_metric_rows(self, scope: ScopeFilter, window: TimeWindow) -> List[Row]:
        """Rows of `timestamp, type, data` from daily and parameter values."""

        return self._fetch(_HEALTH_METRICS_SQL, _filter_params(scope, window))

    def fetch_location_rows(self, scope: ScopeFilter, window: TimeWindow) -> List[Row]:
        """Rows of `timestamp, coordinates, accuracy, location_name`."""

        return self._fetch(_LOCATIONS_SQL, _filter_params(scope, window))

    def fetch_custom_rows(self, scope: ScopeFilter, window: TimeWindow) -> List[Row]:
        """Rows of `timestamp, sensor_name, data` with `data` already parsed."""

        return self._fetch(_CUSTOM_SQL, _filter_params(scope, window))

    def find_user_id(self, study_key: str) -> Optional[int]:
        """Return `users.user_id` for an (encrypted) study id, or None.

        Deleted users are not found.
        """

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT user_id FROM users WHERE study_id = %s AND is_deleted = false "
                    "ORDER BY user_id LIMIT 1",
                    (study_key,),
                )
                row = cur.fetchone()
        return None if row is None else row["user_id"]

    def insert_custom_event(self, study_key: str, timestamp: int, sensor: str, data: Any) -> int:
        """Insert one event for the user with this (encrypted) study id.

        User lookup and insert are one statement. Returns the number of rows
        written: 0 when no live user has that study id.
        """

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(_INSERT_CUSTOM_SQL, {
                    "study_key": study_key,
                    "timestamp": timestamp,
                    "sensor": sensor,
                    "data": Jsonb(data),
                })
                count = cur.rowcount
            conn.commit()
        return count

    def retract_health_metrics(self, user_id: int, window: TimeWindow) -> int:
        return self._retract(_RETRACT_DAILY_VALUES_SQL, user_id, window)

    def retract_locations(self, user_id: int, window: TimeWindow) -> int:
        return self._retract(_RETRACT_LOCATIONS_SQL, user_id, window)

    def _retract(self, sql: str, user_id: int, window: TimeWindow) -> int:
        params = {"user_id": user_id, "from_date": window.from_date, "to_date": window.to_date}
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                count = cur.rowcount
            conn.commit()
        return count

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
