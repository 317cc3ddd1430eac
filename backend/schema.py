"""
PostgreSQL schema for the upstream tables the core reads and writes.

The legacy tables (`users`, `healthkit_*`, `locations`, `gps_lookup`) are
owned by the study app and the passive-sensing integration; the core only
adds rows to `custom_sensor_events` and flips `edited_out` on retraction.
`scripts/create_sensor_tables.py` applies this DDL to an empty database.
"""

DDL = '''
CREATE TABLE IF NOT EXISTS users (
    user_id SERIAL PRIMARY KEY,
    study_id TEXT NOT NULL,
    admin_id INTEGER,
    is_deleted BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_users_study_id ON users (study_id);
CREATE INDEX IF NOT EXISTS idx_users_admin_id ON users (admin_id);

CREATE TABLE IF NOT EXISTS healthkit_daily_values (
    id BIGSERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (user_id),
    created_on TIMESTAMP WITH TIME ZONE NOT NULL,
    height TEXT,
    weight TEXT,
    heart_rate TEXT,
    blood_pressure TEXT,
    respiratory_rate TEXT,
    sleep TEXT,
    steps TEXT,
    flight_climbed TEXT,
    segment TEXT,
    distance TEXT,
    edited_on TIMESTAMP WITH TIME ZONE,
    edited_out BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS healthkit_parameters (
    hk_param_id SERIAL PRIMARY KEY,
    hk_param_name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS healthkit_param_values (
    id BIGSERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (user_id),
    hk_param_id INTEGER NOT NULL REFERENCES healthkit_parameters (hk_param_id),
    date_time TIMESTAMP WITH TIME ZONE NOT NULL,
    value TEXT
);

CREATE TABLE IF NOT EXISTS gps_lookup (
    address TEXT PRIMARY KEY,
    location_name TEXT
);

CREATE TABLE IF NOT EXISTS locations (
    location_id BIGSERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (user_id),
    created_on TIMESTAMP WITH TIME ZONE NOT NULL,
    coordinates TEXT,
    address TEXT,
    location_name TEXT,
    type SMALLINT,
    edited_out BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS custom_sensor_events (
    id BIGSERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users (user_id),
    timestamp BIGINT NOT NULL,
    sensor_name TEXT NOT NULL,
    data JSONB
);

CREATE INDEX IF NOT EXISTS idx_custom_sensor_events_user_ts
    ON custom_sensor_events (user_id, timestamp);
'''


def apply_schema(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
