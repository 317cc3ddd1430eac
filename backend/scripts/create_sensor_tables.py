#!/usr/bin/env python3
"""
Create the sensor event tables in the database at `DB_URL`.

Usage:
    python scripts/create_sensor_tables.py
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from db import get_conn
from schema import apply_schema
from settings import settings

print('Connecting to', settings.db_url)
with get_conn() as conn:
    apply_schema(conn)
print('DDL applied')
