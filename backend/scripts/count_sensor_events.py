"""
Print how many merged sensor events a scope has, per sensor kind.

Usage:
    python scripts/count_sensor_events.py <participant|study|researcher id> [from:to]
"""

from collections import Counter
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from date_range import parse_date_range
from repo_events import SensorEventRepo
from service_events import SensorEventService

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

from_date, to_date = parse_date_range(sys.argv[2] if len(sys.argv) > 2 else None)
events = SensorEventService(SensorEventRepo()).select(sys.argv[1], from_date, to_date)

counts = Counter(e.sensor for e in events)
for sensor, n in counts.most_common():
    print(f'{sensor}: {n}')
print('total:', len(events))
