"""
Service / facade layer.

This module implements the merge engine and the two write paths on top of
the repository and the source readers. It is free of SQL. Routes call
this service, never the repo directly.

Key responsibilities:
- resolve a participant/study/researcher id to a storage scope filter
- fan out to the three source readers and merge their output by time
- write canonical events into the custom event store
- retract (soft-delete) legacy health and location rows in a window
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from crypto import Cipher, PassthroughCipher
from errors import UnknownParticipant
from identifiers import ScopeKind, participant_study_id, resolve_identifier
from models import ScopeFilter, SensorEvent, TimeWindow
from readers import CustomReader, HealthMetricsReader, LocationReader
from repo_events import SensorEventRepo
from settings import settings

logger = logging.getLogger(__name__)


class SensorEventService:
    """Merge engine plus write and retraction paths.

    Example usage:
        repo = SensorEventRepo()
        svc = SensorEventService(repo, cipher)
        svc.select("U1234567890", from_date=1577836800000)
    """

    def __init__(self, repo: SensorEventRepo, cipher: Optional[Cipher] = None,
                 parallel_reads: Optional[bool] = None):
        self.repo = repo
        self.cipher = cipher or PassthroughCipher()
        self.parallel_reads = settings.parallel_reads if parallel_reads is None else parallel_reads
        self.readers = (
            HealthMetricsReader(repo, self.cipher),
            LocationReader(repo, self.cipher),
            CustomReader(repo),
        )

    def resolve_scope(self, scope_id: Optional[str]) -> ScopeFilter:
        """Map an identifier to the filter the readers apply.

        `None` means no filter at all; callers only pass it after an
        all-access grant has been checked. Raises `UnresolvedScope` for an
        identifier of any other shape.
        """

        if scope_id is None:
            return ScopeFilter()
        resolved = resolve_identifier(scope_id)
        if resolved.kind is ScopeKind.Participant:
            return ScopeFilter(user_scope=self.cipher.encrypt(resolved.value))
        return ScopeFilter(owner_scope=resolved.value)

    def select(self, scope_id: Optional[str] = None, from_date: Optional[int] = None,
               to_date: Optional[int] = None) -> List[SensorEvent]:
        """Return every event in scope, oldest first.

        The three readers see the same filter and window. Their outputs are
        concatenated (health, location, custom) and stable-sorted by
        timestamp, so the order they finish in does not matter. If any
        reader fails the whole call fails.
        """

        scope = self.resolve_scope(scope_id)
        window = TimeWindow(from_date=from_date, to_date=to_date)

        if self.parallel_reads:
            with ThreadPoolExecutor(max_workers=len(self.readers)) as pool:
                futures = [pool.submit(r.read, scope, window) for r in self.readers]
                batches = [f.result() for f in futures]
        else:
            batches = [r.read(scope, window) for r in self.readers]

        events = [e for batch in batches for e in batch]
        events.sort(key=lambda e: e.timestamp)
        return events

    def _study_key(self, participant_id: str) -> str:
        return self.cipher.encrypt(participant_study_id(participant_id))

    def _user_id(self, participant_id: str) -> int:
        user_id = self.repo.find_user_id(self._study_key(participant_id))
        if user_id is None:
            raise UnknownParticipant(f"Participant {participant_id!r} not found")
        return user_id

    def insert(self, participant_id: str, event: SensorEvent) -> None:
        """Append `event` to the custom store for `participant_id`.

        The payload is stored as JSON exactly as given; no codec runs.
        Deleted participants count as unknown.
        """

        data = event.model_dump(mode="json")["data"]
        written = self.repo.insert_custom_event(self._study_key(participant_id), event.timestamp, event.sensor, data)
        if written == 0:
            raise UnknownParticipant(f"Participant {participant_id!r} not found")
        logger.info("Stored %s event at %d for participant %s", event.sensor, event.timestamp, participant_id)

    def retract(self, participant_id: str, from_date: Optional[int] = None,
                to_date: Optional[int] = None) -> Dict[str, int]:
        """Flag health-metric and location rows in the window as edited out.

        Custom events and long-form parameter values are left in place, so
        a later `select` still returns them. Returns the number of rows
        flagged per table.
        """

        user_id = self._user_id(participant_id)
        window = TimeWindow(from_date=from_date, to_date=to_date)
        counts = {
            "health_metrics": self.repo.retract_health_metrics(user_id, window),
            "locations": self.repo.retract_locations(user_id, window),
        }
        logger.info("Retracted rows for user %d in [%s, %s]: %s", user_id, from_date, to_date, counts)
        logger.warning("Custom sensor events for user %d were not retracted", user_id)
        return counts

    def health_check(self) -> None:
        """Perform a lightweight DB ping via the repository."""

        self.repo.ping()
