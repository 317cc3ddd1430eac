import logging
from typing import List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query

from date_range import parse_date_range
from errors import DecodeAmbiguity, StorageTransportError, UnknownParticipant, UnresolvedScope
from models import SensorEvent
from repo_events import SensorEventRepo
from service_events import SensorEventService
from settings import settings

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Sensor Event Backend")

# Instantiate the repo + service here so the routes remain thin. Tests swap
# `svc` for one built on an in-memory repo. Deployments with encrypted
# storage pass their cipher to SensorEventService.
repo = SensorEventRepo()
svc = SensorEventService(repo)


def _limits(limit: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    try:
        return parse_date_range(limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _raise_http(e: Exception):
    if isinstance(e, UnknownParticipant):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, UnresolvedScope):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StorageTransportError):
        logger.error("Storage unavailable: %s", e)
        raise HTTPException(status_code=503, detail=str(e))
    if isinstance(e, DecodeAmbiguity):
        logger.error("Undecodable health metric row: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    raise e


def _select(scope_id: str, limit: Optional[str]) -> List[SensorEvent]:
    from_date, to_date = _limits(limit)
    try:
        return svc.select(scope_id, from_date, to_date)
    except (UnresolvedScope, StorageTransportError, DecodeAmbiguity) as e:
        _raise_http(e)


@app.get("/health")
def health():
    try:
        svc.health_check()
        return {"ok": True}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


@app.post("/participant/{participant_id}/sensor_event")
def create(participant_id: str, sensor_event: SensorEvent):
    try:
        svc.insert(participant_id, sensor_event)
        return {}
    except (UnknownParticipant, UnresolvedScope, StorageTransportError) as e:
        _raise_http(e)


@app.delete("/participant/{participant_id}/sensor_event")
def delete(participant_id: str, limit: Optional[str] = Query(None)):
    from_date, to_date = _limits(limit)
    try:
        return svc.retract(participant_id, from_date, to_date)
    except (UnknownParticipant, UnresolvedScope, StorageTransportError) as e:
        _raise_http(e)


@app.get("/participant/{participant_id}/sensor_event", response_model=List[SensorEvent])
def all_by_participant(participant_id: str, limit: Optional[str] = Query(None)):
    return _select(participant_id, limit)


@app.get("/study/{study_id}/sensor_event", response_model=List[SensorEvent])
def all_by_study(study_id: str, limit: Optional[str] = Query(None)):
    return _select(study_id, limit)


@app.get("/researcher/{researcher_id}/sensor_event", response_model=List[SensorEvent])
def all_by_researcher(researcher_id: str, limit: Optional[str] = Query(None)):
    return _select(researcher_id, limit)
