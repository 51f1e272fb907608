from datetime import datetime, time, timezone
from typing import List, Optional
import sys
from pathlib import Path

_repo_root = Path(__file__).resolve().parents[1]
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))
from dateutil.parser import isoparse
from fastapi import Depends, FastAPI, HTTPException, Header, Query

from api.backend import Backend, get_backend, init_backend
from api.schemas import CurrentVitals, LoginRequest, RegisterRequest, StatusUpdate
from safety.alerts import evaluate_alerts
from safety.errors import EventNotFoundError, InvalidCredentialsError, UserExistsError, WorkerNotFoundError
from safety.events import paginate
from safety.models import (
    Event,
    EventFilter,
    EventStatus,
    EventType,
    HelmetData,
    Page,
    Session,
    Severity,
    VitalSample,
    Worker,
)
from safety.thresholds import classify_sample

from shared.logging import configure_logging, get_logger
from shared.settings import get_settings


settings = get_settings()
configure_logging(service_name="api", level=settings.LOG_LEVEL)
log = get_logger(__name__)


def require_api_key(x_api_key: str = Header(default="")):
    if not settings.API_KEY:
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


async def optional_session(
    x_session_token: str = Header(default=""), backend: Backend = Depends(get_backend)
) -> Optional[Session]:
    if not x_session_token:
        return None
    return await backend.sessions.current_session(x_session_token)


def parse_bound(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime. A bare date used as an upper bound covers that whole day."""
    if not value:
        return None
    try:
        parsed = isoparse(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {value}") from None
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


app = FastAPI(title="Helmet Safety Monitor API")

@app.on_event("startup")
def startup_event():
    log.info("starting")
    if getattr(app.state, "backend", None) is None:
        app.state.backend = init_backend(settings)

@app.on_event("shutdown")
def shutdown_event():
    log.info("shutting_down")

@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/workers", response_model=List[Worker], dependencies=[Depends(require_api_key)])
async def list_workers(backend: Backend = Depends(get_backend)):
    return await backend.feed.list_workers()

@app.get("/workers/{worker_id}", response_model=Worker, dependencies=[Depends(require_api_key)])
async def get_worker(worker_id: str, backend: Backend = Depends(get_backend)):
    worker = await backend.feed.get_worker(worker_id)
    if worker is None:
        raise HTTPException(status_code=404, detail="Worker not found")
    return worker

@app.get("/helmets/{helmet_id}", response_model=HelmetData, dependencies=[Depends(require_api_key)])
async def get_helmet(helmet_id: str, backend: Backend = Depends(get_backend)):
    helmet = await backend.feed.get_helmet(helmet_id)
    if helmet is None:
        raise HTTPException(status_code=404, detail="Helmet not found")
    return helmet

@app.get("/workers/{worker_id}/vitals/current", response_model=CurrentVitals, dependencies=[Depends(require_api_key)])
async def current_vitals(worker_id: str, backend: Backend = Depends(get_backend)):
    try:
        sample = await backend.feed.get_current_vital(worker_id)
    except WorkerNotFoundError:
        raise HTTPException(status_code=404, detail="Worker not found") from None

    alerts = evaluate_alerts(sample)
    if alerts:
        log.info(
            "alerts_raised",
            extra={"worker_id": worker_id, "alerts": [a.kind.value for a in alerts]},
        )
    return CurrentVitals(sample=sample, classifications=classify_sample(sample), alerts=alerts)

@app.get("/workers/{worker_id}/vitals/history", response_model=List[VitalSample], dependencies=[Depends(require_api_key)])
async def vitals_history(worker_id: str, backend: Backend = Depends(get_backend)):
    if await backend.feed.get_worker(worker_id) is None:
        raise HTTPException(status_code=404, detail="Worker not found")
    return await backend.feed.get_vital_history(worker_id)

@app.get("/events", response_model=Page[Event], dependencies=[Depends(require_api_key)])
async def query_events(
    worker_id: Optional[str] = None,
    event_type: Optional[EventType] = None,
    status: Optional[EventStatus] = None,
    severity: Optional[Severity] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.EVENTS_PAGE_SIZE, ge=1, le=500),
    backend: Backend = Depends(get_backend),
):
    flt = EventFilter(
        worker_id=worker_id,
        event_type=event_type,
        status=status,
        severity=severity,
        from_date=parse_bound(from_date),
        to_date=parse_bound(to_date, end_of_day=True),
        search=search or None,
    )
    events = await backend.events.list_events(flt)
    return paginate(events, page=page, page_size=page_size)

@app.patch("/events/{event_id}/status", response_model=Event, dependencies=[Depends(require_api_key)])
async def update_event_status(
    event_id: str,
    body: StatusUpdate,
    session: Optional[Session] = Depends(optional_session),
    backend: Backend = Depends(get_backend),
):
    actor = session.user.name if session is not None else None
    try:
        return await backend.events.update_event_status(event_id, body.status, actor)
    except EventNotFoundError:
        raise HTTPException(status_code=404, detail="Event not found") from None

@app.post("/auth/login", response_model=Session, dependencies=[Depends(require_api_key)])
async def login(body: LoginRequest, backend: Backend = Depends(get_backend)):
    try:
        return await backend.sessions.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from None

@app.post("/auth/register", response_model=Session, dependencies=[Depends(require_api_key)])
async def register(body: RegisterRequest, backend: Backend = Depends(get_backend)):
    try:
        return await backend.sessions.register(body.name, body.email, body.password)
    except UserExistsError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None

@app.get("/auth/session", response_model=Session, dependencies=[Depends(require_api_key)])
async def current_session(session: Optional[Session] = Depends(optional_session)):
    if session is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return session

@app.post("/auth/logout", dependencies=[Depends(require_api_key)])
async def logout(x_session_token: str = Header(default=""), backend: Backend = Depends(get_backend)):
    if x_session_token:
        await backend.sessions.logout(x_session_token)
    return {"status": "ok"}
