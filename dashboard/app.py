# ruff: noqa: E402, I001
import sys
from pathlib import Path
from datetime import datetime, time, timezone

_repo_root = Path(__file__).resolve().parents[1]
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import matplotlib.pyplot as plt
import streamlit as st

from dashboard.formatting import (
    VITAL_CARDS,
    accept_reading,
    card_value,
    event_type_label,
    events_frame,
    fetch_or_keep,
    history_frame,
    level_badge,
    next_actions,
    page_caption,
    severity_badge,
    status_badge,
)
from safety.errors import FeedUnavailableError, HelmetMonitorError, InvalidCredentialsError, NotFoundError
from safety.models import EventFilter, EventStatus, EventType, Severity
from shared.api_client import HelmetApiClient
from shared.logging import configure_logging, get_logger
from shared.settings import get_settings

s = get_settings()
configure_logging(service_name="dashboard", level=s.LOG_LEVEL)
log = get_logger(__name__)

st.set_page_config(page_title="Helmet Safety Monitor", layout="wide")

PAGES = ["Dashboard", "Event History", "Worker Profile"]


@st.cache_resource
def get_client() -> HelmetApiClient:
    return HelmetApiClient.from_settings(s)


client = get_client()
state = st.session_state
state.setdefault("page", "Dashboard")
state.setdefault("token", None)
state.setdefault("selected_worker_id", None)
state.setdefault("reading", None)
state.setdefault("history", [])
state.setdefault("events_page", 1)


def go_to(page: str) -> None:
    state.page = page
    st.rerun()


# Session (toy login)
session = None
if state.token:
    try:
        session = client.current_session(state.token)
    except HelmetMonitorError as e:
        log.warning("session_check_failed", extra={"error": str(e)})
if session is None:
    state.token = None
    st.title("Helmet Safety Monitor")
    with st.form("login"):
        st.subheader("Supervisor login")
        email = st.text_input("Email", value="supervisor@example.com")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Sign in"):
            try:
                state.token = client.login(email, password).token
                st.rerun()
            except InvalidCredentialsError as e:
                st.error(str(e))
            except FeedUnavailableError as e:
                log.warning("login_failed", extra={"error": str(e)})
                st.error("The monitoring API is not reachable.")
    st.stop()

st.sidebar.write(f"Signed in as **{session.user.name}** ({session.user.role})")
if st.sidebar.button("Log out"):
    fetch_or_keep(lambda: client.logout(state.token), None, event="logout_failed")
    state.token = None
    st.rerun()
state.page = st.sidebar.radio("View", PAGES, index=PAGES.index(state.page))

try:
    workers = client.list_workers()
except FeedUnavailableError as e:
    log.warning("workers_fetch_failed", extra={"error": str(e)})
    st.error("The monitoring API is not reachable.")
    st.stop()
worker_names = {w.id: w.name for w in workers}


def render_reading(reading) -> None:
    for alert in reading.alerts:
        st.error(f"**{alert.title}**: {alert.description}", icon="🚨")

    cols = st.columns(3)
    for i, result in enumerate(reading.classifications):
        title, _ = VITAL_CARDS[result.signal.value]
        with cols[i % 3]:
            with st.container(border=True):
                st.caption(title)
                st.subheader(card_value(result))
                st.markdown(level_badge(result))
                if result.signal.value == "accelerometer":
                    acc = reading.sample.accelerometer
                    st.caption(f"X {acc.x:.2f} · Y {acc.y:.2f} · Z {acc.z:.2f}")
    st.caption(f"Last updated {reading.sample.timestamp:%b %d, %Y %H:%M:%S}")


def render_history(history) -> None:
    df = history_frame(history)
    if df.empty:
        st.info("No vitals history for this worker.")
        return
    fig = plt.figure()
    for column in df.columns:
        plt.plot(df.index, df[column], label=column)
    plt.xticks(rotation=45)
    plt.legend()
    st.pyplot(fig, clear_figure=True)


@st.fragment(run_every=s.POLL_INTERVAL_SECONDS)
def live_vitals(worker_id: str) -> None:
    try:
        reading = client.current_vitals(worker_id)
    except NotFoundError:
        state.selected_worker_id = None
        st.rerun()
    except FeedUnavailableError as e:
        # Keep the last good reading on screen.
        log.warning("vitals_refresh_failed", extra={"worker_id": worker_id, "error": str(e)})
        reading = None
    if reading is not None:
        if accept_reading(state.selected_worker_id, reading.sample.worker_id):
            state.reading = reading
        else:
            log.info("stale_vitals_discarded", extra={"worker_id": reading.sample.worker_id})
    if state.reading is not None and accept_reading(state.selected_worker_id, state.reading.sample.worker_id):
        render_reading(state.reading)


def dashboard_page() -> None:
    st.title("Worker Dashboard")
    if not workers:
        st.info("No workers registered.")
        return
    ids = [w.id for w in workers]
    if state.selected_worker_id not in ids:
        state.selected_worker_id = ids[0]
    selected = st.selectbox(
        "Worker",
        ids,
        index=ids.index(state.selected_worker_id),
        format_func=lambda wid: worker_names.get(wid, wid),
    )
    if selected != state.selected_worker_id:
        state.selected_worker_id = selected
        state.reading = None
        state.history = []

    worker = next(w for w in workers if w.id == selected)
    st.markdown(f"**{worker.name}** · {worker.position} · {worker.department} · Helmet `{worker.helmet_id}`")
    if st.button("View profile"):
        go_to("Worker Profile")

    live_vitals(selected)

    st.subheader("Vitals over the last 24 hours")
    try:
        state.history = client.vital_history(selected)
    except FeedUnavailableError as e:
        log.warning("history_fetch_failed", extra={"worker_id": selected, "error": str(e)})
    render_history(state.history)


def _bound(day, end: bool):
    if day is None:
        return None
    return datetime.combine(day, time.max if end else time.min, tzinfo=timezone.utc)


def events_page() -> None:
    st.title("Event History")
    st.caption("View and manage all safety events from worker helmets")

    with st.expander("Filters", expanded=True):
        c1, c2, c3 = st.columns(3)
        event_type = c1.selectbox("Event type", [None] + list(EventType), format_func=lambda t: "All" if t is None else event_type_label(t))
        status = c2.selectbox("Status", [None] + list(EventStatus), format_func=lambda v: "All" if v is None else v.value.capitalize())
        severity = c3.selectbox("Severity", [None] + list(Severity), format_func=lambda v: "All" if v is None else v.value.capitalize())
        d1, d2, d3 = st.columns(3)
        from_day = d1.date_input("From", value=None)
        to_day = d2.date_input("To", value=None)
        search = d3.text_input("Search", placeholder="ID, worker, helmet, description")

    flt = EventFilter(
        event_type=event_type,
        status=status,
        severity=severity,
        from_date=_bound(from_day, end=False),
        to_date=_bound(to_day, end=True),
        search=search or None,
    )
    filter_key = flt.model_dump_json()
    if state.get("events_filter_key") != filter_key:
        state.events_filter_key = filter_key
        state.events_page = 1

    try:
        page = client.events_page(flt, page=state.events_page, page_size=s.EVENTS_PAGE_SIZE)
    except FeedUnavailableError as e:
        log.warning("events_fetch_failed", extra={"error": str(e)})
        st.error("Could not load events.")
        return
    state.events_page = page.page

    st.dataframe(events_frame(page.items, workers), use_container_width=True, hide_index=True)
    st.caption(page_caption(page))

    prev_col, _, next_col = st.columns([1, 4, 1])
    if prev_col.button("← Previous", disabled=not page.has_previous):
        state.events_page = page.page - 1
        st.rerun()
    if next_col.button("Next →", disabled=not page.has_next):
        state.events_page = page.page + 1
        st.rerun()

    st.subheader("Update status")
    for event in page.items:
        actions = next_actions(event.status)
        row = st.columns([2, 3, 2, 2, 3])
        row[0].write(event.id)
        row[1].write(f"{event_type_label(event.event_type)} · {worker_names.get(event.worker_id, 'Unknown')}")
        row[2].markdown(severity_badge(event.severity))
        row[3].markdown(status_badge(event.status))
        with row[4]:
            for target in actions:
                label = "Acknowledge" if target is EventStatus.ACKNOWLEDGED else "Resolve"
                if st.button(label, key=f"{event.id}-{target.value}"):
                    try:
                        client.update_event_status(event.id, target, token=state.token)
                    except NotFoundError:
                        go_to("Event History")
                    except FeedUnavailableError as e:
                        log.warning("event_update_failed", extra={"event_id": event.id, "error": str(e)})
                        st.error("Could not update the event.")
                    else:
                        st.rerun()


def profile_page() -> None:
    worker_id = state.selected_worker_id
    worker, ok = fetch_or_keep(
        lambda: client.get_worker(worker_id) if worker_id else None,
        None,
        event="worker_fetch_failed",
        worker_id=worker_id,
    )
    if not ok:
        st.error("Could not load the worker profile.")
        return
    if worker is None:
        go_to("Dashboard")

    st.title(worker.name)
    left, right = st.columns([1, 2])
    with left:
        if worker.photo:
            st.image(worker.photo, width=200)
        st.write(f"**Department:** {worker.department}")
        st.write(f"**Position:** {worker.position}")
        st.write(f"**Helmet:** {worker.helmet_id}")
        helmet, ok = fetch_or_keep(
            lambda: client.get_helmet(worker.helmet_id), None, event="helmet_fetch_failed", helmet_id=worker.helmet_id
        )
        if not ok:
            st.error("Could not load the helmet status.")
        if helmet is not None:
            st.progress(helmet.battery_level / 100, text=f"Battery {helmet.battery_level}%")
            st.caption(f"Helmet status: {helmet.status}")
    with right:
        live_vitals(worker.id)
        state.history, ok = fetch_or_keep(
            lambda: client.vital_history(worker.id), state.history, event="history_fetch_failed", worker_id=worker.id
        )
        if not ok:
            st.error("Could not refresh the vitals history.")
        render_history(state.history)

    st.subheader("Recent events")
    recent, ok = fetch_or_keep(
        lambda: client.events_page(EventFilter(worker_id=worker.id), page=1, page_size=5).items,
        [],
        event="events_fetch_failed",
        worker_id=worker.id,
    )
    if not ok:
        st.error("Could not load recent events.")
    elif not recent:
        st.info("No events recorded for this worker.")
    else:
        st.dataframe(events_frame(recent, workers), use_container_width=True, hide_index=True)
    if st.button("View all events"):
        go_to("Event History")


if state.page == "Dashboard":
    dashboard_page()
elif state.page == "Event History":
    events_page()
else:
    profile_page()
