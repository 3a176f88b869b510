"""Team event routes: CRUD, occurrence listing and exclusions."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from ..deps import current_user_id, optional_user_id
from ..schemas import (
    EventCreate,
    EventUpdate,
    event_values,
    serialize_event,
    serialize_exclusion,
    serialize_occurrence,
    window_bound,
)
from ...config.calendar import CalendarConfig
from ...db import db
from ...errors import TeamCalendarError, ValidationError
from ...ics import MessageMethod
from ...services import (
    EventService,
    ExclusionStore,
    MembershipDirectory,
    deliver_notice,
    prepare_notice,
)
from ...utils.timezone import parse_civil_date

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


def _window(start_date: Optional[str], end_date: Optional[str], timezone: str):
    if start_date is None and end_date is None:
        return None
    if start_date is None or end_date is None:
        raise ValidationError("startDate and endDate must be given together")
    start = window_bound(start_date, timezone)
    end = window_bound(end_date, timezone)
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    return start, end


@router.post("/teams/{team_id}/events", status_code=201)
def create_event(
    team_id: str,
    body: EventCreate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
):
    """Create an event; invites go out in the background when enabled."""
    config = CalendarConfig()
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team(team_id)
            event = EventService(session).create(team_id, user_id, event_values(body, team.timezone))
            notice = None
            if config.send_event_invites:
                notice = prepare_notice(session, event, MessageMethod.INVITE, event.sequence, config)
            response = serialize_event(event, team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    if notice is not None:
        background_tasks.add_task(deliver_notice, notice)
    return response


@router.get("/teams/{team_id}/events")
def list_events(
    team_id: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: Optional[str] = Depends(optional_user_id),
):
    """
    List the team's events visible to the caller.

    With a ``startDate``/``endDate`` window each event carries its
    occurrences in ``[startDate, endDate)`` and events without any are left out.
    """
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team(team_id)
            service = EventService(session)
            events = service.list_events(team_id, user_id)
            window = _window(start_date, end_date, team.timezone)
            if window is None:
                return [serialize_event(event, team.timezone) for event in events]

            occurrences = service.occurrences(team_id, window[0], window[1], events=events)
            by_event = {}
            for occurrence in occurrences:
                by_event.setdefault(occurrence.event.id, []).append(
                    serialize_occurrence(occurrence, team.timezone)
                )
            result = []
            for event in events:
                if event.id in by_event:
                    item = serialize_event(event, team.timezone)
                    item['occurrences'] = by_event[event.id]
                    result.append(item)
            return result
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/teams/{team_id}/occurrences")
def list_occurrences(
    team_id: str,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    user_id: Optional[str] = Depends(optional_user_id),
):
    """Flat, time-ordered list of occurrences in ``[startDate, endDate)``."""
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team(team_id)
            start, end = _window(start_date, end_date, team.timezone)
            occurrences = EventService(session).occurrences(team_id, start, end, viewer_id=user_id)
            return [serialize_occurrence(occurrence, team.timezone) for occurrence in occurrences]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/teams/{team_id}/events/{event_id}")
def get_event(team_id: str, event_id: str):
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            return serialize_event(event, event.team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.patch("/teams/{team_id}/events/{event_id}")
def update_event(
    team_id: str,
    event_id: str,
    body: EventUpdate,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
):
    """Partially update an event; bumps its sequence and re-sends invites when enabled."""
    config = CalendarConfig()
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team(team_id)
            changes = event_values(body, team.timezone, partial=True)
            event = EventService(session).update(team_id, event_id, changes)
            notice = None
            if config.send_event_invites:
                notice = prepare_notice(session, event, MessageMethod.INVITE, event.sequence, config)
            response = serialize_event(event, team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    logger.info(f"User {user_id} updated event {event_id}")
    if notice is not None:
        background_tasks.add_task(deliver_notice, notice)
    return response


@router.delete("/teams/{team_id}/events/{event_id}")
def delete_event(
    team_id: str,
    event_id: str,
    background_tasks: BackgroundTasks,
    occurrence_date: Optional[str] = Query(None, alias="occurrenceDate"),
    user_id: str = Depends(current_user_id),
):
    """
    Delete a whole series, or with ``occurrenceDate`` just one occurrence.

    Deleting an occurrence of a non-recurring event deletes the event.
    """
    config = CalendarConfig()
    try:
        with db.session() as session:
            service = EventService(session)
            event = service.get(team_id, event_id)
            notice = None

            if occurrence_date is not None and event.is_recurring:
                day = parse_civil_date(occurrence_date, event.team.timezone)
                service.delete_occurrence(team_id, event_id, day)
                scope = "occurrence"
            else:
                if config.send_event_invites:
                    notice = prepare_notice(
                        session, event, MessageMethod.CANCEL, (event.sequence or 0) + 1, config
                    )
                service.delete_series(team_id, event_id)
                scope = "series"
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    logger.info(f"User {user_id} deleted {scope} of event {event_id}")
    if notice is not None:
        background_tasks.add_task(deliver_notice, notice)
    return {"status": "success", "deleted": scope}


@router.get("/teams/{team_id}/events/{event_id}/exclusions")
def list_exclusions(team_id: str, event_id: str):
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            exclusions = ExclusionStore(session).list_for_event(event_id)
            return [serialize_exclusion(exclusion, event.team.timezone) for exclusion in exclusions]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.delete("/teams/{team_id}/events/{event_id}/exclusions/{occurrence_date}")
def restore_occurrence(
    team_id: str,
    event_id: str,
    occurrence_date: str,
    user_id: str = Depends(current_user_id),
):
    """Undo the cancellation of one occurrence."""
    try:
        with db.session() as session:
            EventService(session).get(team_id, event_id)
            ExclusionStore(session).remove(event_id, occurrence_date)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    logger.info(f"User {user_id} restored occurrence {occurrence_date} of event {event_id}")
    return {"status": "success"}
