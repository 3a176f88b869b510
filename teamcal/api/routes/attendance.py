"""Attendance routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import current_user_id
from ..schemas import AttendanceUpdate, serialize_attendance, window_bound
from ...db import db
from ...errors import TeamCalendarError, ValidationError
from ...services import AttendanceTracker, EventService, MembershipDirectory

router = APIRouter(tags=["attendance"])


@router.get("/teams/{team_id}/attendance")
def attendance_for_range(
    team_id: str,
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    user_id: str = Depends(current_user_id),
):
    """The caller's attendance records for occurrences in ``[startDate, endDate)``."""
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team(team_id)
            start = window_bound(start_date, team.timezone)
            end = window_bound(end_date, team.timezone)
            if end < start:
                raise ValidationError("endDate must not be before startDate")
            records = AttendanceTracker(session).for_range(user_id, team_id, start, end)
            return [serialize_attendance(record, team.timezone) for record in records]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/teams/{team_id}/events/{event_id}/attendance/{occurrence_date}")
def get_attendance(
    team_id: str,
    event_id: str,
    occurrence_date: str,
    user_id: str = Depends(current_user_id),
):
    """The caller's record for one occurrence, created as 'not-sure' on first read."""
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            record = AttendanceTracker(session).get_or_create(user_id, event_id, occurrence_date)
            return serialize_attendance(record, event.team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.get("/teams/{team_id}/events/{event_id}/attendance/{occurrence_date}/all")
def get_occurrence_attendance(team_id: str, event_id: str, occurrence_date: str):
    """Every member's record for one occurrence."""
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            records = AttendanceTracker(session).for_occurrence(event_id, occurrence_date)
            return [serialize_attendance(record, event.team.timezone) for record in records]
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.patch("/teams/{team_id}/events/{event_id}/attendance")
def update_attendance(
    team_id: str,
    event_id: str,
    body: AttendanceUpdate,
    user_id: str = Depends(current_user_id),
):
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            record = AttendanceTracker(session).update(user_id, event_id, body.instance_date, body.status)
            return serialize_attendance(record, event.team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")


@router.post("/teams/{team_id}/events/{event_id}/attendance/{occurrence_date}/cycle")
def cycle_attendance(
    team_id: str,
    event_id: str,
    occurrence_date: str,
    user_id: str = Depends(current_user_id),
):
    """Advance yes -> not-sure -> no -> yes."""
    try:
        with db.session() as session:
            event = EventService(session).get(team_id, event_id)
            record = AttendanceTracker(session).cycle(user_id, event_id, occurrence_date)
            return serialize_attendance(record, event.team.timezone)
    except TeamCalendarError:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
