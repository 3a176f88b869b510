"""Subscribable calendar feed route."""

import logging

from fastapi import APIRouter, HTTPException, Response

from ...config.calendar import CalendarConfig
from ...db import db
from ...errors import NotFound
from ...ics import generate_feed
from ...models import TeamEvent
from ...services import ExclusionStore, MembershipDirectory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calendar"])

@router.get("/calendar/{team_number}")
def get_team_calendar(team_number: int):
    """
    Full iCalendar feed for a team, for calendar app subscriptions.

    The document is built completely before responding; on any failure the
    client gets an error status and no partial calendar.
    """
    try:
        with db.session() as session:
            team = MembershipDirectory(session).team_by_number(team_number)
            events = session.query(TeamEvent).filter(
                TeamEvent.team_id == team.id
            ).order_by(TeamEvent.start_at).all()
            exclusions = ExclusionStore(session).excluded_dates_by_event(
                [event.id for event in events], team.timezone
            )
            content = generate_feed(team, events, exclusions, CalendarConfig())
    except NotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except Exception as e:
        logger.error(f"Error generating calendar for team {team_number}: {e}")
        raise HTTPException(status_code=500, detail="Error generating calendar")

    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="team-{team_number}-calendar.ics"',
        },
    )
