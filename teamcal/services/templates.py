"""HTML bodies for invite, cancellation and reminder emails."""

from datetime import datetime
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup, escape

env = Environment(
    loader=PackageLoader('teamcal', 'templates'),
    autoescape=select_autoescape(['html']),
    trim_blocks=True,
    keep_trailing_newline=False,
)


def _nl2br(value: str) -> Markup:
    return Markup('<br>').join(escape(line) for line in value.split('\n'))


env.filters['nl2br'] = _nl2br


def _when(local_start: datetime, local_end: Optional[datetime], timezone: str) -> str:
    text = local_start.strftime('%A, %B %d, %Y at %I:%M %p')
    if local_end is not None:
        if local_end.date() == local_start.date():
            text += local_end.strftime(' - %I:%M %p')
        else:
            text += local_end.strftime(' - %A, %B %d, %Y at %I:%M %p')
    return f"{text} ({timezone})"


def _render(template: str, **context) -> str:
    return env.get_template(f'emails/{template}').render(**context).strip()


def render_invite(team_name: str, name: str, local_start: datetime, local_end: Optional[datetime],
                  timezone: str, location: Optional[str], description: Optional[str],
                  recurrence: Optional[str] = None, updated: bool = False) -> str:
    return _render(
        'invite.html',
        team_name=team_name,
        name=name,
        when=_when(local_start, local_end, timezone),
        location=location,
        description=description,
        recurrence=recurrence,
        updated=updated,
    )


def render_cancellation(team_name: str, name: str, local_start: datetime, timezone: str) -> str:
    return _render(
        'cancellation.html',
        team_name=team_name,
        name=name,
        when=_when(local_start, None, timezone),
    )


def render_reminder(team_name: str, name: str, local_start: datetime, local_end: Optional[datetime],
                    timezone: str, location: Optional[str], description: Optional[str],
                    recipient_name: Optional[str] = None) -> str:
    return _render(
        'reminder.html',
        team_name=team_name,
        name=name,
        when=_when(local_start, local_end, timezone),
        location=location,
        description=description,
        recipient_name=recipient_name,
    )
