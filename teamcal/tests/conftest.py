"""Shared fixtures: in-memory database, seeded team and a recording notifier."""

import os

# Must be set before teamcal.db creates its engine
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SEND_EVENT_INVITES'] = 'false'
os.environ['EMAIL_DONT_SEND'] = 'true'
os.environ['DEFAULT_TIMEZONE'] = 'America/New_York'
os.environ['DEFAULT_REMINDER_MINUTES'] = str(24 * 60)
os.environ['REMINDER_LOOKAHEAD_DAYS'] = '30'
os.environ.pop('CUSTOM_ADMIN_API_KEY', None)

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from teamcal.db import db
from teamcal.models import (
    Subteam,
    SubteamLeadPosition,
    SubteamMember,
    Team,
    TeamEvent,
    TeamMember,
    User,
    UserGroup,
)
from teamcal.services.notifier import Notifier, set_notifier

TZ = 'America/New_York'


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    """Keeps every message instead of sending it; can fail for chosen addresses."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.invites = []
        self.cancellations = []
        self.reminders = []

    def _check(self, address):
        if address in self.fail_for:
            raise RuntimeError(f"mailbox unavailable: {address}")

    def send_invite(self, address, subject, html_body, attachment):
        self._check(address)
        self.invites.append((address, subject, attachment))

    def send_cancellation(self, address, subject, html_body, attachment):
        self._check(address)
        self.cancellations.append((address, subject, attachment))

    def send_reminder(self, address, subject, html_body):
        self._check(address)
        self.reminders.append((address, subject, html_body))


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts with empty tables."""
    db.reset_schema()
    yield
    set_notifier(None)


@pytest.fixture
def notifier():
    recording = RecordingNotifier()
    set_notifier(recording)
    return recording


@pytest.fixture
def team_setup():
    """
    Team 1234 "Robotics" (America/New_York) with:
        alice  - Mentor, leads the Build subteam
        bob    - Student, member of Build, one-hour email reminders
        dave   - active member with no roles, reminders switched off
        carol  - Parent, text reminders only
        erin   - inactive Student
        zed    - not a member of the team
    """
    with db.session() as session:
        users = {
            'alice': User(email='alice@example.com', first_name='Alice'),
            'bob': User(email='bob@example.com', first_name='Bob',
                        event_notifications=[{'timeBefore': 60, 'method': 'email'}]),
            'dave': User(email='dave@example.com', first_name='Dave', event_notifications=[]),
            'carol': User(email='carol@example.com', first_name='Carol',
                          event_notifications=[{'timeBefore': 120, 'method': 'text'}]),
            'erin': User(email='erin@example.com', first_name='Erin'),
            'zed': User(email='zed@example.com', first_name='Zed'),
        }
        session.add_all(users.values())

        team = Team(team_number=1234, name='Robotics', timezone=TZ)
        session.add(team)
        session.flush()

        session.add_all([
            TeamMember(team_id=team.id, user_id=users['alice'].id, roles='Mentor'),
            TeamMember(team_id=team.id, user_id=users['bob'].id, roles='Student'),
            TeamMember(team_id=team.id, user_id=users['dave'].id, roles=''),
            TeamMember(team_id=team.id, user_id=users['carol'].id, roles='Parent'),
            TeamMember(team_id=team.id, user_id=users['erin'].id, roles='Student', status='inactive'),
        ])

        build = Subteam(team_id=team.id, name='Build')
        session.add(build)
        session.flush()
        session.add_all([
            SubteamMember(subteam_id=build.id, user_id=users['bob'].id),
            SubteamLeadPosition(subteam_id=build.id, title='Build Lead', user_id=users['alice'].id),
            SubteamLeadPosition(subteam_id=build.id, title='Assistant Lead', user_id=None),
        ])
        session.flush()

        return SimpleNamespace(
            team_id=team.id,
            team_number=team.team_number,
            build_id=build.id,
            **{name: user.id for name, user in users.items()},
        )


@pytest.fixture
def make_event(team_setup):
    """Insert an event (committed) and return its id."""

    def _make(**values):
        values.setdefault('name', 'Build night')
        values.setdefault('start_at', utc(2025, 11, 15, 19, 30))
        values.setdefault('created_by', team_setup.alice)
        with db.session() as session:
            event = TeamEvent(team_id=team_setup.team_id, **values)
            session.add(event)
            session.flush()
            return event.id

    return _make


@pytest.fixture
def make_group(team_setup):
    """Insert a user group with the given persisted rules and return its id."""

    def _make(rules, name='Group', created_by=None, is_public=True):
        with db.session() as session:
            group = UserGroup(
                team_id=team_setup.team_id,
                name=name,
                is_public=is_public,
                created_by=created_by or team_setup.alice,
                visibility_rules=rules,
            )
            session.add(group)
            session.flush()
            return group.id

    return _make
