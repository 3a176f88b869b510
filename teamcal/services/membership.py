"""Read-only view of team membership for visibility decisions."""

from collections import defaultdict
from typing import Dict, FrozenSet, List, Optional, Set

from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import (
    Subteam,
    SubteamLeadPosition,
    SubteamMember,
    Team,
    TeamMember,
    User,
)
from ..visibility import MembershipFacts, matches_facts

ACTIVE = 'active'


class MembershipDirectory:
    """
    Answers "who is in this team, with which roles, in which subteams".

    Only active memberships count. Lead positions without a user are
    ignored.
    """

    def __init__(self, session: Session):
        self.session = session

    def team(self, team_id: str) -> Team:
        team = self.session.get(Team, team_id)
        if team is None:
            raise NotFound(f"Team {team_id} not found")
        return team

    def team_by_number(self, team_number: int) -> Team:
        team = self.session.query(Team).filter(Team.team_number == team_number).first()
        if team is None:
            raise NotFound("Team not found")
        return team

    def active_members(self, team_id: str) -> List[TeamMember]:
        return self.session.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.status == ACTIVE,
        ).all()

    def member_roles(self, team_id: str, user_id: str) -> Optional[FrozenSet[str]]:
        """Roles of an active member, or None if the user is not one."""
        member = self.session.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
            TeamMember.status == ACTIVE,
        ).first()
        return frozenset(member.role_list) if member else None

    def subteam_members(self, subteam_id: str) -> Set[str]:
        rows = self.session.query(SubteamMember.user_id).filter(
            SubteamMember.subteam_id == subteam_id
        ).all()
        return {row.user_id for row in rows}

    def subteam_leads(self, subteam_id: str) -> Set[str]:
        rows = self.session.query(SubteamLeadPosition.user_id).filter(
            SubteamLeadPosition.subteam_id == subteam_id,
            SubteamLeadPosition.user_id.isnot(None),
        ).all()
        return {row.user_id for row in rows}

    def _subteam_index(self, team_id: str):
        memberships: Dict[str, Set[str]] = defaultdict(set)
        leads: Dict[str, Set[str]] = defaultdict(set)

        member_rows = self.session.query(SubteamMember.user_id, SubteamMember.subteam_id).join(
            Subteam, Subteam.id == SubteamMember.subteam_id
        ).filter(Subteam.team_id == team_id).all()
        for row in member_rows:
            memberships[row.user_id].add(row.subteam_id)

        lead_rows = self.session.query(SubteamLeadPosition.user_id, SubteamLeadPosition.subteam_id).join(
            Subteam, Subteam.id == SubteamLeadPosition.subteam_id
        ).filter(
            Subteam.team_id == team_id,
            SubteamLeadPosition.user_id.isnot(None),
        ).all()
        for row in lead_rows:
            leads[row.user_id].add(row.subteam_id)

        return memberships, leads

    def facts(self, team_id: str, user_id: str) -> MembershipFacts:
        """Everything the visibility evaluator needs about one user."""
        memberships, leads = self._subteam_index(team_id)
        return MembershipFacts(
            user_id=user_id,
            roles=self.member_roles(team_id, user_id),
            subteams=frozenset(memberships.get(user_id, ())),
            lead_subteams=frozenset(leads.get(user_id, ())),
        )

    def all_facts(self, team_id: str) -> List[MembershipFacts]:
        """Facts for every active member of the team."""
        memberships, leads = self._subteam_index(team_id)
        return [
            MembershipFacts(
                user_id=member.user_id,
                roles=frozenset(member.role_list),
                subteams=frozenset(memberships.get(member.user_id, ())),
                lead_subteams=frozenset(leads.get(member.user_id, ())),
            )
            for member in self.active_members(team_id)
        ]

    def resolve_recipients(self, team_id: str, rule_set) -> List[User]:
        """Active members selected by a rule set (None means every member)."""
        selected = [f.user_id for f in self.all_facts(team_id) if matches_facts(f, rule_set)]
        if not selected:
            return []
        return self.session.query(User).filter(User.id.in_(selected)).order_by(User.email).all()
