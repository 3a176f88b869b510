"""User groups: named visibility rule sets owned by their creator."""

import logging
from typing import Any, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .membership import MembershipDirectory
from ..errors import Forbidden, NotFound, ValidationError
from ..models import User, UserGroup
from ..visibility import parse_rule_set, rule_set_to_json

logger = logging.getLogger(__name__)


class UserGroupService:
    def __init__(self, session: Session):
        self.session = session
        self.directory = MembershipDirectory(session)

    def _normalize_rules(self, rules: Any) -> Optional[dict]:
        return rule_set_to_json(parse_rule_set(rules, strict=True))

    def get(self, team_id: str, group_id: str, user_id: Optional[str] = None) -> UserGroup:
        group = self.session.get(UserGroup, group_id)
        if group is None or group.team_id != team_id:
            raise NotFound(f"User group {group_id} not found")
        if user_id is not None and not group.is_public and group.created_by != user_id:
            raise NotFound(f"User group {group_id} not found")
        return group

    def list_groups(self, team_id: str, user_id: str) -> List[UserGroup]:
        """Public groups plus the caller's own private ones."""
        return self.session.query(UserGroup).filter(
            UserGroup.team_id == team_id,
            or_(UserGroup.is_public.is_(True), UserGroup.created_by == user_id),
        ).order_by(UserGroup.name).all()

    def create(self, team_id: str, user_id: str, name: str, is_public: bool = False,
               rules: Any = None) -> UserGroup:
        self.directory.team(team_id)
        name = (name or '').strip()
        if not name:
            raise ValidationError("Group name is required")
        group = UserGroup(
            team_id=team_id,
            name=name,
            is_public=bool(is_public),
            created_by=user_id,
            visibility_rules=self._normalize_rules(rules),
        )
        self.session.add(group)
        self.session.flush()
        logger.info(f"User {user_id} created group {group.id} ({name}) in team {team_id}")
        return group

    def update(self, team_id: str, group_id: str, user_id: str, **changes) -> UserGroup:
        """Only the creator may change a group."""
        group = self.get(team_id, group_id)
        if group.created_by != user_id:
            raise Forbidden("Only the creator can update this group")
        if 'name' in changes and changes['name'] is not None:
            name = changes['name'].strip()
            if not name:
                raise ValidationError("Group name is required")
            group.name = name
        if changes.get('is_public') is not None:
            group.is_public = bool(changes['is_public'])
        if 'rules' in changes:
            group.visibility_rules = self._normalize_rules(changes['rules'])
        self.session.flush()
        return group

    def delete(self, team_id: str, group_id: str, user_id: str) -> None:
        group = self.get(team_id, group_id)
        if group.created_by != user_id:
            raise Forbidden("Only the creator can delete this group")
        self.session.delete(group)
        self.session.flush()
        logger.info(f"User {user_id} deleted group {group_id}")

    def members(self, team_id: str, group_id: str, user_id: Optional[str] = None) -> List[User]:
        group = self.get(team_id, group_id, user_id)
        return self.directory.resolve_recipients(team_id, group.visibility_rules)
