"""Evaluate visibility rule sets against a user's membership facts."""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Optional

from .rules import (
    AllUsers,
    SelectUsers,
    Roles,
    SubteamMembers,
    SubteamLeads,
    UnrecognizedCriterion,
    Criterion,
    RuleRow,
    RuleSet,
    parse_rule_set,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MembershipFacts:
    """
    What the evaluator needs to know about a user within one team.

    ``roles`` is None when the user is not an active member of the team.
    ``lead_subteams`` holds subteams where the user fills a lead position.
    """
    user_id: str
    roles: Optional[frozenset] = None
    subteams: frozenset = frozenset()
    lead_subteams: frozenset = frozenset()

    @property
    def is_member(self) -> bool:
        return self.roles is not None


def _criterion_matches(criterion: Criterion, user_id: str, user_roles: Optional[AbstractSet[str]],
                       subteam_memberships: AbstractSet[str],
                       subteam_lead_positions: AbstractSet[str]) -> bool:
    if isinstance(criterion, AllUsers):
        return True
    if isinstance(criterion, SelectUsers):
        return user_id in criterion.user_ids
    if isinstance(criterion, Roles):
        if user_roles is None:
            return False
        if not criterion.roles:
            # Empty role list selects members holding no role at all
            return len(user_roles) == 0
        return any(role in criterion.roles for role in user_roles)
    if isinstance(criterion, SubteamMembers):
        return bool(criterion.subteam_ids) and any(
            subteam_id in subteam_memberships for subteam_id in criterion.subteam_ids
        )
    if isinstance(criterion, SubteamLeads):
        return bool(criterion.subteam_ids) and any(
            subteam_id in subteam_lead_positions for subteam_id in criterion.subteam_ids
        )
    if isinstance(criterion, UnrecognizedCriterion):
        logger.warning(f"Visibility criterion {criterion.type!r} is not recognized; denying")
        return False
    logger.warning(f"Unexpected visibility criterion {criterion!r}; denying")
    return False


def _row_matches(row: RuleRow, *facts) -> bool:
    if not row.criteria:
        return False
    return all(_criterion_matches(criterion, *facts) for criterion in row.criteria)


def matches(user_id: str,
            user_roles: Optional[AbstractSet[str]],
            subteam_memberships: AbstractSet[str],
            subteam_lead_positions: AbstractSet[str],
            rule_set: Any) -> bool:
    """
    Decide whether a user is selected by a rule set.

    Rows are OR-ed and criteria within a row are AND-ed; both short-circuit.
    An absent or row-less rule set means no restriction: every active team
    member (``user_roles`` not None) matches and nobody else does.

    Args:
        user_id: The user being evaluated
        user_roles: Roles held in the team, or None if not a member
        subteam_memberships: Subteam ids the user belongs to
        subteam_lead_positions: Subteam ids where the user holds a lead position
        rule_set: RuleSet, its persisted JSON, or None

    Returns:
        True if visible
    """
    rules = parse_rule_set(rule_set) if not isinstance(rule_set, RuleSet) else rule_set
    if rules is None or rules.is_empty:
        return user_roles is not None

    facts = (
        user_id,
        frozenset(user_roles) if user_roles is not None else None,
        frozenset(subteam_memberships or ()),
        frozenset(subteam_lead_positions or ()),
    )
    return any(_row_matches(row, *facts) for row in rules.rows)


def matches_facts(facts: MembershipFacts, rule_set: Any) -> bool:
    return matches(facts.user_id, facts.roles, facts.subteams, facts.lead_subteams, rule_set)
