"""Visibility rule set model.

A rule set is a list of rows; a user is visible to the rule set when every
criterion of at least one row matches them (OR of ANDs). Criteria are a
closed set of frozen dataclasses produced once at parse time.

Persisted shape (camelCase, as stored on ``user_groups.visibility_rules``)::

    {"rows": [{"id": "row-1", "criteria": [
        {"type": "roles", "roles": ["Mentor"]},
        {"type": "subteam_members", "subteamIds": ["..."]}
    ]}]}

A bare list of rows, each a list of criteria, is accepted too.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from ..errors import ValidationError

logger = logging.getLogger(__name__)

CRITERION_TYPES = ('all_users', 'select_users', 'roles', 'subteam_members', 'subteam_leads')


@dataclass(frozen=True)
class AllUsers:
    pass


@dataclass(frozen=True)
class SelectUsers:
    user_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Roles:
    roles: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class SubteamMembers:
    subteam_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class SubteamLeads:
    subteam_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class UnrecognizedCriterion:
    """A criterion whose type is unknown; never matches."""
    type: str
    raw: Any = field(default=None, compare=False, hash=False)


Criterion = Union[AllUsers, SelectUsers, Roles, SubteamMembers, SubteamLeads, UnrecognizedCriterion]


@dataclass(frozen=True)
class RuleRow:
    criteria: Tuple[Criterion, ...] = ()
    id: Optional[str] = None


@dataclass(frozen=True)
class RuleSet:
    rows: Tuple[RuleRow, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.rows


MALFORMED = 'malformed'


def _id_set(raw: Dict[str, Any], key: str) -> FrozenSet[str]:
    values = raw.get(key) or []
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"'{key}' must be a list")
    return frozenset(str(value) for value in values)


def _parse_known(raw: Any, strict: bool) -> Criterion:
    if not isinstance(raw, dict):
        raise ValidationError(f"Criterion must be an object, got {raw!r}")
    kind = raw.get('type')
    if kind == 'all_users':
        return AllUsers()
    if kind == 'select_users':
        return SelectUsers(_id_set(raw, 'userIds'))
    if kind == 'roles':
        return Roles(_id_set(raw, 'roles'))
    if kind == 'subteam_members':
        return SubteamMembers(_id_set(raw, 'subteamIds'))
    if kind == 'subteam_leads':
        return SubteamLeads(_id_set(raw, 'subteamIds'))
    if strict:
        raise ValidationError(f"Unknown criterion type: {kind!r}")
    logger.warning(f"Unrecognized visibility criterion type {kind!r}; it will never match")
    return UnrecognizedCriterion(type=str(kind), raw=raw)


def parse_criterion(raw: Any, strict: bool = False) -> Criterion:
    """
    Parse one criterion.

    Unknown types and malformed criteria fail closed unless ``strict``, in
    which case they raise ``ValidationError``.
    """
    try:
        return _parse_known(raw, strict)
    except ValidationError as e:
        if strict:
            raise
        logger.warning(f"Malformed visibility criterion {raw!r} ({e}); it will never match")
        return UnrecognizedCriterion(type=MALFORMED, raw=raw)


def _denying_row(raw: Any) -> RuleRow:
    return RuleRow(criteria=(UnrecognizedCriterion(type=MALFORMED, raw=raw),))


def _parse_row(raw: Any, strict: bool) -> RuleRow:
    if isinstance(raw, (list, tuple)):
        return RuleRow(criteria=tuple(parse_criterion(c, strict) for c in raw))
    if isinstance(raw, dict):
        criteria = raw.get('criteria') or []
        if isinstance(criteria, (list, tuple)):
            return RuleRow(
                criteria=tuple(parse_criterion(c, strict) for c in criteria),
                id=raw.get('id'),
            )
        message = "Row 'criteria' must be a list"
    else:
        message = f"Rule row must be a list or object, got {raw!r}"
    if strict:
        raise ValidationError(message)
    logger.warning(f"{message}; the row will never match")
    return _denying_row(raw)


def parse_rule_set(raw: Any, strict: bool = False) -> Optional[RuleSet]:
    """
    Parse a persisted or submitted rule set.

    Stored rule sets are parsed leniently: anything malformed becomes a
    criterion that never matches, so a damaged row denies while the other
    rows still apply. Submitted rule sets are parsed with ``strict``.

    Args:
        raw: ``None``, ``{"rows": [...]}`` or a list of rows
        strict: Reject unknown criterion types and malformed structure

    Returns:
        RuleSet, or None when ``raw`` is None (no restriction configured)

    Raises:
        ValidationError: If ``strict`` and the structure is malformed
    """
    if raw is None:
        return None
    if isinstance(raw, RuleSet):
        return raw
    if isinstance(raw, dict):
        rows = raw.get('rows') or []
    else:
        rows = raw
    if not isinstance(rows, (list, tuple)):
        if strict:
            raise ValidationError("Rule set rows must be a list")
        logger.warning(f"Visibility rule set {raw!r} is malformed; denying everyone")
        return RuleSet(rows=(_denying_row(raw),))
    return RuleSet(rows=tuple(_parse_row(row, strict) for row in rows))


def _criterion_to_json(criterion: Criterion) -> Dict[str, Any]:
    if isinstance(criterion, AllUsers):
        return {'type': 'all_users'}
    if isinstance(criterion, SelectUsers):
        return {'type': 'select_users', 'userIds': sorted(criterion.user_ids)}
    if isinstance(criterion, Roles):
        return {'type': 'roles', 'roles': sorted(criterion.roles)}
    if isinstance(criterion, SubteamMembers):
        return {'type': 'subteam_members', 'subteamIds': sorted(criterion.subteam_ids)}
    if isinstance(criterion, SubteamLeads):
        return {'type': 'subteam_leads', 'subteamIds': sorted(criterion.subteam_ids)}
    return dict(criterion.raw) if isinstance(criterion.raw, dict) else {'type': criterion.type}


def rule_set_to_json(rule_set: Optional[RuleSet]) -> Optional[Dict[str, List[Dict[str, Any]]]]:
    """Persisted shape of a rule set."""
    if rule_set is None:
        return None
    rows = []
    for index, row in enumerate(rule_set.rows):
        rows.append({
            'id': row.id or f"row-{index + 1}",
            'criteria': [_criterion_to_json(c) for c in row.criteria],
        })
    return {'rows': rows}
