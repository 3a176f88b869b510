"""Visibility rule sets (user groups) and their evaluation."""

from .rules import (
    AllUsers,
    SelectUsers,
    Roles,
    SubteamMembers,
    SubteamLeads,
    UnrecognizedCriterion,
    RuleRow,
    RuleSet,
    parse_rule_set,
    rule_set_to_json,
)
from .evaluator import MembershipFacts, matches, matches_facts

__all__ = [
    'AllUsers',
    'SelectUsers',
    'Roles',
    'SubteamMembers',
    'SubteamLeads',
    'UnrecognizedCriterion',
    'RuleRow',
    'RuleSet',
    'parse_rule_set',
    'rule_set_to_json',
    'MembershipFacts',
    'matches',
    'matches_facts',
]
