"""Tests for visibility rule parsing and evaluation."""

import logging

import pytest

from teamcal.errors import ValidationError
from teamcal.visibility import (
    AllUsers,
    MembershipFacts,
    Roles,
    RuleRow,
    RuleSet,
    SelectUsers,
    SubteamLeads,
    SubteamMembers,
    UnrecognizedCriterion,
    matches,
    matches_facts,
    parse_rule_set,
    rule_set_to_json,
)


def rules(*rows):
    return {'rows': [{'criteria': list(row)} for row in rows]}


MENTOR = MembershipFacts('u-mentor', frozenset({'Mentor'}), frozenset(), frozenset({'build'}))
STUDENT = MembershipFacts('u-student', frozenset({'Student'}), frozenset({'build'}), frozenset())
NO_ROLES = MembershipFacts('u-plain', frozenset(), frozenset(), frozenset())
OUTSIDER = MembershipFacts('u-outsider', None)


class TestParseRuleSet:
    def test_none_is_unrestricted(self):
        assert parse_rule_set(None) is None

    def test_rows_object(self):
        parsed = parse_rule_set({'rows': [{'id': 'r1', 'criteria': [
            {'type': 'roles', 'roles': ['Mentor']},
            {'type': 'subteam_members', 'subteamIds': ['build']},
        ]}]})
        assert parsed == RuleSet(rows=(RuleRow(
            criteria=(Roles(frozenset({'Mentor'})), SubteamMembers(frozenset({'build'}))),
            id='r1',
        ),))

    def test_bare_list_of_rows(self):
        parsed = parse_rule_set([[{'type': 'all_users'}], [{'type': 'select_users', 'userIds': ['a']}]])
        assert parsed.rows[0].criteria == (AllUsers(),)
        assert parsed.rows[1].criteria == (SelectUsers(frozenset({'a'})),)

    def test_unknown_type_fails_closed(self, caplog):
        with caplog.at_level(logging.WARNING):
            parsed = parse_rule_set(rules([{'type': 'birthday_today'}]))
        assert parsed.rows[0].criteria == (UnrecognizedCriterion('birthday_today'),)
        assert 'birthday_today' in caplog.text

    def test_unknown_type_rejected_when_strict(self):
        with pytest.raises(ValidationError):
            parse_rule_set(rules([{'type': 'birthday_today'}]), strict=True)

    @pytest.mark.parametrize("raw", [
        {'rows': 'everyone'},
        {'rows': [42]},
        {'rows': [{'criteria': 'roles'}]},
        rules(['roles']),
        rules([{'type': 'roles', 'roles': 'Mentor'}]),
    ])
    def test_malformed_rejected_when_strict(self, raw):
        with pytest.raises(ValidationError):
            parse_rule_set(raw, strict=True)

    @pytest.mark.parametrize("raw", [
        {'rows': 'everyone'},
        {'rows': [42]},
        {'rows': [{'criteria': 'roles'}]},
        {'rows': [{'criteria': [None]}]},
        rules(['all_users']),
        rules([{'type': 'roles', 'roles': 'Mentor'}]),
    ])
    def test_malformed_fails_closed(self, raw, caplog):
        with caplog.at_level(logging.WARNING):
            parsed = parse_rule_set(raw)
        assert not parsed.is_empty
        assert all(not matches_facts(facts, parsed) for facts in (MENTOR, STUDENT, NO_ROLES))
        assert 'never match' in caplog.text or 'denying' in caplog.text

    def test_json_shape(self):
        parsed = parse_rule_set([[{'type': 'roles', 'roles': ['Student', 'Mentor']}]])
        assert rule_set_to_json(parsed) == {'rows': [{
            'id': 'row-1',
            'criteria': [{'type': 'roles', 'roles': ['Mentor', 'Student']}],
        }]}

    def test_unknown_criterion_kept_in_json(self):
        raw = {'type': 'future_thing', 'level': 3}
        assert rule_set_to_json(parse_rule_set([[raw]]))['rows'][0]['criteria'] == [raw]


class TestMatches:
    def test_no_rules_means_all_active_members(self):
        assert matches_facts(STUDENT, None)
        assert matches_facts(NO_ROLES, {'rows': []})
        assert not matches_facts(OUTSIDER, None)
        assert not matches_facts(OUTSIDER, {'rows': []})

    def test_all_users(self):
        assert matches_facts(OUTSIDER, rules([{'type': 'all_users'}]))

    def test_select_users(self):
        rule_set = rules([{'type': 'select_users', 'userIds': ['u-student']}])
        assert matches_facts(STUDENT, rule_set)
        assert not matches_facts(MENTOR, rule_set)

    def test_roles(self):
        rule_set = rules([{'type': 'roles', 'roles': ['Mentor', 'Parent']}])
        assert matches_facts(MENTOR, rule_set)
        assert not matches_facts(STUDENT, rule_set)
        assert not matches_facts(OUTSIDER, rule_set)

    def test_empty_roles_selects_members_without_roles(self):
        rule_set = rules([{'type': 'roles', 'roles': []}])
        assert matches_facts(NO_ROLES, rule_set)
        assert not matches_facts(STUDENT, rule_set)
        assert not matches_facts(OUTSIDER, rule_set)

    def test_subteam_members_and_leads_differ(self):
        members = rules([{'type': 'subteam_members', 'subteamIds': ['build']}])
        leads = rules([{'type': 'subteam_leads', 'subteamIds': ['build']}])
        assert matches_facts(STUDENT, members)
        assert not matches_facts(MENTOR, members)
        assert matches_facts(MENTOR, leads)
        assert not matches_facts(STUDENT, leads)

    def test_empty_subteam_list_matches_nobody(self):
        rule_set = rules([{'type': 'subteam_members', 'subteamIds': []}])
        assert not matches_facts(STUDENT, rule_set)

    def test_criteria_in_a_row_are_anded(self):
        rule_set = rules([
            {'type': 'roles', 'roles': ['Student']},
            {'type': 'subteam_members', 'subteamIds': ['programming']},
        ])
        assert not matches_facts(STUDENT, rule_set)

    def test_rows_are_ored(self):
        rule_set = rules(
            [{'type': 'roles', 'roles': ['Mentor']}],
            [{'type': 'subteam_members', 'subteamIds': ['build']}],
        )
        assert matches_facts(MENTOR, rule_set)
        assert matches_facts(STUDENT, rule_set)
        assert not matches_facts(NO_ROLES, rule_set)

    def test_empty_row_matches_nobody(self):
        assert not matches_facts(MENTOR, rules([]))

    def test_unrecognized_criterion_never_matches(self):
        rule_set = rules(
            [{'type': 'all_users'}, {'type': 'mystery'}],
            [{'type': 'mystery'}],
        )
        assert not matches_facts(MENTOR, rule_set)

    def test_unrecognized_row_does_not_hide_other_rows(self):
        rule_set = rules([{'type': 'mystery'}], [{'type': 'roles', 'roles': ['Mentor']}])
        assert matches_facts(MENTOR, rule_set)

    def test_malformed_criterion_denies_only_its_row(self):
        rule_set = {'rows': [
            {'criteria': ['all_users']},
            {'criteria': [{'type': 'roles', 'roles': 'Mentor'}]},
            {'criteria': None},
            {'criteria': [{'type': 'roles', 'roles': ['Student']}]},
        ]}
        assert matches_facts(STUDENT, rule_set)
        assert not matches_facts(MENTOR, rule_set)
        assert not matches('x', {'Mentor'}, set(), set(), [['all_users']])

    def test_accepts_parsed_rule_set_and_plain_sets(self):
        rule_set = RuleSet(rows=(RuleRow(criteria=(SubteamLeads(frozenset({'build'})),)),))
        assert matches('u-1', {'Mentor'}, set(), {'build'}, rule_set)
        assert not matches('u-1', {'Mentor'}, {'build'}, set(), rule_set)
