"""
Unit tests for the authorization rules and evaluator.
"""

import itertools

import pytest

from service_authz.app.directory import InMemoryDirectory, Proposal, Session, Subject
from service_authz.app.rules import (
    RULES,
    AuthorizationEvaluator,
    PermissionTable,
    beamline_admin,
    proposal_member,
    session_member,
)
from service_authz.app.rules.models import RuleContext
from service_authz.app.validation import VerifiedClaims
from shared.test_helpers import DirectoryFactory


def claims_for(fedid: str) -> VerifiedClaims:
    return VerifiedClaims(fedid=fedid, claims={"fedid": fedid})


@pytest.fixture
def directory():
    return InMemoryDirectory.from_document(DirectoryFactory.create_directory_document())


@pytest.fixture
def evaluator(directory):
    return AuthorizationEvaluator(directory, PermissionTable())


def context(directory, fedid, proposal, visit=None, permissions=None):
    return RuleContext(
        claims=claims_for(fedid),
        proposal_number=proposal,
        visit_number=visit,
        directory=directory,
        permissions=permissions or PermissionTable(),
    )


class TestProposalMember:

    def test_member(self, directory):
        assert proposal_member(context(directory, "alice", 123)) is True

    def test_member_with_any_visit(self, directory):
        assert proposal_member(context(directory, "alice", 123, visit=42)) is True

    def test_not_member(self, directory):
        assert proposal_member(context(directory, "alice", 456)) is False

    def test_unknown_subject(self, directory):
        assert proposal_member(context(directory, "nobody", 123)) is False


class TestSessionMember:

    def test_on_visit(self, directory):
        assert session_member(context(directory, "bob", 10, visit=2)) is True

    def test_other_visit(self, directory):
        assert session_member(context(directory, "bob", 10, visit=3)) is False

    def test_no_visit_requested(self, directory):
        assert session_member(context(directory, "bob", 10)) is False

    def test_session_record_missing(self):
        directory = InMemoryDirectory(subjects=[Subject("bob", sessions=frozenset({"gone"}))])

        assert session_member(context(directory, "bob", 10, visit=2)) is False


class TestBeamlineAdmin:

    def test_admin_of_beamline(self, directory):
        assert beamline_admin(context(directory, "carol", 20, visit=1)) is True

    def test_admin_of_other_beamline(self, directory):
        # dave administers SAXS, s2 ran on i04
        assert beamline_admin(context(directory, "dave", 20, visit=1)) is False

    def test_needs_visit(self, directory):
        assert beamline_admin(context(directory, "carol", 20)) is False

    def test_unknown_proposal(self, directory):
        assert beamline_admin(context(directory, "carol", 999, visit=1)) is False

    def test_unknown_visit(self, directory):
        assert beamline_admin(context(directory, "carol", 20, visit=7)) is False

    def test_beamline_without_admin_permission(self):
        directory = InMemoryDirectory(
            subjects=[Subject("carol", permissions=frozenset({"mx_admin"}))],
            sessions=[Session("s9", 30, 1, "x99")],
            proposals=[Proposal(30, {"1": "s9"})],
        )

        assert beamline_admin(context(directory, "carol", 30, visit=1)) is False

    def test_session_belonging_to_other_proposal(self):
        directory = InMemoryDirectory(
            subjects=[Subject("carol", permissions=frozenset({"mx_admin"}))],
            sessions=[Session("s9", 31, 1, "i03")],
            proposals=[Proposal(30, {"1": "s9"})],
        )

        assert beamline_admin(context(directory, "carol", 30, visit=1)) is False

    def test_table_is_data(self):
        directory = InMemoryDirectory(
            subjects=[Subject("erin", permissions=frozenset({"p99_admin"}))],
            sessions=[Session("s9", 30, 1, "p99")],
            proposals=[Proposal(30, {"1": "s9"})],
        )
        table = PermissionTable({"p99": "p99_admin"})

        assert beamline_admin(context(directory, "erin", 30, visit=1, permissions=table)) is True


class TestAuthorizationEvaluator:
    """Test cases for AuthorizationEvaluator."""

    def test_scenario_proposal_member(self, evaluator):
        assert evaluator.decide(claims_for("alice"), 123) is True
        assert evaluator.decide(claims_for("alice"), 456) is False

    def test_scenario_session_member(self, evaluator):
        assert evaluator.decide(claims_for("bob"), 10, 2) is True
        assert evaluator.decide(claims_for("bob"), 10, 3) is False

    def test_scenario_beamline_admin(self, evaluator):
        assert evaluator.decide(claims_for("carol"), 20, 1) is True

    def test_admin_of_any_session_on_beamline(self, evaluator):
        # s1 ran on i03, also administered by mx_admin
        assert evaluator.decide(claims_for("carol"), 10, 2) is True

    def test_default_deny(self, evaluator):
        assert evaluator.decide(claims_for("carol"), 123, 1) is False
        assert evaluator.decide(claims_for("nobody"), 123) is False

    def test_missing_records_deny_without_error(self, evaluator):
        assert evaluator.decide(claims_for("alice"), 99999, 5) is False
        assert evaluator.decide(claims_for("ghost"), 99999) is False

    def test_empty_directory(self):
        evaluator = AuthorizationEvaluator(InMemoryDirectory())

        assert evaluator.decide(claims_for("alice"), 123, 1) is False

    def test_evaluate_reports_all_matches(self, directory):
        document = DirectoryFactory.create_directory_document()
        document["subjects"]["alice"]["sessions"] = ["s3"]
        evaluator = AuthorizationEvaluator(InMemoryDirectory.from_document(document))

        result = evaluator.evaluate(claims_for("alice"), 123, 1)

        assert result.allowed is True
        assert result.matched_rules == ["proposal_member", "session_member"]
        assert result.evaluation_time_ms >= 0

    def test_evaluate_deny(self, evaluator):
        result = evaluator.evaluate(claims_for("bob"), 10, 3)

        assert result.allowed is False
        assert result.matched_rules == []

    @pytest.mark.parametrize("fedid,proposal,visit", [
        ("alice", 123, None),
        ("alice", 456, None),
        ("bob", 10, 2),
        ("bob", 10, 3),
        ("carol", 20, 1),
        ("dave", 20, 1),
        ("ghost", 1, 1),
    ])
    def test_rule_order_does_not_matter(self, directory, fedid, proposal, visit):
        outcomes = {
            AuthorizationEvaluator(directory, rules=order).decide(claims_for(fedid), proposal, visit)
            for order in itertools.permutations(RULES)
        }

        assert len(outcomes) == 1

    def test_decide_and_evaluate_agree(self, evaluator):
        for fedid, proposal, visit in itertools.product(
            ("alice", "bob", "carol", "dave", "ghost"), (10, 20, 123, 456), (None, 1, 2)
        ):
            claims = claims_for(fedid)
            assert evaluator.decide(claims, proposal, visit) == evaluator.evaluate(claims, proposal, visit).allowed
