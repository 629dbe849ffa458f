from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from provisioner.domain.error_codes import ErrorCode
from provisioner.domain.models import CandidateUser, OutcomeStatus, UserAuthenticationType
from provisioner.errors import CatalogFetchError
from provisioner.infra.http.fleet_client import ApiError
from provisioner.usecases.import_users_usecase import ImportUsersUseCase

GROUPS = [
    {"id": "GroupCompanyId", "name": "**Org**"},
    {"id": "g1", "name": "Org A"},
    {"id": "g2", "name": "Org B"},
    {"id": "s1", "name": "**EverythingSecurity**"},
]
SECURITY_GROUPS = [
    {"id": "s1", "name": "**EverythingSecurity**"},
    {"id": "s2", "name": "**ViewOnlySecurity**"},
]


class DummyGateway:
    def __init__(self, users=None, add_results=None, fail_on: str | None = None):
        self.users = users or []
        self.add_results = list(add_results or [])
        self.fail_on = fail_on
        self.searches: list[tuple[str, dict | None]] = []
        self.added: list[dict] = []

    def search(self, type_name, search=None):
        self.searches.append((type_name, search))
        key = "security" if search else type_name
        if key == self.fail_on:
            raise ApiError("HTTP 500", status_code=500)
        if type_name == "User":
            return list(self.users)
        if search == {"id": "GroupSecurityId"}:
            return list(SECURITY_GROUPS)
        return list(GROUPS)

    def add(self, type_name, entity):
        assert type_name == "User"
        self.added.append(entity)
        result = self.add_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _candidate(name: str, org: str = "Org A", sec: str = "admin", line_no: int = 1) -> CandidateUser:
    return CandidateUser(
        line_no=line_no,
        name=name,
        password="secret",
        first_name="John",
        last_name="Doe",
        organization_nodes=org,
        security_node=sec,
        authentication_type=UserAuthenticationType.BASIC,
        active_from=datetime(1986, 1, 1, tzinfo=timezone.utc),
        active_to=datetime(2050, 1, 1, tzinfo=timezone.utc),
        time_zone_id="America/Los_Angeles",
        is_driver=False,
        is_email_report_enabled=True,
    )


def _usecase(gateway: DummyGateway) -> ImportUsersUseCase:
    return ImportUsersUseCase(gateway, logging.getLogger("tests.import"), run_id="r1")


def test_single_valid_row_is_created_and_indexed():
    gateway = DummyGateway(add_results=["b123"])

    result = _usecase(gateway).run([_candidate("jdoe")])

    assert [o.status for o in result.outcomes] == [OutcomeStatus.CREATED]
    assert result.outcomes[0].user_id == "b123"
    assert "jdoe" in result.known_users
    assert [s[0] for s in gateway.searches] == ["User", "Group", "Group"]
    payload = gateway.added[0]
    assert payload["name"] == "jdoe"
    assert payload["companyGroups"] == [{"id": "g1"}]
    assert payload["securityGroups"] == [{"id": "s1"}]
    assert payload["userAuthenticationType"] == "BasicAuthentication"
    assert payload["activeFrom"] == "1986-01-01T00:00:00.000Z"
    assert payload["activeTo"] == "2050-01-01T00:00:00.000Z"
    assert payload["isDriver"] is False
    assert payload["isEmailReportEnabled"] is True


def test_second_row_with_same_name_is_rejected_as_duplicate():
    gateway = DummyGateway(users=[{"id": "u1", "name": "other"}], add_results=["b123", "b124"])

    result = _usecase(gateway).run([_candidate("jdoe", line_no=1), _candidate("JDoe", line_no=2)])

    assert [o.status for o in result.outcomes] == [OutcomeStatus.CREATED, OutcomeStatus.REJECTED]
    assert result.outcomes[1].code == ErrorCode.DUPLICATE_USER.value
    assert len(gateway.added) == 1


def test_existing_user_from_catalog_is_rejected():
    gateway = DummyGateway(users=[{"id": "u1", "name": "JDOE"}])

    result = _usecase(gateway).run([_candidate("jdoe")])

    assert result.outcomes[0].status == OutcomeStatus.REJECTED
    assert gateway.added == []


def test_empty_security_field_is_rejected_and_run_continues(caplog):
    gateway = DummyGateway(add_results=["b200"])

    with caplog.at_level(logging.INFO, logger="tests.import"):
        result = _usecase(gateway).run([_candidate("nosec", sec=""), _candidate("next")])

    assert result.outcomes[0].status == OutcomeStatus.REJECTED
    assert result.outcomes[0].message == "Must have security nodes."
    assert result.outcomes[1].status == OutcomeStatus.CREATED
    assert "Invalid user: nosec. Must have security nodes." in caplog.text
    assert "Users imported." in caplog.text


def test_unresolved_organization_is_rejected():
    gateway = DummyGateway()

    result = _usecase(gateway).run([_candidate("jdoe", org="Nowhere")])

    assert result.outcomes[0].code == ErrorCode.ORGANIZATION_GROUPS_MISSING.value


def test_group_fetch_failure_aborts_before_rows():
    gateway = DummyGateway(fail_on="Group")
    consumed: list[str] = []

    def candidates():
        consumed.append("row")
        yield _candidate("jdoe")

    with pytest.raises(CatalogFetchError) as exc:
        _usecase(gateway).run(candidates())

    assert exc.value.entity == "existing groups"
    assert consumed == []
    assert gateway.added == []


def test_security_fetch_failure_is_fatal():
    with pytest.raises(CatalogFetchError):
        _usecase(DummyGateway(fail_on="security")).run([_candidate("jdoe")])


def test_submission_error_is_not_fatal():
    gateway = DummyGateway(add_results=[ApiError("HTTP 500", status_code=500), "b2"])

    result = _usecase(gateway).run([_candidate("first"), _candidate("second")])

    assert result.outcomes[0].status == OutcomeStatus.FAILED
    assert result.outcomes[0].code == ErrorCode.SUBMIT_FAILED.value
    assert result.outcomes[1].status == OutcomeStatus.CREATED
    assert "first" not in result.known_users


def test_missing_id_is_failure_and_name_not_indexed():
    gateway = DummyGateway(add_results=[None, "b3"])

    result = _usecase(gateway).run([_candidate("jdoe"), _candidate("jdoe")])

    assert result.outcomes[0].code == ErrorCode.NO_ID_RETURNED.value
    assert "jdoe" in result.known_users
    assert result.outcomes[1].status == OutcomeStatus.CREATED


def test_debug_payload_log_masks_password(caplog):
    gateway = DummyGateway(add_results=["b300"])

    with caplog.at_level(logging.DEBUG, logger="tests.import"):
        _usecase(gateway).run([_candidate("jdoe")])

    payload_lines = [r.getMessage() for r in caplog.records if "payload=" in r.getMessage()]
    assert payload_lines
    assert "secret" not in payload_lines[0]
    assert "'password': '***'" in payload_lines[0]
    assert gateway.added[0]["password"] == "secret"
