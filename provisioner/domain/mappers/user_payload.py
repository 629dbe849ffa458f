from __future__ import annotations

from typing import Any

from provisioner.common.time import formatApiDateTime
from provisioner.domain.models import ResolvedUser


def buildUserAddPayload(user: ResolvedUser) -> dict[str, Any]:
    """
    Строит entity для вызова Add(typeName="User").
    """
    if not user.organization_groups or not user.security_groups:
        raise ValueError(f"User {user.name} must have organization and security groups before submit")

    candidate = user.candidate
    return {
        "name": candidate.name,
        "password": candidate.password,
        "firstName": candidate.first_name,
        "lastName": candidate.last_name,
        "userAuthenticationType": candidate.authentication_type.value,
        "activeFrom": formatApiDateTime(candidate.active_from),
        "activeTo": formatApiDateTime(candidate.active_to),
        "timeZoneId": candidate.time_zone_id,
        "isDriver": candidate.is_driver,
        "isEmailReportEnabled": candidate.is_email_report_enabled,
        "companyGroups": [g.to_reference() for g in user.organization_groups],
        "securityGroups": [g.to_reference() for g in user.security_groups],
        "privateUserGroups": [],
    }
