from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from provisioner.domain.error_codes import ErrorCode
from provisioner.domain.models import KnownUsersIndex, ResolvedUser


@dataclass(frozen=True)
class ValidationResult:
    """
    Назначение:
        Решение валидатора по одной записи: принять или отклонить с причиной.
    """

    accepted: bool
    code: ErrorCode | None = None
    reason: str | None = None
    rule: str | None = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, code: ErrorCode, reason: str, rule: str | None = None) -> "ValidationResult":
        return cls(accepted=False, code=code, reason=reason, rule=rule)


RuleCheck = Callable[[ResolvedUser, KnownUsersIndex], bool]


@dataclass(frozen=True)
class ValidationRule:
    """
    Назначение:
        Правило приёмки. check возвращает True, если запись правилу удовлетворяет.
    """

    name: str
    code: ErrorCode
    reason: str
    check: RuleCheck


def _has_organization_groups(user: ResolvedUser, _known: KnownUsersIndex) -> bool:
    return len(user.organization_groups) > 0


def _has_security_groups(user: ResolvedUser, _known: KnownUsersIndex) -> bool:
    return len(user.security_groups) > 0


def _is_new_user(user: ResolvedUser, known: KnownUsersIndex) -> bool:
    return user.name not in known


DEFAULT_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        name="organization_groups",
        code=ErrorCode.ORGANIZATION_GROUPS_MISSING,
        reason="Must have organization nodes.",
        check=_has_organization_groups,
    ),
    ValidationRule(
        name="security_groups",
        code=ErrorCode.SECURITY_GROUPS_MISSING,
        reason="Must have security nodes.",
        check=_has_security_groups,
    ),
    ValidationRule(
        name="unique_name",
        code=ErrorCode.DUPLICATE_USER,
        reason="Duplicate user.",
        check=_is_new_user,
    ),
)


class UserValidator:
    """
    Назначение/ответственность:
        Применяет правила приёмки к ResolvedUser по порядку; первое нарушение побеждает.
    Ограничения:
        - Чистый предикат: индекс известных пользователей не изменяется.
    """

    def __init__(self, rules: tuple[ValidationRule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def validate(self, user: ResolvedUser, known_users: KnownUsersIndex) -> ValidationResult:
        for rule in self.rules:
            if not rule.check(user, known_users):
                return ValidationResult.reject(rule.code, rule.reason, rule=rule.name)
        return ValidationResult.accept()


def logValidationFailure(logger, run_id: str, context: str, user: ResolvedUser, result: ValidationResult) -> None:
    """
    Назначение:
        Логирует отклонённую запись CSV с именем учётной записи и причиной.
    """
    logger.log(
        logging.WARNING,
        f"Invalid user: {user.name}. {result.reason} line={user.candidate.line_no} code={result.code.value if result.code else 'none'} rule={result.rule or 'none'}",
        extra={"runId": run_id, "component": context},
    )
