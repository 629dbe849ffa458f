from __future__ import annotations

import logging
from typing import Any, Iterable

from provisioner.common.sanitize import maskPayloadSecrets
from provisioner.domain.error_codes import ErrorCode
from provisioner.domain.mappers.user_payload import buildUserAddPayload
from provisioner.domain.models import (
    GROUP_SECURITY_ID,
    CandidateUser,
    GroupCatalog,
    ImportResult,
    KnownUsersIndex,
    OutcomeStatus,
    RecordOutcome,
    ResolvedUser,
)
from provisioner.domain.ports.api import EntityServiceProtocol
from provisioner.domain.resolution.group_resolver import GroupResolver
from provisioner.domain.validation.validator import UserValidator, logValidationFailure
from provisioner.errors import CatalogFetchError
from provisioner.infra.logging.setup import logEvent

COMPONENT = "import"


class ImportUsersUseCase:
    """
    Оркестратор импорта пользователей.

    Состояния записи: Parsed -> Resolved -> Validated{accepted|rejected}
    -> Submitted{created|failed} -> (created) Indexed.

    Каталоги читаются один раз за запуск; индекс известных пользователей
    обновляется строго в порядке записей CSV.
    """

    def __init__(
        self,
        gateway: EntityServiceProtocol,
        logger: logging.Logger,
        run_id: str,
        resolver: GroupResolver | None = None,
        validator: UserValidator | None = None,
    ):
        self.gateway = gateway
        self.logger = logger
        self.run_id = run_id
        self.resolver = resolver or GroupResolver()
        self.validator = validator or UserValidator()

    def _log(self, level: int, message: str) -> None:
        logEvent(self.logger, level, self.run_id, COMPONENT, message)

    def _fetch(self, entity: str, type_name: str, search: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self._log(logging.DEBUG, f"Get {entity} ...")
        try:
            return self.gateway.search(type_name, search)
        except Exception as exc:
            raise CatalogFetchError(entity, exc) from exc

    def load_catalogs(self) -> tuple[KnownUsersIndex, GroupCatalog]:
        """
        Назначение:
            Три чтения: существующие пользователи, все группы, группы безопасности.
        Ошибки:
            CatalogFetchError — фатально для запуска.
        """
        users = self._fetch("existing users", "User")
        groups = self._fetch("existing groups", "Group")
        security_groups = self._fetch("security groups", "Group", {"id": GROUP_SECURITY_ID})
        known_users = KnownUsersIndex.from_users(users)
        catalog = GroupCatalog.from_api(groups, security_groups)
        self._log(
            logging.DEBUG,
            f"Catalogs loaded users={len(known_users)} organization_groups={len(catalog.organization_groups)} "
            f"security_groups={len(catalog.security_groups)}",
        )
        return known_users, catalog

    def run(self, candidates: Iterable[CandidateUser]) -> ImportResult:
        self._log(logging.DEBUG, "Start importing users ...")
        known_users, catalog = self.load_catalogs()

        outcomes: list[RecordOutcome] = []
        for candidate in candidates:
            outcomes.append(self.process(candidate, catalog, known_users))

        self._log(logging.INFO, "Users imported.")
        return ImportResult(outcomes=outcomes, known_users=known_users)

    def process(
        self,
        candidate: CandidateUser,
        catalog: GroupCatalog,
        known_users: KnownUsersIndex,
    ) -> RecordOutcome:
        """
        Назначение:
            Обработка одной записи. Никакая ошибка записи не выходит за пределы этого шага.
        """
        user = self.resolver.resolve(candidate, catalog)
        verdict = self.validator.validate(user, known_users)
        if not verdict.accepted:
            logValidationFailure(self.logger, self.run_id, COMPONENT, user, verdict)
            return RecordOutcome(
                status=OutcomeStatus.REJECTED,
                name=user.name,
                line_no=candidate.line_no,
                code=verdict.code.value if verdict.code else None,
                message=verdict.reason,
            )
        return self.submit(user, known_users)

    def submit(self, user: ResolvedUser, known_users: KnownUsersIndex) -> RecordOutcome:
        line_no = user.candidate.line_no
        payload = buildUserAddPayload(user)
        self._log(logging.DEBUG, f"Add User line={line_no} payload={maskPayloadSecrets(payload)}")
        try:
            user_id = self.gateway.add("User", payload)
        except Exception as exc:
            self._log(logging.ERROR, f"Failed to import user {user.name}: {exc}")
            return RecordOutcome(
                status=OutcomeStatus.FAILED,
                name=user.name,
                line_no=line_no,
                code=ErrorCode.SUBMIT_FAILED.value,
                message=str(exc),
            )

        if not user_id:
            self._log(logging.WARNING, f"User {user.name} not added; no id returned")
            return RecordOutcome(
                status=OutcomeStatus.FAILED,
                name=user.name,
                line_no=line_no,
                code=ErrorCode.NO_ID_RETURNED.value,
                message="no id returned",
            )

        user.assign_id(user_id)
        known_users.add(user.name)
        self._log(logging.INFO, f"User {user.name} added with id {user_id}.")
        return RecordOutcome(
            status=OutcomeStatus.CREATED,
            name=user.name,
            line_no=line_no,
            user_id=user_id,
        )
