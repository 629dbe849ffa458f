from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from provisioner.common.time import parseIsoDateTime

DEFAULT_ACTIVE_FROM = "1986-01-01T00:00:00Z"
DEFAULT_ACTIVE_TO = "2050-01-01T00:00:00Z"
DEFAULT_TIME_ZONE_ID = "America/Los_Angeles"

# Корень дерева групп безопасности в каталоге платформы.
GROUP_SECURITY_ID = "GroupSecurityId"


class GroupKind(str, Enum):
    ORGANIZATION = "organization"
    SECURITY = "security"


class UserAuthenticationType(str, Enum):
    BASIC = "BasicAuthentication"


@dataclass(frozen=True)
class Group:
    """
    Назначение:
        Группа из каталога платформы (организационная или группа безопасности).
        Локально никогда не создаётся, только читается из ответа API.
    """

    id: str
    name: str
    kind: GroupKind

    @classmethod
    def from_api(cls, entity: Mapping[str, Any], kind: GroupKind) -> "Group":
        return cls(
            id=str(entity.get("id") or ""),
            name=str(entity.get("name") or ""),
            kind=kind,
        )

    def to_reference(self) -> dict[str, str]:
        return {"id": self.id}


@dataclass(frozen=True)
class UserDefaults:
    """
    Назначение:
        Атрибуты, которые получает каждая запись CSV.
    """

    authentication_type: UserAuthenticationType = UserAuthenticationType.BASIC
    active_from: datetime = parseIsoDateTime(DEFAULT_ACTIVE_FROM)
    active_to: datetime = parseIsoDateTime(DEFAULT_ACTIVE_TO)
    time_zone_id: str = DEFAULT_TIME_ZONE_ID
    is_driver: bool = False
    is_email_report_enabled: bool = True


@dataclass(frozen=True)
class CandidateUser:
    """
    Назначение:
        Пользователь, прочитанный из одной строки CSV, до сопоставления групп.
    Инварианты:
        - строковые поля уже обрезаны от пробелов;
        - organization_nodes/security_node хранятся как сырой текст.
    """

    line_no: int
    name: str
    password: str
    first_name: str
    last_name: str
    organization_nodes: str
    security_node: str
    authentication_type: UserAuthenticationType
    active_from: datetime
    active_to: datetime
    time_zone_id: str
    is_driver: bool
    is_email_report_enabled: bool


@dataclass
class ResolvedUser:
    """
    Назначение:
        CandidateUser с привязанными группами.
    Инварианты:
        - к отправке допускается только при непустых organization_groups и security_groups;
        - id присваивается один раз, после успешного создания.
    """

    candidate: CandidateUser
    organization_groups: list[Group] = field(default_factory=list)
    security_groups: list[Group] = field(default_factory=list)
    id: str | None = None

    @property
    def name(self) -> str:
        return self.candidate.name

    def assign_id(self, user_id: str) -> None:
        if self.id is not None:
            raise ValueError(f"User {self.name} already has id {self.id}")
        self.id = user_id


class KnownUsersIndex:
    """
    Назначение:
        Регистронезависимое множество имён учётных записей.
        Заполняется из каталога пользователей и растёт на одну запись
        с каждым успешным созданием в рамках запуска.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set()
        for name in names:
            self.add(name)

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().casefold()

    @classmethod
    def from_users(cls, users: Iterable[Mapping[str, Any]]) -> "KnownUsersIndex":
        return cls(str(user["name"]) for user in users if user.get("name"))

    def add(self, name: str) -> None:
        self._names.add(self._key(name))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self._key(name) in self._names

    def __len__(self) -> int:
        return len(self._names)


@dataclass(frozen=True)
class GroupCatalog:
    """
    Назначение:
        Каталоги групп, прочитанные один раз за запуск. Только для чтения.
    """

    organization_groups: tuple[Group, ...]
    security_groups: tuple[Group, ...]

    @classmethod
    def from_api(
        cls,
        groups: Iterable[Mapping[str, Any]],
        security_groups: Iterable[Mapping[str, Any]],
    ) -> "GroupCatalog":
        security = tuple(Group.from_api(g, GroupKind.SECURITY) for g in security_groups)
        security_ids = {g.id for g in security}
        organization = tuple(
            Group.from_api(g, GroupKind.ORGANIZATION)
            for g in groups
            if str(g.get("id") or "") not in security_ids
        )
        return cls(organization_groups=organization, security_groups=security)


class OutcomeStatus(str, Enum):
    CREATED = "CREATED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RecordOutcome:
    """
    Назначение:
        Итог обработки одной записи CSV.
    """

    status: OutcomeStatus
    name: str
    line_no: int
    code: str | None = None
    message: str | None = None
    user_id: str | None = None


@dataclass
class ImportResult:
    outcomes: list[RecordOutcome]
    known_users: KnownUsersIndex
