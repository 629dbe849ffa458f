from __future__ import annotations

from typing import Mapping

ORGANIZATION_ROOT = "**Org**"
EVERYTHING_SECURITY = "**EverythingSecurity**"
SUPERVISOR_SECURITY = "**SupervisorSecurity**"
VIEW_ONLY_SECURITY = "**ViewOnlySecurity**"
NOTHING_SECURITY = "**NothingSecurity**"

ORGANIZATION_NAME_SEPARATOR = "|"

# Ключи — уже приведённые к нижнему регистру подписи из CSV.
ORGANIZATION_ALIASES: Mapping[str, str] = {
    "organization": ORGANIZATION_ROOT,
    "entire organization": ORGANIZATION_ROOT,
}

SECURITY_ALIASES: Mapping[str, str] = {
    "administrator": EVERYTHING_SECURITY,
    "admin": EVERYTHING_SECURITY,
    "superviser": SUPERVISOR_SECURITY,
    "supervisor": SUPERVISOR_SECURITY,
    "view only": VIEW_ONLY_SECURITY,
    "viewonly": VIEW_ONLY_SECURITY,
    "nothing": NOTHING_SECURITY,
}


def _fold(label: str | None) -> str:
    return (label or "").strip().lower()


def normalize_organization_name(label: str | None) -> str:
    """
    Назначение:
        Приводит подпись организационной группы к ключу поиска в каталоге.

    Алгоритм:
        - trim + lower;
        - "organization"/"entire organization" -> корневая группа **Org**;
        - остальное возвращается как есть (в нижнем регистре).
    """
    folded = _fold(label)
    return ORGANIZATION_ALIASES.get(folded, folded)


def normalize_security_name(label: str | None) -> str:
    """
    Назначение:
        Приводит подпись роли к ключу поиска в каталоге групп безопасности.
        Неизвестные подписи не являются ошибкой: они просто не найдутся в каталоге.
    """
    folded = _fold(label)
    return SECURITY_ALIASES.get(folded, folded)


def split_organization_names(text: str | None) -> list[str]:
    """
    Назначение:
        Разбивает поле organizationNodes по '|' и нормализует каждое имя.
        Пустые части отбрасываются, порядок сохраняется.
    """
    if not text:
        return []
    names: list[str] = []
    for part in text.split(ORGANIZATION_NAME_SEPARATOR):
        if part.strip() == "":
            continue
        names.append(normalize_organization_name(part))
    return names
