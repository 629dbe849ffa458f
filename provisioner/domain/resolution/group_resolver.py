from __future__ import annotations

from typing import Iterable, Sequence

from provisioner.domain.models import CandidateUser, Group, GroupCatalog, ResolvedUser
from provisioner.domain.normalization.names import normalize_security_name, split_organization_names


class GroupResolver:
    """
    Назначение/ответственность:
        Сопоставляет нормализованные имена групп с каталогами, прочитанными из API.
    Ограничения:
        - Без побочных эффектов и сетевых вызовов.
        - Ненайденные имена молча отбрасываются; отклонение записи — задача валидатора.
    """

    def resolve_organization_groups(self, names: Iterable[str], catalog: Sequence[Group]) -> list[Group]:
        """
        Контракт:
            Для каждого имени (в порядке запроса) — первая группа каталога,
            чьё имя совпадает без учёта регистра. Ненайденные имена пропускаются.
        """
        resolved: list[Group] = []
        for name in names:
            wanted = name.casefold()
            for group in catalog:
                if group.name.casefold() == wanted:
                    resolved.append(group)
                    break
        return resolved

    def resolve_security_groups(self, name: str, catalog: Sequence[Group]) -> list[Group]:
        """
        Контракт:
            Не более одной группы: первое точное (регистрозависимое) совпадение
            с каноническим именем каталога. Пустое имя -> [].
        """
        if not name:
            return []
        for group in catalog:
            if group.name == name:
                return [group]
        return []

    def resolve(self, candidate: CandidateUser, catalog: GroupCatalog) -> ResolvedUser:
        organization_groups = self.resolve_organization_groups(
            split_organization_names(candidate.organization_nodes),
            catalog.organization_groups,
        )
        security_groups = self.resolve_security_groups(
            normalize_security_name(candidate.security_node),
            catalog.security_groups,
        )
        return ResolvedUser(
            candidate=candidate,
            organization_groups=organization_groups,
            security_groups=security_groups,
        )
