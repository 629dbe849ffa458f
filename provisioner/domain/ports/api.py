from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EntityServiceProtocol(Protocol):
    """
    Назначение:
        Контракт удалённого сервиса сущностей платформы.

    Контракт:
        - search(type_name, search) -> список сущностей (dict)
        - add(type_name, entity) -> id созданной сущности или None
    """

    def search(self, type_name: str, search: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...
    def add(self, type_name: str, entity: dict[str, Any]) -> str | None: ...


__all__ = ["EntityServiceProtocol"]
