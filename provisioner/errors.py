from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class AppError(Exception):
    """
    Унифицированная ошибка приложения.
    """

    category: str
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)


class CatalogFetchError(AppError):
    def __init__(self, entity: str, cause: Exception):
        """
        Назначение:
            Фатальная ошибка чтения каталога (пользователи/группы) на старте импорта.
        """
        super().__init__(
            category="catalog",
            code="CATALOG_FETCH_FAILED",
            message=f"Failed to get {entity}: {cause}",
            details={"entity": entity},
        )
        self.entity = entity


__all__ = ["AppError", "CatalogFetchError"]
