from __future__ import annotations

from typing import Any

from provisioner.domain.error_codes import ErrorCode
from provisioner.domain.ports.api import EntityServiceProtocol
from provisioner.infra.http.fleet_client import ApiError, FleetApiClient


class FleetEntityGateway(EntityServiceProtocol):
    """
    Назначение/ответственность:
        Адаптер EntityServiceProtocol поверх FleetApiClient (методы Get/Add).
    Ограничения:
        - Синхронно, одна попытка на вызов.
        - Ошибки клиента (ApiError) пробрасываются вызывающему коду.
    """

    def __init__(self, client: FleetApiClient):
        self.client = client

    def search(self, type_name: str, search: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"typeName": type_name}
        if search:
            params["search"] = search
        result = self.client.call("Get", params)
        if result is None:
            return []
        if not isinstance(result, list):
            raise ApiError(f"Unexpected Get {type_name} result: expected list", code=ErrorCode.INVALID_ITEMS_FORMAT.value)
        return [item for item in result if isinstance(item, dict)]

    def add(self, type_name: str, entity: dict[str, Any]) -> str | None:
        result = self.client.call("Add", {"typeName": type_name, "entity": entity})
        if isinstance(result, dict):
            result = result.get("id")
        if result is None:
            return None
        value = str(result).strip()
        return value or None
