from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов для исходов по записям и ошибок API.
    """

    ORGANIZATION_GROUPS_MISSING = "ORGANIZATION_GROUPS_MISSING"
    SECURITY_GROUPS_MISSING = "SECURITY_GROUPS_MISSING"
    DUPLICATE_USER = "DUPLICATE_USER"
    NO_ID_RETURNED = "NO_ID_RETURNED"
    SUBMIT_FAILED = "SUBMIT_FAILED"

    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_JSON = "INVALID_JSON"
    API_ERROR = "API_ERROR"
    INVALID_USER = "INVALID_USER"
    DB_UNAVAILABLE = "DB_UNAVAILABLE"
    RPC_ERROR = "RPC_ERROR"
    INVALID_LOGIN_RESULT = "INVALID_LOGIN_RESULT"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_ITEMS_FORMAT = "INVALID_ITEMS_FORMAT"
