from __future__ import annotations

import ssl
from dataclasses import dataclass
from typing import Any

import httpx

from provisioner.common.sanitize import clipBodySnippet
from provisioner.domain.error_codes import ErrorCode
from provisioner.errors import AppError

THIS_SERVER = "ThisServer"


class ApiError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_snippet: str | None = None,
        details: dict | None = None,
        code: str | None = None,
    ):
        """
        Назначение:
            Исключение для ошибок HTTP/JSON-RPC уровня FleetApiClient.
        Контракт:
            - code: строковый код (HTTP_*, NETWORK_ERROR, INVALID_JSON, RPC_ERROR и т.п.).
            - status_code/body_snippet используются для диагностики.
        """
        super().__init__(
            category="api",
            code=code or (f"HTTP_{status_code}" if status_code else ErrorCode.API_ERROR.value),
            message=message,
            details=details or {},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


class InvalidUserError(ApiError):
    """Неверные учётные данные (InvalidUserException)."""


class DbUnavailableError(ApiError):
    """База данных недоступна (DbUnavailableException)."""


RPC_ERRORS: dict[str, tuple[type[ApiError], str]] = {
    "InvalidUserException": (InvalidUserError, ErrorCode.INVALID_USER.value),
    "DbUnavailableException": (DbUnavailableError, ErrorCode.DB_UNAVAILABLE.value),
}


@dataclass(frozen=True)
class LoginResult:
    """
    Назначение:
        Результат Authenticate: учётные данные сессии и сервер для дальнейших вызовов.
    """

    credentials: dict[str, Any]
    server: str


class FleetApiClient:
    def __init__(
        self,
        server: str,
        database: str,
        username: str,
        password: str,
        timeoutSeconds: float = 20.0,
        tlsSkipVerify: bool = False,
        caFile: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Назначение:
            JSON-RPC клиент API платформы (POST https://<server>/apiv1).
        Контракт:
            - server, database, username, password обязательны.
            - Каждый вызов выполняется ровно один раз, без ретраев.
            - Перед call() необходимо authenticate().
        """
        verify: bool | ssl.SSLContext = True
        if tlsSkipVerify:
            verify = False
        elif caFile:
            verify = ssl.create_default_context(cafile=caFile)

        self.server = self._normalizeServer(server)
        self.database = database
        self.username = username
        self.password = password
        self.credentials: dict[str, Any] | None = None

        self.client = httpx.Client(
            timeout=timeoutSeconds,
            verify=verify,
            transport=transport,
        )

    def __enter__(self) -> "FleetApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _normalizeServer(server: str) -> str:
        value = (server or "").strip()
        for prefix in ("https://", "http://"):
            if value.lower().startswith(prefix):
                value = value[len(prefix):]
        return value.strip("/")

    @property
    def endpoint(self) -> str:
        return f"https://{self.server}/apiv1"

    def _raiseRpcError(self, error: Any) -> None:
        """Превращает блок "error" JSON-RPC ответа в ApiError/подкласс."""
        if not isinstance(error, dict):
            raise ApiError(f"RPC error: {error}", code=ErrorCode.RPC_ERROR.value)
        message = str(error.get("message") or "RPC error")
        names = [str(error.get("name") or "")]
        for item in error.get("errors") or []:
            if isinstance(item, dict):
                names.append(str(item.get("name") or ""))
        for name in names:
            if name in RPC_ERRORS:
                errorCls, code = RPC_ERRORS[name]
                raise errorCls(message, code=code, details={"name": name})
        raise ApiError(message, code=ErrorCode.RPC_ERROR.value, details={"names": [n for n in names if n]})

    def _post(self, method: str, params: dict[str, Any]) -> Any:
        """POST JSON-RPC запроса; возвращает поле result или бросает ApiError."""
        body = {"method": method, "params": params}
        try:
            resp = self.client.post(self.endpoint, json=body, headers={"accept": "application/json"})
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise ApiError(f"Network error: {exc}", status_code=None, code=ErrorCode.NETWORK_ERROR.value) from exc

        body_snippet = clipBodySnippet(resp.text)
        if resp.status_code != 200:
            raise ApiError(
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                body_snippet=body_snippet,
                details={"body_snippet": body_snippet},
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError(
                "Invalid JSON response",
                status_code=resp.status_code,
                body_snippet=body_snippet,
                code=ErrorCode.INVALID_JSON.value,
            ) from exc
        if not isinstance(data, dict):
            raise ApiError("Unexpected response format", status_code=resp.status_code, code=ErrorCode.INVALID_JSON.value)
        if data.get("error") is not None:
            self._raiseRpcError(data["error"])
        return data.get("result")

    def authenticate(self) -> LoginResult:
        """
        Назначение:
            Вход в базу. При path != ThisServer дальнейшие вызовы идут на указанный сервер.
        Ошибки:
            InvalidUserError, DbUnavailableError, ApiError.
        """
        result = self._post(
            "Authenticate",
            {"database": self.database, "userName": self.username, "password": self.password},
        )
        if not isinstance(result, dict) or not isinstance(result.get("credentials"), dict):
            raise ApiError("Authenticate returned no credentials", code=ErrorCode.INVALID_LOGIN_RESULT.value)
        path = result.get("path")
        if path and path != THIS_SERVER:
            self.server = self._normalizeServer(str(path))
        self.credentials = result["credentials"]
        return LoginResult(credentials=self.credentials, server=self.server)

    def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Аутентифицированный вызов метода API."""
        if self.credentials is None:
            raise ApiError("Client is not authenticated", code=ErrorCode.NOT_AUTHENTICATED.value)
        payload = dict(params or {})
        payload["credentials"] = self.credentials
        return self._post(method, payload)
