from typing import Any

SECRET_MASK = "***"

# Ключи JSON-RPC, значения которых не должны попадать в stdout и лог:
# пароль пользователя в Add User и сессия в credentials.
SENSITIVE_KEYS = frozenset({"password", "sessionid", "credentials"})


def maskSecret(value: str | None) -> str | None:
    """Пароль в шапке запуска: None остаётся None, всё остальное -> маска."""
    return None if value is None else SECRET_MASK


def clipBodySnippet(body: str | None, limit: int = 200) -> str | None:
    """
    Назначение:
        Обрезает тело HTTP-ответа для ApiError.body_snippet.
        Пустое тело -> None; длинное обрезается до limit символов с "..." в конце.
    """
    if not body:
        return None
    if len(body) <= limit:
        return body
    return body[: max(limit - 3, 0)] + "..."


def maskPayloadSecrets(payload: Any) -> Any:
    """
    Назначение:
        Копия payload JSON-RPC (dict/list любой вложенности) для DEBUG-лога,
        где значения ключей из SENSITIVE_KEYS заменены маской.
        Исходный payload не изменяется.
    """
    if isinstance(payload, dict):
        return {
            key: (SECRET_MASK if str(key).lower() in SENSITIVE_KEYS else maskPayloadSecrets(value))
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [maskPayloadSecrets(item) for item in payload]
    return payload
