from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import os
import yaml

from provisioner.common.time import parseIsoDateTime
from provisioner.domain.models import (
    DEFAULT_ACTIVE_FROM,
    DEFAULT_ACTIVE_TO,
    DEFAULT_TIME_ZONE_ID,
    UserDefaults,
)


@dataclass(frozen=True)
class Settings:
    # Logging
    log_dir: str = "./logs"
    log_level: str = "INFO"

    # Transport
    timeout_seconds: float = 20.0
    tls_skip_verify: bool = False
    ca_file: str | None = None

    # Defaults for created users
    time_zone_id: str = DEFAULT_TIME_ZONE_ID
    active_from: datetime = parseIsoDateTime(DEFAULT_ACTIVE_FROM)
    active_to: datetime = parseIsoDateTime(DEFAULT_ACTIVE_TO)

    def user_defaults(self) -> UserDefaults:
        return UserDefaults(
            active_from=self.active_from,
            active_to=self.active_to,
            time_zone_id=self.time_zone_id,
        )


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


ENV_NAMES = {
    "log_dir": "FLEET_LOG_DIR",
    "log_level": "FLEET_LOG_LEVEL",
    "timeout_seconds": "FLEET_TIMEOUT_SECONDS",
    "tls_skip_verify": "FLEET_TLS_SKIP_VERIFY",
    "ca_file": "FLEET_CA_FILE",
    "time_zone_id": "FLEET_TIME_ZONE_ID",
    "active_from": "FLEET_ACTIVE_FROM",
    "active_to": "FLEET_ACTIVE_TO",
}


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Config path is not a file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _parse_bool(v: object) -> bool:
    if isinstance(v, bool):
        return v
    vv = str(v).strip().lower()
    if vv in ("1", "true", "yes", "y"):
        return True
    if vv in ("0", "false", "no", "n"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


def load_settings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults

    Ошибки:
        ValueError — нечитаемый конфиг, неизвестный ключ или неверное значение.
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        unknown = sorted(set(cfg) - set(ENV_NAMES))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        if cfg:
            sources.append("config")

    # 2) env
    env = {key: _env_get(name) for key, name in ENV_NAMES.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    merged: dict = {key: cfg.get(key, getattr(defaults, key)) for key in ENV_NAMES}
    for key, value in env.items():
        if value is not None:
            merged[key] = value

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    settings = Settings(
        log_dir=str(merged["log_dir"]),
        log_level=str(merged["log_level"]),
        timeout_seconds=float(merged["timeout_seconds"]),
        tls_skip_verify=_parse_bool(merged["tls_skip_verify"]),
        ca_file=merged["ca_file"],
        time_zone_id=str(merged["time_zone_id"]),
        active_from=parseIsoDateTime(merged["active_from"]),
        active_to=parseIsoDateTime(merged["active_to"]),
    )
    if settings.timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be positive")
    if settings.active_from >= settings.active_to:
        raise ValueError("active_from must be earlier than active_to")

    return LoadedSettings(settings=settings, sources_used=sources)
