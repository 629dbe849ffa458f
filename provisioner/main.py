from __future__ import annotations

import logging
import time

import typer
import yaml

from provisioner.common.run_id import generate_run_id
from provisioner.common.sanitize import maskSecret
from provisioner.common.time import getDurationMs
from provisioner.config import Settings, load_settings
from provisioner.domain.models import CandidateUser
from provisioner.errors import CatalogFetchError
from provisioner.infra.http.entity_gateway import FleetEntityGateway
from provisioner.infra.http.fleet_client import ApiError, DbUnavailableError, FleetApiClient, InvalidUserError
from provisioner.infra.logging.setup import closeLogger, createCommandLogger, logEvent
from provisioner.infra.sources.csv_reader import CsvUserSource
from provisioner.usecases.import_users_usecase import ImportUsersUseCase

COMMAND_NAME = "import-users"

USAGE_LINES = (
    "Command line parameters:",
    "provisioner 'my.fleet-server.com' 'database' 'user@email.com' 'password' 'inputFileLocation'",
    "server             - The server name (Example: my.fleet-server.com)",
    "database           - The database name (Example: G560)",
    "username           - The user name",
    "password           - The password",
    "inputFileLocation  - Location of the CSV file to import.",
)

app = typer.Typer(add_completion=False)


def printUsage() -> None:
    for line in USAGE_LINES:
        typer.echo(line)


def printRunHeader(runId: str, server: str, database: str, username: str, password: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов).
    """
    typer.echo(
        f"run_id={runId} command={COMMAND_NAME} "
        f"server={server} database={database} username={username} "
        f"password={maskSecret(password)} sources={sources} log_level={settings.log_level}"
    )


def createApiClient(
    settings: Settings,
    server: str,
    database: str,
    username: str,
    password: str,
    apiTransport=None,
) -> FleetApiClient:
    return FleetApiClient(
        server=server,
        database=database,
        username=username,
        password=password,
        timeoutSeconds=settings.timeout_seconds,
        tlsSkipVerify=settings.tls_skip_verify,
        caFile=settings.ca_file,
        transport=apiTransport,
    )


def loadCandidates(source: CsvUserSource) -> list[CandidateUser]:
    """
    Назначение:
        Полностью читает CSV до любых сетевых вызовов, чтобы ошибка файла
        прерывала запуск раньше аутентификации.
    """
    return list(source)


def authenticate(client: FleetApiClient, logger: logging.Logger, runId: str) -> bool:
    logEvent(logger, logging.DEBUG, runId, "auth", "Authenticating ...")
    try:
        client.authenticate()
    except InvalidUserError as exc:
        logEvent(logger, logging.ERROR, runId, "auth", f"Invalid user: {exc}")
        return False
    except DbUnavailableError as exc:
        logEvent(logger, logging.ERROR, runId, "auth", f"Database unavailable: {exc}")
        return False
    except ApiError as exc:
        logEvent(logger, logging.ERROR, runId, "auth", f"Failed to authenticate user: {exc}")
        return False
    logEvent(logger, logging.INFO, runId, "auth", "Successfully Authenticated")
    return True


def runImportCommand(
    arguments: list[str],
    configPath: str | None,
    runId: str | None,
    cliOverrides: dict,
    apiTransport=None,
) -> int:
    """
    Назначение:
        Полный цикл импорта: настройки -> лог -> CSV -> аутентификация -> импорт.

    Выходные данные:
        int
            0 — импорт завершён (даже если часть записей отклонена);
            1 — ошибка использования, конфигурации, чтения файла,
                аутентификации или чтения каталогов.
    """
    if len(arguments) != 5:
        printUsage()
        return 1
    server, database, username, password, filePath = arguments

    try:
        loaded = load_settings(config_path=configPath, cli_overrides=cliOverrides)
    except (ValueError, OSError, yaml.YAMLError) as exc:
        typer.echo(f"ERROR: invalid configuration: {exc}", err=True)
        return 1
    settings = loaded.settings

    runId = runId or generate_run_id()
    try:
        logger, logFilePath = createCommandLogger(
            commandName=COMMAND_NAME,
            logDir=settings.log_dir,
            runId=runId,
            logLevel=settings.log_level,
        )
    except (ValueError, OSError) as exc:
        typer.echo(f"ERROR: failed to initialize logging: {exc}", err=True)
        return 1

    startMonotonic = time.monotonic()
    try:
        printRunHeader(runId, server, database, username, password, settings, loaded.sources_used)
        logEvent(logger, logging.INFO, runId, "core", f"Command started log_file={logFilePath}")

        logEvent(logger, logging.DEBUG, runId, "csv", f"Loading CSV {filePath} ...")
        source = CsvUserSource(filePath, defaults=settings.user_defaults(), logger=logger, run_id=runId)
        try:
            candidates = loadCandidates(source)
        except (OSError, UnicodeDecodeError) as exc:
            logEvent(logger, logging.ERROR, runId, "csv", f"Failed to load csv file {filePath}: {exc}")
            return 1

        with createApiClient(settings, server, database, username, password, apiTransport) as client:
            if not authenticate(client, logger, runId):
                return 1

            usecase = ImportUsersUseCase(FleetEntityGateway(client), logger, runId)
            try:
                usecase.run(candidates)
            except CatalogFetchError as exc:
                logEvent(logger, logging.ERROR, runId, "import", f"Failed to import users: {exc}")
                return 1
        return 0
    finally:
        durationMs = getDurationMs(startMonotonic, time.monotonic())
        logEvent(logger, logging.DEBUG, runId, "core", f"Command finished duration_ms={durationMs}")
        closeLogger(logger)


# Позиционные значения (например, пароль "-secret") не разбираются как опции;
# опции указываются до позиционных аргументов.
@app.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
def main(
    arguments: list[str] | None = typer.Argument(
        None,
        metavar="SERVER DATABASE USERNAME PASSWORD INPUT_FILE",
        help="Server, database, user name, password and CSV file to import.",
        show_default=False,
    ),
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="API timeout in seconds"),
    tlsSkipVerify: bool | None = typer.Option(None, "--tls-skip-verify", help="Disable TLS verification"),
    caFile: str | None = typer.Option(None, "--ca-file", help="CA file path"),
    timeZoneId: str | None = typer.Option(None, "--timezone", help="Time zone assigned to created users"),
):
    """
    Импорт пользователей из CSV в платформу управления автопарком.
    """
    cliOverrides = {
        "log_level": logLevel,
        "log_dir": logDir,
        "timeout_seconds": timeoutSeconds,
        "tls_skip_verify": tlsSkipVerify,
        "ca_file": caFile,
        "time_zone_id": timeZoneId,
    }
    exitCode = runImportCommand(
        arguments=list(arguments or []),
        configPath=config,
        runId=runId,
        cliOverrides=cliOverrides,
    )
    raise typer.Exit(code=exitCode)


if __name__ == "__main__":
    app()
