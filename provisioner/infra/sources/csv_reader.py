from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from typing import Iterator

from provisioner.domain.models import CandidateUser, UserDefaults

EXPECTED_COLUMNS = 6
COMMENT_PREFIX = "#"

SOURCE_COLUMNS = (
    "username",
    "password",
    "organization_nodes",
    "security_node",
    "first_name",
    "last_name",
)


@dataclass(frozen=True)
class CsvLineIssue:
    """
    Назначение:
        Строка CSV, пропущенная из-за неверного числа колонок.
    """

    line_no: int
    columns: int
    message: str


def parseField(value: str | None) -> str:
    """
    Назначение:
        Тримит значение колонки; отсутствующее значение -> "".
    """
    if value is None:
        return ""
    return value.strip()


def isSkippedLine(line: str) -> bool:
    """Пустые строки и комментарии (#) не являются данными."""
    return line.strip() == "" or line.startswith(COMMENT_PREFIX)


class CsvUserSource:
    """
    Назначение/ответственность:
        Ленивый источник CandidateUser из CSV:
        username,password,organizationNodes,securityNode,firstName,lastName

    Ограничения:
        - Итерация однократная (файл открывается при первом next()).
        - Кавычки не обрабатываются: текст поля попадает в CandidateUser как есть.
        - Строки с неверным числом колонок пропускаются с предупреждением
          и сохраняются в issues.
        - Ошибки открытия/чтения файла (OSError, UnicodeDecodeError) пробрасываются.
    """

    def __init__(
        self,
        path: str,
        defaults: UserDefaults | None = None,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
    ) -> None:
        self.path = path
        self.defaults = defaults or UserDefaults()
        self.logger = logger
        self.run_id = run_id
        self.issues: list[CsvLineIssue] = []
        self._consumed = False

    def __iter__(self) -> Iterator[CandidateUser]:
        if self._consumed:
            raise RuntimeError(f"CSV source {self.path} has already been consumed")
        self._consumed = True
        return self._read()

    def _read(self) -> Iterator[CandidateUser]:
        with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
            for line_no, raw in enumerate(f, start=1):
                line = raw.rstrip("\r\n")
                if isSkippedLine(line):
                    continue
                row = next(csv.reader([line], delimiter=",", quoting=csv.QUOTE_NONE), [])
                if len(row) != EXPECTED_COLUMNS:
                    self._skip(line_no, len(row))
                    continue
                yield self._build(line_no, row)

    def _build(self, line_no: int, row: list[str]) -> CandidateUser:
        values = dict(zip(SOURCE_COLUMNS, (parseField(v) for v in row)))
        return CandidateUser(
            line_no=line_no,
            name=values["username"],
            password=values["password"],
            first_name=values["first_name"],
            last_name=values["last_name"],
            organization_nodes=values["organization_nodes"],
            security_node=values["security_node"],
            authentication_type=self.defaults.authentication_type,
            active_from=self.defaults.active_from,
            active_to=self.defaults.active_to,
            time_zone_id=self.defaults.time_zone_id,
            is_driver=self.defaults.is_driver,
            is_email_report_enabled=self.defaults.is_email_report_enabled,
        )

    def _skip(self, line_no: int, columns: int) -> None:
        issue = CsvLineIssue(
            line_no=line_no,
            columns=columns,
            message=f"Invalid column count at line {line_no}: expected {EXPECTED_COLUMNS}, got {columns}",
        )
        self.issues.append(issue)
        if self.logger is None:
            return
        extra = {"component": "csv"}
        if self.run_id:
            extra["runId"] = self.run_id
        self.logger.log(logging.WARNING, f"{issue.message}; line skipped", extra=extra)
