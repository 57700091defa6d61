# qimport/datasources/csv_file.py
"""
Разбор CSV-файла импорта вопросов.

Разделитель запятая, поля в двойных кавычках могут содержать запятые
и экранированные кавычки (""). Файл разбирается построчно: перевод строки
внутри кавычек не поддерживается (известное ограничение формата).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from qimport.datasources.base import QuestionsDataSource
from qimport.errors import FormatError
from qimport.models.question_input import RawRow

log = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("subject", "grade", "questiontext", "difficultylevel")


@dataclass(frozen=True)
class ParsedTable:
    header: Tuple[str, ...]        # trim + lower
    rows: Tuple[RawRow, ...]

    def has_column(self, name: str) -> bool:
        return name.lower() in self.header


def parse_csv_line(line: str) -> List[str]:
    """
    a,"b, c","x ""y"" z"  ->  ['a', 'b, c', 'x "y" z']
    Значения trim-нуты.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def decode(raw: str | bytes) -> str:
    """bytes -> str, UTF-8 BOM отбрасывается."""
    if isinstance(raw, bytes):
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        return raw.decode("utf-8", errors="replace")
    if raw.startswith("\ufeff"):
        return raw[1:]
    return raw


def parse_csv_text(raw: str | bytes) -> ParsedTable:
    """
    Разбирает весь файл. Первая непустая строка считается заголовком.
    Короткие строки дополняются пустыми значениями, лишние поля отбрасываются.
    """
    text = decode(raw)
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if len(lines) < 2:
        raise FormatError("CSV должен содержать строку заголовка и хотя бы одну строку данных")

    header = tuple(h.strip().lower() for h in parse_csv_line(lines[0]))
    missing = [col for col in REQUIRED_COLUMNS if col not in header]
    if missing:
        raise FormatError("Не хватает обязательных колонок: " + ", ".join(missing))

    rows: List[RawRow] = []
    for line_no, line in enumerate(lines[1:], start=2):
        values = parse_csv_line(line)
        if len(values) > len(header):
            log.debug("Строка файла %d: %d лишних полей отброшено", line_no, len(values) - len(header))
        values += [""] * (len(header) - len(values))
        data = {}
        for col, val in zip(header, values):
            # при дублях колонки выигрывает первое непустое значение
            if col not in data or not data[col]:
                data[col] = val
        rows.append(RawRow(data))

    log.info("CSV разобран: %d колонок, %d строк данных", len(header), len(rows))
    return ParsedTable(header=header, rows=tuple(rows))


@dataclass
class CsvFileSource(QuestionsDataSource):
    path: str | Path

    def fetch_table(self) -> ParsedTable:
        """
        Читает файл с диска и разбирает его.
        """
        content = Path(self.path).read_bytes()
        return parse_csv_text(content)
