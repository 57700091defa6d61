from __future__ import annotations
import re
from typing import List, Optional, Tuple

LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_PAIR_RE = re.compile(r"^\s*(\d+)\s*[-:]\s*(\d+)\s*$")
_INT_RE = re.compile(r"^[+-]?\d+(?:\.0+)?$")


def split_list(cell: str, sep: str = ",") -> List[str]:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    return [p.strip() for p in (cell or "").split(sep) if p.strip()]


def split_codes(cell: str) -> List[str]:
    """
    Коды компетенций через запятую, без повторов, порядок сохраняется.
    'LOG001, TEC001, LOG001' -> ['LOG001', 'TEC001']
    """
    out: List[str] = []
    for code in split_list(cell):
        if code not in out:
            out.append(code)
    return out


def index_to_letter(index: int) -> str:
    return LETTERS[index]


def letter_to_index(token: str, count: int) -> int:
    """
    'B' -> 1. Буква вне первых count -> ValueError.
    """
    letter = (token or "").strip().upper()
    if len(letter) != 1 or letter not in LETTERS[:count]:
        raise ValueError(f"ожидается буква {', '.join(LETTERS[:count])}, получено {token!r}")
    return LETTERS.index(letter)


def letter_or_index(token: str, count: int) -> int:
    """
    Правильный вариант пропуска: буква (A..) или индекс с нуля.
    """
    token = (token or "").strip()
    if token.isdigit():
        idx = int(token)
        if idx >= count:
            raise ValueError(f"индекс {idx} вне диапазона 0-{count - 1}")
        return idx
    return letter_to_index(token, count)


def parse_letter_list(cell: str) -> List[str]:
    """
    correctAnswers: '[A,C]', '["A","C"]', 'A,C', 'A;C' -> ['A', 'C'].
    """
    body = (cell or "").strip()
    if body.startswith("[") and body.endswith("]"):
        body = body[1:-1]
    body = body.replace(";", ",")
    return [p.strip().strip("'\"").strip().upper() for p in body.split(",") if p.strip().strip("'\"").strip()]


def parse_pairs(cell: str) -> List[Tuple[int, int]]:
    """
    correctPairs: '0-1, 1-0' -> [(0, 1), (1, 0)]. Индексы с нуля.
    """
    pairs: List[Tuple[int, int]] = []
    for token in split_list((cell or "").replace(";", ",")):
        m = _PAIR_RE.match(token)
        if not m:
            raise ValueError(f"пара должна иметь вид 'левый-правый', получено {token!r}")
        pairs.append((int(m.group(1)), int(m.group(2))))
    return pairs


def parse_int(cell: str) -> Optional[int]:
    """'150' -> 150, '150.0' -> 150, '' -> None, мусор -> ValueError."""
    value = (cell or "").strip()
    if not value:
        return None
    if not _INT_RE.match(value):
        raise ValueError(f"ожидается целое число, получено {cell!r}")
    return int(float(value))


def parse_bool(cell: str) -> Optional[bool]:
    value = (cell or "").strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None
