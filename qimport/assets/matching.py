"""
Сопоставление требуемого имени файла с загруженными.

Уровни (пробуются по порядку, первый давший кандидатов выигрывает):
  1. точное имя;
  2. базовое имя без расширения ("photo1.png" ~ "photo1.jpg");
  3. базовое имя без учёта регистра ("Photo1.PNG" ~ "photo1.jpg").

Если на уровне несколько кандидатов, предпочитается кандидат с тем же
расширением (без учёта регистра). Если и так несколько, результат
AMBIGUOUS: угадывать между ними нельзя.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from qimport.models.enums import MatchStatus


@dataclass(frozen=True)
class MatchOutcome:
    required: str
    status: MatchStatus
    resolved: Optional[str] = None
    candidates: Tuple[str, ...] = ()
    tier: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is MatchStatus.FOUND


Matcher = Callable[[str, Sequence[str]], List[str]]


def split_name(filename: str) -> Tuple[str, str]:
    """'photo1.PNG' -> ('photo1', 'png')"""
    base, ext = os.path.splitext(filename)
    return base, ext.lstrip(".").lower()


def base_name(filename: str) -> str:
    return split_name(filename)[0]


def exact_matcher(required: str, available: Sequence[str]) -> List[str]:
    return [name for name in available if name == required]


def base_name_matcher(required: str, available: Sequence[str]) -> List[str]:
    wanted = base_name(required)
    return [name for name in available if base_name(name) == wanted]


def casefold_base_name_matcher(required: str, available: Sequence[str]) -> List[str]:
    wanted = base_name(required).casefold()
    return [name for name in available if base_name(name).casefold() == wanted]


DEFAULT_MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("exact", exact_matcher),
    ("base_name", base_name_matcher),
    ("base_name_casefold", casefold_base_name_matcher),
)


def _narrow(required: str, candidates: List[str]) -> List[str]:
    """Из нескольких кандидатов оставить те, у которых то же расширение."""
    if len(candidates) <= 1:
        return candidates
    _, ext = split_name(required)
    same_ext = [c for c in candidates if split_name(c)[1] == ext]
    return same_ext or candidates


def first_match(
    required: str,
    available: Sequence[str],
    matchers: Sequence[Tuple[str, Matcher]] = DEFAULT_MATCHERS,
) -> MatchOutcome:
    """
    Пробует матчеры по порядку; первый уровень, вернувший кандидатов, решает исход.
    """
    for tier, matcher in matchers:
        candidates = _narrow(required, _unique(matcher(required, available)))
        if not candidates:
            continue
        if len(candidates) == 1:
            return MatchOutcome(required, MatchStatus.FOUND, candidates[0], tuple(candidates), tier)
        return MatchOutcome(required, MatchStatus.AMBIGUOUS, None, tuple(candidates), tier)
    return MatchOutcome(required, MatchStatus.NOT_FOUND)


def match_asset(required: str, available: Sequence[str]) -> MatchOutcome:
    return first_match(required, available)


def _unique(names: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out
