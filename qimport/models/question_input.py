from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Iterator, Mapping, Optional, Tuple

from qimport.assets.placeholders import count_blanks, extract_placeholders
from qimport.models.enums import QuestionType


class RawRow(Mapping[str, str]):
    """
    Одна разобранная строка CSV: имя колонки в нижнем регистре -> сырое значение.
    Неизменяемая.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str]) -> None:
        self._data: Dict[str, str] = {k.strip().lower(): (v or "") for k, v in data.items()}

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"RawRow({self._data!r})"

    def cell(self, key: str) -> str:
        """Значение колонки, trim-нутое; отсутствующая колонка -> ''."""
        return (self._data.get(key.lower()) or "").strip()

    def has(self, key: str) -> bool:
        return bool(self.cell(key))

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data)


@dataclass(frozen=True)
class QuestionText:
    """
    Текст вопроса (rich text) вместе с лениво вычисленными
    плейсхолдерами картинок и количеством пропусков.
    """

    raw: str

    @cached_property
    def placeholders(self) -> Tuple[str, ...]:
        return tuple(extract_placeholders(self.raw))

    @cached_property
    def blank_count(self) -> int:
        return count_blanks(self.raw)

    def __str__(self) -> str:
        return self.raw


# --- Структуры ответа по типам -----------------------------------------------

@dataclass(frozen=True)
class ChoiceAnswer:
    options: Tuple[str, ...]
    correct_index: int


@dataclass(frozen=True)
class MultiSelectAnswer:
    options: Tuple[str, ...]
    correct_indices: Tuple[int, ...]   # отсортированы, без повторов


@dataclass(frozen=True)
class TrueFalseAnswer:
    value: bool

    options: Tuple[str, ...] = ("True", "False")

    @property
    def correct_index(self) -> int:
        return 0 if self.value else 1


@dataclass(frozen=True)
class Blank:
    options: Tuple[str, ...]
    correct_index: int


@dataclass(frozen=True)
class FillInBlankAnswer:
    blanks: Tuple[Blank, ...]


@dataclass(frozen=True)
class MatchingAnswer:
    left_items: Tuple[str, ...]
    right_items: Tuple[str, ...]
    pairs: Tuple[Tuple[int, int], ...]   # (left, right), по одной паре на каждый left


@dataclass(frozen=True)
class FreeResponseAnswer:
    description: str
    max_words: Optional[int]   # ShortAnswer ограничен, у Essay None


Answer = (
    ChoiceAnswer
    | MultiSelectAnswer
    | TrueFalseAnswer
    | FillInBlankAnswer
    | MatchingAnswer
    | FreeResponseAnswer
)


@dataclass(frozen=True)
class ImportRow:
    """
    Провалидированная типизированная строка импорта.
    """

    row_number: int
    subject: str
    grade: str
    question_text: QuestionText
    question_type: QuestionType
    answer: Answer
    difficulty_level: int                  # Growth Metric Score, 100..350
    dok_level: Optional[int] = None        # 1..4, обязателен для ShortAnswer/Essay
    standard: str = ""
    content_focus: str = ""
    competency_codes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UploadedAsset:
    """
    Файл, переданный клиентом на одну сессию импорта. Живёт только в памяти.
    """

    filename: str
    content: bytes = field(repr=False)
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)
