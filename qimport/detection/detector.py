"""
Определение типа вопросов по колонкам CSV.

Правила проверяются строго по порядку, первое сработавшее решает:
  1. явная колонка questionType (несколько разных типов в выборке -> MIXED);
  2. blankOptions / blankCorrects -> FillInBlank;
  3. leftItems / rightItems -> Matching;
  4. correctAnswers -> MultipleSelect;
  5. correctAnswer со значениями true/false -> TrueFalse;
  6. optionA + optionB + correctAnswer -> MCQ.
Если ничего не сработало, это DetectionError, а не тихое MCQ по умолчанию.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Sequence, Tuple

from qimport.errors import DetectionError, RowValidationError
from qimport.models.enums import QuestionType
from qimport.models.question_input import RawRow
from qimport.utils.parsing import parse_bool

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Composition:
    """
    Состав файла: один конкретный тип или смесь (MIXED).
    """

    question_type: Optional[QuestionType] = None

    @property
    def is_mixed(self) -> bool:
        return self.question_type is None

    def __str__(self) -> str:
        return "mixed" if self.is_mixed else self.question_type.value


MIXED = Composition(None)


Rule = Callable[[FrozenSet[str], Sequence[RawRow]], Optional[Composition]]


def _single(qtype: QuestionType) -> Composition:
    return Composition(qtype)


def explicit_type_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "questiontype" not in header:
        return None
    types = set()
    for row in sample:
        qtype = QuestionType.from_label(row.cell("questiontype"))
        if qtype is not None:
            types.add(qtype)
    if len(types) > 1:
        return MIXED
    if len(types) == 1:
        return _single(types.pop())
    return None


def fill_in_blank_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "blankoptions" in header or "blankcorrects" in header:
        return _single(QuestionType.FILL_IN_BLANK)
    return None


def matching_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "leftitems" in header or "rightitems" in header:
        return _single(QuestionType.MATCHING)
    return None


def multiple_select_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "correctanswers" in header:
        return _single(QuestionType.MULTIPLE_SELECT)
    return None


def true_false_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "correctanswer" not in header:
        return None
    values = [row.cell("correctanswer") for row in sample if row.has("correctanswer")]
    if values and all(parse_bool(v) is not None for v in values):
        return _single(QuestionType.TRUE_FALSE)
    return None


def mcq_rule(header: FrozenSet[str], sample: Sequence[RawRow]) -> Optional[Composition]:
    if "correctanswer" in header and _has_options(header):
        return _single(QuestionType.MCQ)
    return None


RULES: Tuple[Tuple[str, Rule], ...] = (
    ("explicit_type", explicit_type_rule),
    ("fill_in_blank", fill_in_blank_rule),
    ("matching", matching_rule),
    ("multiple_select", multiple_select_rule),
    ("true_false", true_false_rule),
    ("mcq", mcq_rule),
)


def _has_options(header: FrozenSet[str]) -> bool:
    return "optiona" in header and "optionb" in header


def _apply_rules(header: FrozenSet[str], sample: Sequence[RawRow]) -> Tuple[Optional[str], Optional[Composition]]:
    for name, rule in RULES:
        result = rule(header, sample)
        if result is not None:
            return name, result
    return None, None


def detect_composition(header: Sequence[str], sample_rows: Sequence[RawRow]) -> Composition:
    """
    Состав файла по заголовку и первым строкам данных.
    """
    columns = frozenset(h.lower() for h in header)
    rule, composition = _apply_rules(columns, sample_rows)
    if composition is not None:
        log.info("Определён тип вопросов: %s (правило %s, выборка %d строк)",
                 composition, rule, len(sample_rows))
        return composition

    has_answers = "correctanswer" in columns or "correctanswers" in columns
    if not _has_options(columns) and not has_answers:
        raise DetectionError(
            'Для вопросов ShortAnswer/Essay нужна колонка "questionType"; '
            "варианты ответа и правильные ответы для них не требуются"
        )
    raise DetectionError(
        'CSV должен содержать "correctAnswer" (MCQ/TrueFalse), "correctAnswers" (MultipleSelect), '
        '"blankOptions/blankCorrects" (FillInBlank), "leftItems/rightItems" (Matching) '
        'или "questionType" (ShortAnswer/Essay)'
    )


def infer_row_type(row: RawRow, fallback: Optional[QuestionType] = None) -> QuestionType:
    """
    Тип одной строки: явное значение questionType, иначе по заполненным
    колонкам (те же правила), иначе единственный тип файла.
    """
    label = row.cell("questiontype")
    if label:
        qtype = QuestionType.from_label(label)
        if qtype is None:
            raise RowValidationError(f"Неизвестный тип вопроса: {label!r}")
        return qtype

    populated = frozenset(col for col in row if row.has(col))
    _, composition = _apply_rules(populated, [row])
    if composition is not None and not composition.is_mixed:
        return composition.question_type
    if fallback is not None:
        return fallback
    raise RowValidationError(
        "Не удалось определить тип вопроса: для ShortAnswer/Essay укажите questionType"
    )
