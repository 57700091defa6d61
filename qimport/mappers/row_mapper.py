# qimport/mappers/row_mapper.py

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from qimport.errors import RowValidationError
from qimport.mappers.difficulty_mapper import map_difficulty, map_dok
from qimport.models.enums import QuestionType
from qimport.models.question_input import (
    Answer,
    Blank,
    ChoiceAnswer,
    FillInBlankAnswer,
    FreeResponseAnswer,
    ImportRow,
    MatchingAnswer,
    MultiSelectAnswer,
    QuestionText,
    RawRow,
    TrueFalseAnswer,
)
from qimport.utils.parsing import (
    letter_or_index,
    letter_to_index,
    parse_bool,
    parse_letter_list,
    parse_pairs,
    split_codes,
    split_list,
)

log = logging.getLogger(__name__)

OPTION_COLUMNS = ("optiona", "optionb", "optionc", "optiond")
BASE_COLUMNS = ("subject", "grade", "questiontext", "difficultylevel")


# --- Ответы по типам ---------------------------------------------------------


def _four_options(row: RawRow) -> Tuple[str, ...]:
    options = tuple(row.cell(col) for col in OPTION_COLUMNS)
    if not all(options):
        raise RowValidationError("Нужны все четыре варианта: optionA, optionB, optionC, optionD")
    return options


def _mcq(row: RawRow, text: QuestionText) -> ChoiceAnswer:
    options = _four_options(row)
    cell = row.cell("correctanswer")
    if not cell:
        raise RowValidationError("Для MCQ обязательна колонка correctAnswer")
    try:
        index = letter_to_index(cell, len(options))
    except ValueError:
        raise RowValidationError(f"Некорректный correctAnswer: {cell!r}, допустимо A, B, C или D")
    return ChoiceAnswer(options=options, correct_index=index)


def _multiple_select(row: RawRow, text: QuestionText) -> MultiSelectAnswer:
    options = _four_options(row)
    cell = row.cell("correctanswers")
    letters = parse_letter_list(cell)
    if not letters:
        raise RowValidationError("Для MultipleSelect нужен хотя бы один правильный ответ в correctAnswers")
    indices = set()
    for letter in letters:
        try:
            indices.add(letter_to_index(letter, len(options)))
        except ValueError:
            raise RowValidationError(f"Некорректная буква в correctAnswers: {letter!r}, допустимо A, B, C или D")
    return MultiSelectAnswer(options=options, correct_indices=tuple(sorted(indices)))


def _true_false(row: RawRow, text: QuestionText) -> TrueFalseAnswer:
    value = parse_bool(row.cell("correctanswer"))
    if value is None:
        raise RowValidationError('Для TrueFalse correctAnswer должен быть "true" или "false"')
    return TrueFalseAnswer(value=value)


def _fill_in_blank(row: RawRow, text: QuestionText) -> FillInBlankAnswer:
    options_per_blank = split_list(row.cell("blankoptions"), ";")
    corrects = split_list(row.cell("blankcorrects"), ";")
    if not options_per_blank or not corrects:
        raise RowValidationError("Для FillInBlank обязательны blankOptions и blankCorrects")
    if len(options_per_blank) != len(corrects):
        raise RowValidationError(
            f"Количество пропусков в blankOptions ({len(options_per_blank)}) "
            f"не совпадает с blankCorrects ({len(corrects)})"
        )
    if text.blank_count != len(options_per_blank):
        raise RowValidationError(
            f"В тексте вопроса {text.blank_count} пропуск(ов) (___ или {{n}}), "
            f"а в blankOptions настроено {len(options_per_blank)}"
        )

    blanks: List[Blank] = []
    for number, (block, correct) in enumerate(zip(options_per_blank, corrects), start=1):
        options = tuple(split_list(block))
        if len(options) < 2:
            raise RowValidationError(f"Пропуск {number}: нужно минимум 2 варианта")
        try:
            index = letter_or_index(correct, len(options))
        except ValueError as e:
            raise RowValidationError(f"Пропуск {number}: некорректный правильный ответ {correct!r}: {e}")
        blanks.append(Blank(options=options, correct_index=index))
    return FillInBlankAnswer(blanks=tuple(blanks))


def _matching(row: RawRow, text: QuestionText) -> MatchingAnswer:
    left = tuple(split_list(row.cell("leftitems")))
    right = tuple(split_list(row.cell("rightitems")))
    if len(left) < 2 or len(right) < 2:
        raise RowValidationError("Для Matching нужно минимум по 2 элемента в leftItems и rightItems")
    if len(set(left)) != len(left):
        raise RowValidationError("Элементы leftItems должны быть уникальны")
    if len(set(right)) != len(right):
        raise RowValidationError("Элементы rightItems должны быть уникальны")

    try:
        pairs = parse_pairs(row.cell("correctpairs"))
    except ValueError as e:
        raise RowValidationError(f"Некорректный correctPairs: {e}")
    if not pairs:
        raise RowValidationError("Для Matching обязателен correctPairs (например 0-1,1-0)")

    seen_left: Dict[int, int] = {}
    for l_idx, r_idx in pairs:
        if not 0 <= l_idx < len(left):
            raise RowValidationError(f"Пара {l_idx}-{r_idx}: левый индекс вне диапазона 0-{len(left) - 1}")
        if not 0 <= r_idx < len(right):
            raise RowValidationError(f"Пара {l_idx}-{r_idx}: правый индекс вне диапазона 0-{len(right) - 1}")
        if l_idx in seen_left:
            raise RowValidationError(f"Левый элемент {l_idx} встречается в нескольких парах")
        seen_left[l_idx] = r_idx

    unmatched = [i for i in range(len(left)) if i not in seen_left]
    if unmatched:
        raise RowValidationError(
            "Для каждого левого элемента нужна пара, нет пары для: "
            + ", ".join(str(i) for i in unmatched)
        )
    return MatchingAnswer(left_items=left, right_items=right, pairs=tuple(sorted(pairs)))


def _free_response(max_words: Optional[int]) -> Callable[[RawRow, QuestionText], FreeResponseAnswer]:
    def build(row: RawRow, text: QuestionText) -> FreeResponseAnswer:
        return FreeResponseAnswer(description=row.cell("description"), max_words=max_words)
    return build


class RowMapper:
    """
    RawRow -> ImportRow со всеми проверками инвариантов типа.
    """

    def __init__(self, short_answer_max_words: int = 100):
        self._builders: Dict[QuestionType, Callable[[RawRow, QuestionText], Answer]] = {
            QuestionType.MCQ: _mcq,
            QuestionType.MULTIPLE_SELECT: _multiple_select,
            QuestionType.TRUE_FALSE: _true_false,
            QuestionType.FILL_IN_BLANK: _fill_in_blank,
            QuestionType.MATCHING: _matching,
            QuestionType.SHORT_ANSWER: _free_response(short_answer_max_words),
            QuestionType.ESSAY: _free_response(None),
        }

    def map_row(self, row_number: int, row: RawRow, qtype: QuestionType) -> ImportRow:
        missing = [col for col in BASE_COLUMNS if not row.has(col)]
        if missing:
            raise RowValidationError("Не заполнены обязательные поля: " + ", ".join(missing))

        text = QuestionText(row.cell("questiontext"))
        answer = self._builders[qtype](row, text)
        difficulty = map_difficulty(row.cell("difficultylevel"))
        dok = map_dok(row.cell("doklevel"), qtype)

        log.debug("Строка #%d: тип %s, сложность %d", row_number, qtype.value, difficulty)
        return ImportRow(
            row_number=row_number,
            subject=row.cell("subject"),
            grade=row.cell("grade"),
            question_text=text,
            question_type=qtype,
            answer=answer,
            difficulty_level=difficulty,
            dok_level=dok,
            standard=row.cell("standard"),
            content_focus=row.cell("contentfocus"),
            competency_codes=tuple(split_codes(row.cell("competencycodes"))),
        )
