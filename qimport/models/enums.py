from __future__ import annotations

from enum import Enum
from typing import Optional


class QuestionType(str, Enum):
    MCQ = "MCQ"                        # один правильный из четырёх
    MULTIPLE_SELECT = "MultipleSelect"  # несколько правильных из четырёх
    TRUE_FALSE = "TrueFalse"
    FILL_IN_BLANK = "FillInBlank"
    MATCHING = "Matching"
    SHORT_ANSWER = "ShortAnswer"       # проверяется вне импорта, лимит слов
    ESSAY = "Essay"                    # проверяется вне импорта, без лимита

    @property
    def is_free_response(self) -> bool:
        return self in (QuestionType.SHORT_ANSWER, QuestionType.ESSAY)

    @property
    def has_letter_options(self) -> bool:
        return self in (QuestionType.MCQ, QuestionType.MULTIPLE_SELECT)

    @classmethod
    def from_label(cls, label: str) -> Optional["QuestionType"]:
        """
        'mcq', 'Multiple Select', 'fill-in-blank', 'True/False' -> QuestionType.
        Неизвестное значение -> None.
        """
        key = " ".join((label or "").strip().lower().split())
        return _LABELS.get(key)


_LABELS = {
    "mcq": QuestionType.MCQ,
    "multiple choice": QuestionType.MCQ,
    "multiplechoice": QuestionType.MCQ,
    "multipleselect": QuestionType.MULTIPLE_SELECT,
    "multiple select": QuestionType.MULTIPLE_SELECT,
    "multiple-select": QuestionType.MULTIPLE_SELECT,
    "truefalse": QuestionType.TRUE_FALSE,
    "true false": QuestionType.TRUE_FALSE,
    "true/false": QuestionType.TRUE_FALSE,
    "true-false": QuestionType.TRUE_FALSE,
    "fillinblank": QuestionType.FILL_IN_BLANK,
    "fill in blank": QuestionType.FILL_IN_BLANK,
    "fill-in-blank": QuestionType.FILL_IN_BLANK,
    "fill in the blanks": QuestionType.FILL_IN_BLANK,
    "matching": QuestionType.MATCHING,
    "shortanswer": QuestionType.SHORT_ANSWER,
    "short answer": QuestionType.SHORT_ANSWER,
    "short-answer": QuestionType.SHORT_ANSWER,
    "essay": QuestionType.ESSAY,
}


class ImportState(str, Enum):
    IDLE = "Idle"
    PARSING = "Parsing"
    DETECTING = "Detecting"
    REJECTED = "Rejected"
    RECONCILING_ASSETS = "ReconcilingAssets"
    AWAITING_ASSETS = "AwaitingAssets"
    IMPORTING = "Importing"
    COMPLETED = "Completed"


class MatchStatus(str, Enum):
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"
