from typing import Optional

from qimport.errors import RowValidationError
from qimport.models.enums import QuestionType
from qimport.utils.parsing import parse_int

GROWTH_SCORE_MIN = 100
GROWTH_SCORE_MAX = 350
DOK_MIN = 1
DOK_MAX = 4


def map_difficulty(cell: str) -> int:
    """
    difficultyLevel (Growth Metric Score): целое 100..350, обязательно.
    """
    try:
        value = parse_int(cell)
    except ValueError:
        value = None
    if value is None or not GROWTH_SCORE_MIN <= value <= GROWTH_SCORE_MAX:
        raise RowValidationError(
            f"Некорректный difficultyLevel: {cell!r}, допустимо {GROWTH_SCORE_MIN}-{GROWTH_SCORE_MAX}"
        )
    return value


def map_dok(cell: str, qtype: QuestionType) -> Optional[int]:
    """
    dokLevel (Depth of Knowledge) 1..4: обязателен для ShortAnswer/Essay.
    Для остальных типов проверяется, если указан, но в БД не пишется.
    """
    try:
        value = parse_int(cell)
    except ValueError:
        value = -1

    if qtype.is_free_response:
        if value is None or not DOK_MIN <= value <= DOK_MAX:
            raise RowValidationError(
                f"dokLevel обязателен для ShortAnswer и Essay и должен быть от {DOK_MIN} до {DOK_MAX}"
            )
        return value

    if value is not None and not DOK_MIN <= value <= DOK_MAX:
        raise RowValidationError(f"Некорректный dokLevel: {cell!r}, допустимо {DOK_MIN}-{DOK_MAX}")
    return None
