from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from qimport.models.enums import QuestionType
from qimport.models.question_input import (
    ChoiceAnswer,
    FillInBlankAnswer,
    FreeResponseAnswer,
    ImportRow,
    MatchingAnswer,
    MultiSelectAnswer,
    TrueFalseAnswer,
)
from qimport.utils.parsing import index_to_letter


@dataclass(frozen=True)
class QuestionPayload:
    """
    Строка таблицы questions + связи questions_competencies.
    """

    subject_id: int
    grade_id: int
    question_text: str
    question_type: QuestionType
    options: Tuple[str, ...]
    correct_option_index: int
    correct_answer: Optional[str]              # JSON или "true"/"false"
    question_metadata: Optional[Dict[str, Any]]
    difficulty_level: int
    dok_level: Optional[int]
    created_by: int
    competency_ids: Tuple[int, ...] = ()

    def options_json(self) -> str:
        return json.dumps(list(self.options), ensure_ascii=False)

    def metadata_json(self) -> Optional[str]:
        if self.question_metadata is None:
            return None
        return json.dumps(self.question_metadata, ensure_ascii=False)


# -------- answer encoding --------

def encode_answer(row: ImportRow) -> Tuple[Tuple[str, ...], int, Optional[str], Optional[Dict[str, Any]]]:
    """
    Ответ строки -> (options, correct_option_index, correct_answer, question_metadata).
    correct_option_index заполняется для всех типов: старые экраны портала читают только его.
    """
    answer = row.answer

    if isinstance(answer, ChoiceAnswer):
        return answer.options, answer.correct_index, None, None

    if isinstance(answer, MultiSelectAnswer):
        indices = list(answer.correct_indices)
        return answer.options, indices[0], json.dumps(indices), None

    if isinstance(answer, TrueFalseAnswer):
        return answer.options, answer.correct_index, "true" if answer.value else "false", None

    if isinstance(answer, FillInBlankAnswer):
        indices = [b.correct_index for b in answer.blanks]
        metadata = {
            "blanks": [{"options": list(b.options), "correctIndex": b.correct_index} for b in answer.blanks]
        }
        return (), indices[0], json.dumps(indices), metadata

    if isinstance(answer, MatchingAnswer):
        pairs = [{"left": l_idx, "right": r_idx} for l_idx, r_idx in answer.pairs]
        metadata = {
            "leftItems": list(answer.left_items),
            "rightItems": list(answer.right_items),
            "correctPairs": pairs,
        }
        return (), pairs[0]["right"], json.dumps(pairs), metadata

    if isinstance(answer, FreeResponseAnswer):
        metadata = {"description": answer.description, "maxWords": answer.max_words}
        return (), 0, None, metadata

    raise TypeError(f"Unsupported answer type: {type(answer)}")


def build_payload(
    row: ImportRow,
    *,
    subject_id: int,
    grade_id: int,
    question_text: str,
    competency_ids: List[int],
    created_by: int,
) -> QuestionPayload:
    options, correct_index, correct_answer, metadata = encode_answer(row)
    # в таблице questions нет отдельных колонок под standard / contentFocus
    extra = {"standard": row.standard, "contentFocus": row.content_focus}
    extra = {k: v for k, v in extra.items() if v}
    if extra:
        metadata = {**(metadata or {}), **extra}
    return QuestionPayload(
        subject_id=subject_id,
        grade_id=grade_id,
        question_text=question_text,
        question_type=row.question_type,
        options=options,
        correct_option_index=correct_index,
        correct_answer=correct_answer,
        question_metadata=metadata,
        difficulty_level=row.difficulty_level,
        dok_level=row.dok_level if row.question_type.is_free_response else None,
        created_by=created_by,
        competency_ids=tuple(competency_ids),
    )


# -------- display --------

def correct_answer_display(row: ImportRow) -> str:
    answer = row.answer
    if isinstance(answer, ChoiceAnswer):
        return index_to_letter(answer.correct_index)
    if isinstance(answer, MultiSelectAnswer):
        return ",".join(index_to_letter(i) for i in answer.correct_indices)
    if isinstance(answer, TrueFalseAnswer):
        return "true" if answer.value else "false"
    if isinstance(answer, FillInBlankAnswer):
        return ";".join(index_to_letter(b.correct_index) for b in answer.blanks)
    if isinstance(answer, MatchingAnswer):
        return ", ".join(f"{l_idx}-{r_idx}" for l_idx, r_idx in answer.pairs)
    if isinstance(answer, FreeResponseAnswer):
        return answer.description or "AI Graded"
    return "-"


def competency_weights(competency_ids: List[int]) -> List[Tuple[int, float]]:
    """Вес делится поровну: 100 / n на каждую компетенцию."""
    if not competency_ids:
        return []
    weight = 100.0 / len(competency_ids)
    return [(cid, weight) for cid in competency_ids]
