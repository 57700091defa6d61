from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RowSuccess:
    row: int
    question_id: Optional[int]       # None в режиме проверки без записи
    question_text: str
    subject_name: str
    grade_name: str
    question_type: str
    correct_answer: str              # строка для отображения
    difficulty_level: int
    found_competencies: Tuple[str, ...] = ()
    not_found_competencies: Tuple[str, ...] = ()

    @property
    def competency_count(self) -> int:
        return len(self.found_competencies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "questionId": self.question_id,
            "questionText": self.question_text,
            "subjectName": self.subject_name,
            "gradeName": self.grade_name,
            "questionType": self.question_type,
            "correctAnswer": self.correct_answer,
            "difficultyLevel": self.difficulty_level,
            "competencyCount": self.competency_count,
            "foundCompetencies": list(self.found_competencies),
            "notFoundCompetencies": list(self.not_found_competencies),
        }


@dataclass(frozen=True)
class RowFailure:
    row: int
    error: str
    data: Dict[str, str] = field(default_factory=dict)
    kind: str = "RowValidationError"

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "error": self.error, "kind": self.kind, "data": dict(self.data)}


@dataclass(frozen=True)
class ImportSummary:
    total: int
    successful: int
    failed: int

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "successful": self.successful, "failed": self.failed}


@dataclass(frozen=True)
class ImportResult:
    """
    Итог одного запуска импорта. После возврата не меняется.
    """

    successes: Tuple[RowSuccess, ...]
    errors: Tuple[RowFailure, ...]

    @property
    def summary(self) -> ImportSummary:
        return ImportSummary(
            total=len(self.successes) + len(self.errors),
            successful=len(self.successes),
            failed=len(self.errors),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successes": [s.to_dict() for s in self.successes],
            "errors": [e.to_dict() for e in self.errors],
            "summary": self.summary.to_dict(),
        }


class ResultAccumulator:
    """
    Накопитель пары (successes, errors) для свёртки по строкам.
    Владеет им один последовательный цикл импорта.
    """

    def __init__(self) -> None:
        self._outcomes: List[Tuple[int, object]] = []

    def ok(self, success: RowSuccess) -> None:
        self._outcomes.append((success.row, success))

    def fail(self, failure: RowFailure) -> None:
        self._outcomes.append((failure.row, failure))

    def freeze(self) -> ImportResult:
        ordered = sorted(self._outcomes, key=lambda item: item[0])
        return ImportResult(
            successes=tuple(o for _, o in ordered if isinstance(o, RowSuccess)),
            errors=tuple(o for _, o in ordered if isinstance(o, RowFailure)),
        )
