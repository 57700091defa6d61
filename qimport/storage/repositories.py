# qimport/storage/repositories.py
from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
import logging

from qimport.storage.builders import QuestionPayload, competency_weights
from qimport.utils.text import normalize

log = logging.getLogger(__name__)


class QuestionRepository:
    """
    Граница хранения для импорта: поиск справочников и создание вопроса.
    """

    def resolve_subject(self, name: str) -> Optional[int]:
        raise NotImplementedError

    def resolve_grade(self, name: str) -> Optional[int]:
        raise NotImplementedError

    def resolve_competency(self, code: str) -> Optional[int]:
        raise NotImplementedError

    def subject_name(self, subject_id: int) -> Optional[str]:
        raise NotImplementedError

    def grade_name(self, grade_id: int) -> Optional[str]:
        raise NotImplementedError

    def create_question(self, payload: QuestionPayload) -> int:
        raise NotImplementedError


class _NameIndex:
    """
    Справочник id <-> имя. Поиск: точное имя, затем нормализованное
    (trim + lower + схлопнутые пробелы). Подстрочных "похожих" совпадений нет.
    """

    def __init__(self, rows: List[Tuple[int, str]]):
        self.by_id: Dict[int, str] = {}
        self.exact: Dict[str, int] = {}
        self.normalized: Dict[str, int] = {}
        for row_id, name in rows:
            name = (name or "").strip()
            self.by_id[row_id] = name
            self.exact.setdefault(name, row_id)
            self.normalized.setdefault(normalize(name), row_id)

    def find(self, name: str) -> Optional[int]:
        name = (name or "").strip()
        if name in self.exact:
            return self.exact[name]
        return self.normalized.get(normalize(name))


class SqlQuestionRepository(QuestionRepository):
    """
    Репозиторий поверх базы портала (MySQL в бою, SQLite в тестах):
    - subjects(id, name)
    - grades(id, display_name)
    - competencies(id, code, is_active)
    - questions(...), questions_competencies(question_id, competency_id, weight)

    Справочники читаются один раз за жизнь репозитория; refresh() перечитывает.
    """

    def __init__(self, db_url: str | None = None, engine: Engine | None = None):
        if engine is None:
            if not db_url:
                raise ValueError("db_url or engine is required")
            engine = create_engine(db_url, pool_pre_ping=True)
        self.engine = engine
        self._subjects: Optional[_NameIndex] = None
        self._grades: Optional[_NameIndex] = None
        self._competencies: Optional[Dict[str, int]] = None

    # ---- справочники ----

    def _fetch_pairs(self, sql: str) -> List[Tuple[int, str]]:
        with self.engine.connect() as conn:
            return [(int(r[0]), r[1]) for r in conn.execute(text(sql)).fetchall()]

    def refresh(self) -> None:
        self._subjects = _NameIndex(self._fetch_pairs("SELECT id, name FROM subjects"))
        self._grades = _NameIndex(self._fetch_pairs("SELECT id, display_name FROM grades"))
        self._competencies = {}
        for comp_id, code in self._fetch_pairs("SELECT id, code FROM competencies WHERE is_active = 1"):
            self._competencies.setdefault((code or "").strip(), comp_id)
        log.info(
            "Справочники загружены: предметов=%d, классов=%d, компетенций=%d",
            len(self._subjects.by_id), len(self._grades.by_id), len(self._competencies),
        )

    def _ensure_loaded(self) -> None:
        if self._subjects is None:
            self.refresh()

    def resolve_subject(self, name: str) -> Optional[int]:
        self._ensure_loaded()
        return self._subjects.find(name)

    def resolve_grade(self, name: str) -> Optional[int]:
        self._ensure_loaded()
        return self._grades.find(name)

    def resolve_competency(self, code: str) -> Optional[int]:
        # коды компетенций сравниваются точно
        self._ensure_loaded()
        return self._competencies.get((code or "").strip())

    def subject_name(self, subject_id: int) -> Optional[str]:
        self._ensure_loaded()
        return self._subjects.by_id.get(subject_id)

    def grade_name(self, grade_id: int) -> Optional[str]:
        self._ensure_loaded()
        return self._grades.by_id.get(grade_id)

    # ---- questions ----

    def create_question(self, payload: QuestionPayload) -> int:
        """
        Вставляет вопрос и его связи с компетенциями в одной транзакции.
        Дедупликации по содержимому нет: повторный импорт создаёт новый вопрос.
        """
        params = {
            "subject_id": payload.subject_id,
            "grade_id": payload.grade_id,
            "question_text": payload.question_text,
            "question_type": payload.question_type.value,
            "options": payload.options_json(),
            "correct_option_index": payload.correct_option_index,
            "correct_answer": payload.correct_answer,
            "question_metadata": payload.metadata_json(),
            "difficulty_level": payload.difficulty_level,
            "dok_level": payload.dok_level,
            "created_by": payload.created_by,
        }
        cols = list(params)
        sql = f"""
            INSERT INTO questions ({", ".join(cols)})
            VALUES ({", ".join(":" + c for c in cols)})
        """

        with self.engine.begin() as conn:
            result = conn.execute(text(sql), params)
            question_id = int(result.lastrowid)

            for competency_id, weight in competency_weights(list(payload.competency_ids)):
                conn.execute(
                    text("""
                        INSERT INTO questions_competencies (question_id, competency_id, weight)
                        VALUES (:qid, :cid, :w)
                    """),
                    {"qid": question_id, "cid": competency_id, "w": weight},
                )

        log.debug("Создан вопрос id=%s (%s), компетенций %d",
                  question_id, payload.question_type.value, len(payload.competency_ids))
        return question_id
