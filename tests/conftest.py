import threading
from typing import Dict, List, Set

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from qimport.media.base import MediaStore, MediaUploadError
from qimport.models.question_input import UploadedAsset
from qimport.services.import_service import ImportService
from qimport.storage.repositories import SqlQuestionRepository

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

SCHEMA = [
    """
    CREATE TABLE subjects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100) NOT NULL
    )
    """,
    """
    CREATE TABLE grades (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        display_name VARCHAR(50) NOT NULL
    )
    """,
    """
    CREATE TABLE competencies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code VARCHAR(20) NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE questions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        subject_id INTEGER NOT NULL,
        grade_id INTEGER NOT NULL,
        question_text TEXT NOT NULL,
        question_type VARCHAR(20) NOT NULL,
        options TEXT,
        correct_option_index INTEGER,
        correct_answer TEXT,
        question_metadata TEXT,
        difficulty_level INTEGER NOT NULL,
        dok_level INTEGER,
        created_by INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE questions_competencies (
        question_id INTEGER NOT NULL,
        competency_id INTEGER NOT NULL,
        weight REAL NOT NULL
    )
    """,
]

SEED = [
    "INSERT INTO subjects (id, name) VALUES (1, 'Computer Science'), (2, 'Science'), (3, 'Mathematics')",
    "INSERT INTO grades (id, display_name) VALUES (1, 'Grade 1'), (2, 'Grade 2')",
    "INSERT INTO competencies (id, code, is_active) VALUES (1, 'LOG001', 1), (2, 'PRO001', 1), (3, 'OLD001', 0)",
]


class FakeMediaStore(MediaStore):
    """
    Медиа-хранилище в памяти: upload возвращает 'stored-<имя>'.
    """

    def __init__(self, existing=(), failing=()):
        self.existing: Set[str] = set(existing)
        self.failing: Set[str] = set(failing)
        self.uploaded: List[str] = []
        self.exists_calls: List[str] = []
        self._lock = threading.Lock()

    def upload(self, asset: UploadedAsset) -> str:
        if asset.filename in self.failing:
            raise MediaUploadError(f"{asset.filename}: отклонён")
        with self._lock:
            self.uploaded.append(asset.filename)
        return f"stored-{asset.filename}"

    def exists(self, filename: str) -> bool:
        self.exists_calls.append(filename)
        return filename in self.existing


def image(name: str) -> UploadedAsset:
    return UploadedAsset(filename=name, content=PNG_BYTES)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with eng.begin() as conn:
        for ddl in SCHEMA:
            conn.execute(text(ddl))
        for sql in SEED:
            conn.execute(text(sql))
    yield eng
    eng.dispose()


@pytest.fixture
def repo(engine):
    return SqlQuestionRepository(engine=engine)


@pytest.fixture
def media_store():
    return FakeMediaStore()


@pytest.fixture
def service(repo, media_store):
    return ImportService(repo, media_store, asset_base_url="http://cdn.test", created_by=7)


def fetch_all(engine, sql: str) -> List[Dict]:
    with engine.connect() as conn:
        return [dict(r._mapping) for r in conn.execute(text(sql)).fetchall()]
