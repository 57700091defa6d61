"""
Tests for qimport.cli

Test Coverage:
- template: every question type renders a CSV the parser accepts
- import-csv: end-to-end against a SQLite file, images from a directory, --json output
- validate: dry run exit codes
"""
import json
import logging

import pytest
from sqlalchemy import create_engine, text
from typer.testing import CliRunner

from conftest import PNG_BYTES, SCHEMA, SEED, fetch_all
from qimport.cli import app
from qimport.datasources.csv_file import parse_csv_text
from qimport.detection.detector import detect_composition
from qimport.models.enums import QuestionType
from qimport.services.templates import render_template, template_filename

runner = CliRunner()


@pytest.mark.parametrize("qtype", list(QuestionType))
def test_every_template_is_importable(qtype):
    table = parse_csv_text(render_template(qtype))
    composition = detect_composition(table.header, table.rows)
    assert composition.question_type is qtype


@pytest.mark.parametrize("qtype", list(QuestionType))
def test_every_template_passes_validation(qtype, service):
    session = service.new_session()
    session.load(render_template(qtype))

    plan = session.supply_assets([])
    result = session.validate()

    assert plan.required == ()
    # в тестовой базе есть не все предметы из образцов
    assert {e.kind for e in result.errors} <= {"ResolutionError"}
    assert result.successes


def test_template_quotes_multi_value_cells():
    content = render_template(QuestionType.MCQ)
    assert '"LOG001,TEC001"' in content
    table = parse_csv_text(content)
    assert table.rows[0].cell("competencycodes") == "LOG001,TEC001"


class TestTemplateCommand:
    def test_prints_to_stdout(self):
        result = runner.invoke(app, ["template", "fill-in-blank"])
        assert result.exit_code == 0
        assert result.stdout.startswith("subject,grade,questionText,questionType,blankOptions")

    def test_writes_into_directory(self, tmp_path):
        result = runner.invoke(app, ["template", "Matching", "--output", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / template_filename(QuestionType.MATCHING)).is_file()

    def test_unknown_type(self):
        result = runner.invoke(app, ["template", "crossword"])
        assert result.exit_code == 1


@pytest.fixture
def portal(tmp_path, monkeypatch):
    """
    Рабочий каталог с SQLite-базой портала и настройками через переменные окружения.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DB_URL", "sqlite:///portal.db")
    monkeypatch.setenv("MEDIA_BACKEND", "local")
    monkeypatch.setenv("MEDIA_DIR", "media")
    monkeypatch.setenv("LOG_DIR", "logs")
    monkeypatch.setenv("ASSET_BASE_URL", "http://cdn.test")

    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level

    engine = create_engine("sqlite:///portal.db")
    with engine.begin() as conn:
        for sql in SCHEMA + SEED:
            conn.execute(text(sql))
    yield engine
    engine.dispose()

    # команды вызывают setup_logging и перенастраивают root-логгер
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def write_csv(tmp_path, body):
    path = tmp_path / "questions.csv"
    path.write_text(
        "subject,grade,questionText,optionA,optionB,optionC,optionD,correctAnswer,difficultyLevel\n" + body,
        encoding="utf-8",
    )
    return path


class TestImportCommand:
    def test_import_with_images_json(self, portal, tmp_path):
        pics = tmp_path / "pics"
        pics.mkdir()
        (pics / "photo1.jpg").write_bytes(PNG_BYTES)
        (pics / "readme.txt").write_text("skip me")
        csv_path = write_csv(tmp_path, "Science,Grade 1,See {photo1.png},a,b,c,d,A,150\nAlchemy,Grade 1,Q,a,b,c,d,A,150\n")

        result = runner.invoke(app, ["import-csv", str(csv_path), "--images", str(pics), "--json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["summary"] == {"total": 2, "successful": 1, "failed": 1}
        assert report["errors"][0]["row"] == 2

        stored = fetch_all(portal, "SELECT question_text FROM questions")
        assert len(stored) == 1
        assert "http://cdn.test/api/uploads/images/photo1-" in stored[0]["question_text"]
        assert len(list((tmp_path / "media").iterdir())) == 1

    def test_missing_image_exits_with_error(self, portal, tmp_path):
        csv_path = write_csv(tmp_path, "Science,Grade 1,See {photo1.png},a,b,c,d,A,150\n")

        result = runner.invoke(app, ["import-csv", str(csv_path), "--json"])

        assert result.exit_code == 1
        assert "photo1.png" in result.stdout
        assert fetch_all(portal, "SELECT id FROM questions") == []

    def test_rejected_file(self, portal, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("subject,grade\n", encoding="utf-8")

        result = runner.invoke(app, ["import-csv", str(path), "--json"])

        assert result.exit_code == 1
        assert "❌" in result.stdout


class TestValidateCommand:
    def test_valid_file(self, portal, tmp_path):
        csv_path = write_csv(tmp_path, "Science,Grade 1,Q,a,b,c,d,A,150\n")

        result = runner.invoke(app, ["validate", str(csv_path), "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["summary"]["successful"] == 1
        assert fetch_all(portal, "SELECT id FROM questions") == []

    def test_invalid_row(self, portal, tmp_path):
        csv_path = write_csv(tmp_path, "Science,Grade 1,Q,a,b,c,d,Z,150\n")

        result = runner.invoke(app, ["validate", str(csv_path), "--json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["summary"]["failed"] == 1
