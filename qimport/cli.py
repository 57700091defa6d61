# qimport/cli.py
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from qimport.assets.placeholders import IMAGE_EXTENSIONS
from qimport.config import Settings
from qimport.datasources.csv_file import CsvFileSource
from qimport.errors import DetectionError, FormatError, MissingAssetError
from qimport.logging_config import setup_logging
from qimport.media.base import MediaStore
from qimport.media.http_store import HttpMediaStore
from qimport.media.local_store import LocalMediaStore
from qimport.models.enums import QuestionType
from qimport.models.question_input import UploadedAsset
from qimport.models.result import ImportResult
from qimport.services.import_service import ImportService
from qimport.services.templates import render_template, template_filename
from qimport.storage.repositories import SqlQuestionRepository

log = logging.getLogger(__name__)
app = typer.Typer(add_completion=False)


def build_media_store(settings: Settings) -> MediaStore:
    if settings.media_backend == "http":
        if not settings.media_api_base_url:
            typer.echo("❌ media_api_base_url не задан в настройках (.env).")
            raise typer.Exit(code=1)
        return HttpMediaStore(settings)
    return LocalMediaStore(settings.media_dir, max_bytes=settings.max_upload_bytes)


def read_images(directory: Optional[Path]) -> List[UploadedAsset]:
    """
    Все картинки из каталога (без рекурсии) как UploadedAsset.
    """
    if directory is None:
        return []
    if not directory.is_dir():
        typer.echo(f"❌ Каталог с картинками не найден: {directory}")
        raise typer.Exit(code=1)

    assets = []
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lstrip(".").lower() in IMAGE_EXTENSIONS:
            assets.append(UploadedAsset(filename=path.name, content=path.read_bytes()))
    log.info("Из каталога %s прочитано изображений: %d", directory, len(assets))
    return assets


def csv_source(path: Path) -> CsvFileSource:
    if not path.is_file():
        typer.echo(f"❌ CSV-файл не найден: {path}")
        raise typer.Exit(code=1)
    return CsvFileSource(path)


def print_result(result: ImportResult, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    for s in result.successes:
        qid = s.question_id if s.question_id is not None else "-"
        line = f"✅ Строка #{s.row}: id={qid} [{s.question_type}] {s.subject_name} / {s.grade_name}, ответ: {s.correct_answer}"
        if s.not_found_competencies:
            line += f" (компетенции не найдены: {', '.join(s.not_found_competencies)})"
        typer.echo(line)
    for e in result.errors:
        typer.echo(f"❌ Строка #{e.row}: {e.error}")

    summary = result.summary
    typer.echo(f"\nИтого: {summary.total}, успешно: {summary.successful}, с ошибками: {summary.failed}")


@app.command()
def import_csv(
    path: Path = typer.Argument(..., help="CSV-файл с вопросами"),
    images: Optional[Path] = typer.Option(None, "--images", help="Каталог с картинками для плейсхолдеров {file.ext}"),
    as_json: bool = typer.Option(False, "--json", help="Вывести ImportResult в JSON"),
):
    """
    Импортировать вопросы из CSV в банк вопросов портала.

    Логика:
      - разбирает CSV и определяет тип вопросов,
      - сверяет плейсхолдеры {file.ext} с картинками из --images,
      - загружает картинки и создаёт вопросы построчно.
    """
    settings = Settings()
    setup_logging(settings, console=not as_json)
    log.info("Запуск команды import_csv: %s", path)

    source = csv_source(path)
    assets = read_images(images)

    repo = SqlQuestionRepository(str(settings.db_url))
    service = ImportService.from_settings(settings, repo, build_media_store(settings))

    try:
        result = service.import_csv(source, assets)
    except (FormatError, DetectionError) as e:
        typer.echo(f"❌ Файл отклонён: {e}")
        raise typer.Exit(code=1)
    except MissingAssetError as e:
        typer.echo(f"❌ {e}")
        typer.echo("Добавьте недостающие файлы в каталог --images и повторите импорт.")
        raise typer.Exit(code=1)

    print_result(result, as_json)
    log.info("Команда import_csv завершена")


@app.command()
def validate(
    path: Path = typer.Argument(..., help="CSV-файл с вопросами"),
    images: Optional[Path] = typer.Option(None, "--images", help="Каталог с картинками"),
    as_json: bool = typer.Option(False, "--json", help="Вывести результат проверки в JSON"),
):
    """
    Проверить CSV без записи: разбор, тип, картинки и все строки.
    Ни вопросы, ни файлы не создаются.
    """
    settings = Settings()
    setup_logging(settings, console=not as_json)
    log.info("Запуск команды validate: %s", path)

    source = csv_source(path)
    assets = read_images(images)

    repo = SqlQuestionRepository(str(settings.db_url))
    service = ImportService.from_settings(settings, repo, build_media_store(settings))
    session = service.new_session()

    try:
        composition = session.load(source)
    except (FormatError, DetectionError) as e:
        typer.echo(f"❌ Файл отклонён: {e}")
        raise typer.Exit(code=1)

    if not as_json:
        typer.echo(f"Тип вопросов: {composition}, строк: {len(session.table.rows)}")

    assets_ok = True
    try:
        session.supply_assets(assets)
    except MissingAssetError as e:
        assets_ok = False
        # в режиме --json stdout занят отчётом
        typer.echo(f"❌ {e}", err=as_json)

    result = session.validate()
    print_result(result, as_json)

    if not assets_ok or result.errors:
        raise typer.Exit(code=1)
    if not as_json:
        typer.echo("\n✅ Проверка пройдена.")


@app.command()
def template(
    question_type: str = typer.Argument(..., help="MCQ, MultipleSelect, TrueFalse, FillInBlank, Matching, ShortAnswer, Essay"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Куда записать CSV (по умолчанию stdout)"),
):
    """
    Вывести образец CSV для указанного типа вопросов.
    """
    qtype = QuestionType.from_label(question_type)
    if qtype is None:
        typer.echo(f"❌ Неизвестный тип вопроса: {question_type}")
        raise typer.Exit(code=1)

    content = render_template(qtype)
    if output is None:
        typer.echo(content, nl=False)
        return

    if output.is_dir():
        output = output / template_filename(qtype)
    output.write_text(content, encoding="utf-8")
    typer.echo(f"Шаблон {qtype.value} записан в {output}")


def main():
    app()


if __name__ == "__main__":
    main()
