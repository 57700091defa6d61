# qimport/services/import_service.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from qimport.assets.placeholders import collect_required, convert_placeholders
from qimport.assets.reconciler import AssetPlan, AssetReconciler
from qimport.config import Settings
from qimport.datasources.base import QuestionsDataSource
from qimport.datasources.csv_file import ParsedTable, parse_csv_text
from qimport.detection.detector import Composition, detect_composition, infer_row_type
from qimport.errors import (
    CompetencyNotFound,
    ImportPipelineError,
    MissingAssetError,
    ResolutionError,
    RowValidationError,
)
from qimport.mappers.row_mapper import RowMapper
from qimport.media.base import MediaStore
from qimport.models.enums import ImportState
from qimport.models.question_input import ImportRow, RawRow, UploadedAsset
from qimport.models.result import ImportResult, ResultAccumulator, RowFailure, RowSuccess
from qimport.storage.builders import build_payload, correct_answer_display
from qimport.storage.repositories import QuestionRepository
from qimport.utils.text import preview

log = logging.getLogger(__name__)

Source = Union[str, bytes, QuestionsDataSource]


class ImportService:
    """
    Сервис импорта вопросов из CSV в банк вопросов портала.

    Основной сценарий:
      - разбирает CSV и определяет тип вопросов,
      - сверяет плейсхолдеры {file.ext} с загруженными картинками,
      - загружает картинки и построчно создаёт вопросы,
      - возвращает ImportResult с успехами и ошибками по строкам.
    """

    def __init__(
        self,
        repo: QuestionRepository,
        media_store: MediaStore,
        *,
        asset_base_url: str = "http://localhost:5000",
        created_by: int = 1,
        upload_workers: int = 4,
        detection_sample_size: int = 5,
        short_answer_max_words: int = 100,
    ) -> None:
        self.repo = repo
        self.media_store = media_store
        self.asset_base_url = asset_base_url
        self.created_by = created_by
        self.detection_sample_size = detection_sample_size
        self.mapper = RowMapper(short_answer_max_words=short_answer_max_words)
        self.reconciler = AssetReconciler(media_store, upload_workers=upload_workers)

    @classmethod
    def from_settings(cls, settings: Settings, repo: QuestionRepository, media_store: MediaStore) -> "ImportService":
        return cls(
            repo,
            media_store,
            asset_base_url=settings.asset_base_url,
            created_by=settings.created_by,
            upload_workers=settings.upload_workers,
            detection_sample_size=settings.detection_sample_size,
            short_answer_max_words=settings.short_answer_max_words,
        )

    # --- Публичный API ---

    def new_session(self) -> "ImportSession":
        return ImportSession(self)

    def import_csv(self, source: Source, assets: Sequence[UploadedAsset] = ()) -> ImportResult:
        """
        Полный цикл за один вызов. Ошибки этапов (FormatError, DetectionError,
        MissingAssetError) пробрасываются вызывающему.
        """
        session = self.new_session()
        session.load(source)
        session.supply_assets(assets)
        return session.run()

    # --- Обработка строк ---

    def process_rows(
        self,
        rows: Sequence[RawRow],
        composition: Composition,
        resolved_images: Dict[str, str],
        *,
        persist: bool = True,
    ) -> ImportResult:
        """
        Свёртка по строкам в (successes, errors). Ошибка строки не прерывает пакет.
        Уже созданные вопросы не откатываются.
        """
        acc = ResultAccumulator()
        for number, raw in enumerate(rows, start=1):
            try:
                acc.ok(self._process_row(number, raw, composition, resolved_images, persist))
            except (RowValidationError, ResolutionError) as e:
                log.warning("Строка #%d: %s", number, e)
                acc.fail(RowFailure(row=number, error=str(e), data=raw.to_dict(), kind=type(e).__name__))
            except Exception as e:
                log.exception("Строка #%d: непредвиденная ошибка", number)
                acc.fail(RowFailure(row=number, error=str(e) or type(e).__name__,
                                    data=raw.to_dict(), kind="UnexpectedError"))

        result = acc.freeze()
        summary = result.summary
        log.info("Импорт строк завершён: всего=%d, успешно=%d, с ошибками=%d%s",
                 summary.total, summary.successful, summary.failed,
                 "" if persist else " (без записи)")
        return result

    def _process_row(
        self,
        number: int,
        raw: RawRow,
        composition: Composition,
        resolved_images: Dict[str, str],
        persist: bool,
    ) -> RowSuccess:
        qtype = infer_row_type(raw, fallback=composition.question_type)
        row = self.mapper.map_row(number, raw, qtype)

        subject_id = self.repo.resolve_subject(row.subject)
        if subject_id is None:
            raise ResolutionError(f"Предмет не найден: '{row.subject}'")
        grade_id = self.repo.resolve_grade(row.grade)
        if grade_id is None:
            raise ResolutionError(f"Класс не найден: '{row.grade}'")

        competency_ids, found, not_found = self._resolve_competencies(row)
        if not_found:
            log.info("Строка #%d: компетенции не найдены и не будут привязаны: %s",
                     number, ", ".join(not_found))

        question_text = self._render_text(row, resolved_images)
        payload = build_payload(
            row,
            subject_id=subject_id,
            grade_id=grade_id,
            question_text=question_text,
            competency_ids=competency_ids,
            created_by=self.created_by,
        )

        question_id: Optional[int] = None
        if persist:
            question_id = self.repo.create_question(payload)
            log.info("Строка #%d: создан вопрос id=%s (%s) %r",
                     number, question_id, qtype.value, preview(row.question_text.raw))

        return RowSuccess(
            row=number,
            question_id=question_id,
            question_text=row.question_text.raw,
            subject_name=self.repo.subject_name(subject_id) or row.subject,
            grade_name=self.repo.grade_name(grade_id) or row.grade,
            question_type=qtype.value,
            correct_answer=correct_answer_display(row),
            difficulty_level=row.difficulty_level,
            found_competencies=tuple(found),
            not_found_competencies=tuple(not_found),
        )

    def _resolve_competencies(self, row: ImportRow) -> Tuple[List[int], List[str], List[str]]:
        ids: List[int] = []
        found: List[str] = []
        not_found: List[str] = []
        for code in row.competency_codes:
            try:
                comp_id = self._competency_id(code)
            except CompetencyNotFound as e:
                not_found.append(e.code)
                continue
            if comp_id not in ids:
                ids.append(comp_id)
            found.append(code)
        return ids, found, not_found

    def _competency_id(self, code: str) -> int:
        comp_id = self.repo.resolve_competency(code)
        if comp_id is None:
            raise CompetencyNotFound(code)
        return comp_id

    def _render_text(self, row: ImportRow, resolved_images: Dict[str, str]) -> str:
        if not row.question_text.placeholders or not resolved_images:
            return row.question_text.raw
        return convert_placeholders(row.question_text.raw, resolved_images, self.asset_base_url)


class ImportSession:
    """
    Один запуск импорта с явной машиной состояний:

      Idle -> Parsing -> Detecting -> (Rejected)
           -> ReconcilingAssets -> (AwaitingAssets) -> Importing -> Completed

    AwaitingAssets можно покинуть повторным supply_assets() без повторного
    разбора CSV. До Importing ничего не пишется наружу, поэтому сессию
    можно просто бросить. Начавшийся Importing не прерывается.
    """

    def __init__(self, service: ImportService) -> None:
        self.service = service
        self.state = ImportState.IDLE
        self.table: Optional[ParsedTable] = None
        self.composition: Optional[Composition] = None
        self.required_images: Tuple[str, ...] = ()
        self.plan: Optional[AssetPlan] = None
        self.result: Optional[ImportResult] = None
        self._assets: Dict[str, UploadedAsset] = {}
        # filename -> stored name файлов, уже загруженных в медиа-хранилище
        self._stored: Dict[str, str] = {}

    def _expect(self, *states: ImportState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise RuntimeError(f"Недопустимое состояние сессии: {self.state.value}, ожидалось: {allowed}")

    def load(self, source: Source) -> Composition:
        """
        Разбор (CSV-текст или источник данных) и определение типа. Ошибки формата/типа переводят сессию в Rejected.
        """
        self._expect(ImportState.IDLE)
        try:
            self.state = ImportState.PARSING
            if isinstance(source, QuestionsDataSource):
                self.table = source.fetch_table()
            else:
                self.table = parse_csv_text(source)

            self.state = ImportState.DETECTING
            sample = self.table.rows[: self.service.detection_sample_size]
            self.composition = detect_composition(self.table.header, sample)
        except ImportPipelineError as e:
            self.state = ImportState.REJECTED
            log.warning("Импорт отклонён: %s", e)
            raise
        except Exception:
            self.state = ImportState.REJECTED
            log.exception("Импорт отклонён: не удалось прочитать источник")
            raise

        self.required_images = tuple(collect_required(r.cell("questiontext") for r in self.table.rows))
        self.state = ImportState.RECONCILING_ASSETS
        log.info("Файл принят: %d строк, тип %s, изображений требуется %d",
                 len(self.table.rows), self.composition, len(self.required_images))
        return self.composition

    def supply_assets(self, assets: Sequence[UploadedAsset] = ()) -> AssetPlan:
        """
        Добавляет файлы к уже переданным и заново сверяет плейсхолдеры.
        При нехватке файлов сессия переходит в AwaitingAssets и поднимает MissingAssetError.
        """
        self._expect(ImportState.RECONCILING_ASSETS, ImportState.AWAITING_ASSETS)
        for asset in assets:
            self._assets[asset.filename] = asset
            # новое содержимое под тем же именем загружается заново
            self._stored.pop(asset.filename, None)

        self.state = ImportState.RECONCILING_ASSETS
        try:
            self.plan = self.service.reconciler.reconcile(self.required_images, list(self._assets.values()))
        except MissingAssetError:
            self.plan = None
            self.state = ImportState.AWAITING_ASSETS
            raise
        return self.plan

    def run(self) -> ImportResult:
        """
        Загрузка картинок и построчный импорт. Возвращает итоговый ImportResult.
        """
        self._expect(ImportState.RECONCILING_ASSETS)
        if self.plan is None:
            # сверка ещё не вызывалась (например, файл без картинок)
            self.supply_assets()

        self.state = ImportState.IMPORTING
        try:
            resolved = self.service.reconciler.upload(self.plan, stored=self._stored)
        except MissingAssetError:
            # ни одна строка ещё не записана, можно досыпать файлы и повторить;
            # успешно загруженные остаются в self._stored
            self.plan = None
            self.state = ImportState.AWAITING_ASSETS
            raise

        self.result = self.service.process_rows(self.table.rows, self.composition, resolved)
        self.state = ImportState.COMPLETED
        return self.result

    def validate(self) -> ImportResult:
        """
        Проверка всех строк без записи: вопросы и файлы не создаются.
        """
        self._expect(ImportState.RECONCILING_ASSETS, ImportState.AWAITING_ASSETS)
        return self.service.process_rows(self.table.rows, self.composition, {}, persist=False)
