# qimport/assets/reconciler.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from qimport.assets.matching import MatchOutcome, match_asset
from qimport.errors import MissingAssetError
from qimport.media.base import MediaStore
from qimport.models.enums import MatchStatus
from qimport.models.question_input import UploadedAsset

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetPlan:
    """
    Результат сверки: для каждого требуемого имени либо файл к загрузке,
    либо имя, уже существующее в медиа-хранилище. Порядок = порядок required.
    """

    required: Tuple[str, ...]
    to_upload: Dict[str, UploadedAsset] = field(default_factory=dict)   # required -> upload
    existing: Dict[str, str] = field(default_factory=dict)              # required -> stored
    outcomes: Dict[str, MatchOutcome] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.required


class AssetReconciler:
    """
    Сверяет плейсхолдеры с загруженными файлами и загружает совпавшие.

    reconcile() ничего не пишет во внешние системы, поэтому его можно
    повторять сколько угодно раз (докладывая файлы). upload() вызывается
    только в начале импорта.
    """

    def __init__(self, media_store: MediaStore, upload_workers: int = 4):
        self.media_store = media_store
        self.upload_workers = max(1, upload_workers)

    def reconcile(self, required: Sequence[str], uploads: Sequence[UploadedAsset]) -> AssetPlan:
        by_name: Dict[str, UploadedAsset] = {}
        for asset in uploads:
            # при повторной подаче файла с тем же именем берём последний
            by_name[asset.filename] = asset
        available = list(by_name)

        to_upload: Dict[str, UploadedAsset] = {}
        existing: Dict[str, str] = {}
        outcomes: Dict[str, MatchOutcome] = {}
        missing: List[str] = []
        ambiguous: Dict[str, List[str]] = {}

        for name in required:
            outcome = match_asset(name, available)
            outcomes[name] = outcome

            if outcome.status is MatchStatus.FOUND:
                to_upload[name] = by_name[outcome.resolved]
                if outcome.tier != "exact":
                    log.info("Плейсхолдер {%s} сопоставлен с файлом %s (уровень %s)",
                             name, outcome.resolved, outcome.tier)
                continue

            if outcome.status is MatchStatus.AMBIGUOUS:
                log.warning("Плейсхолдер {%s}: несколько кандидатов %s", name, list(outcome.candidates))
                ambiguous[name] = list(outcome.candidates)
                continue

            if self.media_store.exists(name):
                log.debug("Плейсхолдер {%s}: файл уже есть в медиа-хранилище", name)
                existing[name] = name
                continue

            missing.append(name)

        if missing or ambiguous:
            log.warning("Сверка изображений не пройдена: нет %d, неоднозначно %d",
                        len(missing), len(ambiguous))
            raise MissingAssetError(missing=missing, ambiguous=ambiguous)

        log.info("Сверка изображений: требуется %d, к загрузке %d, уже в хранилище %d",
                 len(required), len(to_upload), len(existing))
        return AssetPlan(
            required=tuple(required),
            to_upload=to_upload,
            existing=existing,
            outcomes=outcomes,
        )

    def upload(self, plan: AssetPlan, stored: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Загружает файлы плана (каждый физический файл один раз) ограниченным пулом.
        Возвращает required -> stored в порядке plan.required.

        stored: filename -> stored name уже загруженных файлов. Такие файлы
        повторно не загружаются, а успешные загрузки дописываются в этот словарь
        даже при частичном провале.
        Если хоть одна загрузка упала, поднимает MissingAssetError с перечнем.
        """
        stored_by_file: Dict[str, str] = stored if stored is not None else {}

        # один файл мог совпасть с несколькими плейсхолдерами
        unique: List[UploadedAsset] = []
        seen = set(stored_by_file)
        for asset in plan.to_upload.values():
            if asset.filename not in seen:
                seen.add(asset.filename)
                unique.append(asset)

        failed: Dict[str, str] = {}

        if unique:
            workers = min(self.upload_workers, len(unique))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # map сохраняет порядок входа
                for asset, (name, error) in zip(unique, pool.map(self._upload_one, unique)):
                    if error is not None:
                        failed[asset.filename] = error
                    else:
                        stored_by_file[asset.filename] = name

        if failed:
            log.error("Не удалось загрузить %d файл(ов): %s", len(failed), ", ".join(failed))
            raise MissingAssetError(failed=failed)

        resolved: Dict[str, str] = {}
        for name in plan.required:
            if name in plan.existing:
                resolved[name] = plan.existing[name]
            else:
                resolved[name] = stored_by_file[plan.to_upload[name].filename]
        return resolved

    def _upload_one(self, asset: UploadedAsset) -> Tuple[Optional[str], Optional[str]]:
        try:
            return self.media_store.upload(asset), None
        except Exception as e:
            log.exception("Ошибка загрузки файла %s", asset.filename)
            return None, str(e)
