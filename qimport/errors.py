# qimport/errors.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence


class ImportPipelineError(Exception):
    """
    Базовая ошибка пайплайна импорта.
    """


# --- Ошибки уровня этапа: останавливают весь импорт ---

class FormatError(ImportPipelineError):
    """Файл пустой, слишком короткий или без обязательных колонок."""


class DetectionError(ImportPipelineError):
    """По колонкам файла нельзя однозначно определить тип вопросов."""


class MissingAssetError(ImportPipelineError):
    """
    Для части плейсхолдеров {file.ext} нет загруженного файла.
    Восстановимо: вызывающий может досыпать файлы и повторить сверку.

    - missing: имена без единого кандидата
    - ambiguous: имя -> несколько равноправных кандидатов
    - failed: имена, загрузка которых в медиа-хранилище не удалась
    """

    def __init__(
        self,
        missing: Sequence[str] = (),
        ambiguous: Optional[Dict[str, List[str]]] = None,
        failed: Optional[Dict[str, str]] = None,
    ) -> None:
        self.missing: List[str] = list(missing)
        self.ambiguous: Dict[str, List[str]] = dict(ambiguous or {})
        self.failed: Dict[str, str] = dict(failed or {})
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts: List[str] = []
        if self.missing:
            parts.append("не найдены изображения: " + ", ".join(self.missing))
        if self.ambiguous:
            amb = "; ".join(
                f"{name} -> {', '.join(cands)}" for name, cands in self.ambiguous.items()
            )
            parts.append("неоднозначное сопоставление: " + amb)
        if self.failed:
            parts.append("ошибка загрузки: " + ", ".join(self.failed))
        return "; ".join(parts) or "не хватает изображений"


# --- Ошибки уровня строки: фиксируются в ImportResult, импорт продолжается ---

class RowValidationError(ImportPipelineError):
    """Строка нарушает структурные инварианты своего типа."""


class ResolutionError(ImportPipelineError):
    """Предмет или класс (grade) не найден в репозитории."""


class CompetencyNotFound(LookupError):
    """
    Мягкая ошибка: код компетенции не найден.
    Вопрос всё равно создаётся, код попадает в notFoundCompetencies.
    """

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(code)
