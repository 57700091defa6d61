from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qimport.datasources.csv_file import ParsedTable


class QuestionsDataSource:
    """
    Абстрактный источник таблицы вопросов.
    """
    def fetch_table(self) -> "ParsedTable":
        raise NotImplementedError
