import re

_WS_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")


def normalize(s: str) -> str:
    """
    Нормализация имени для сравнения (предмет, класс):
    - трим
    - нижний регистр
    - схлопываем пробелы
    """
    s = (s or "").strip().lower()
    return " ".join(s.split())


def preview(text: str, limit: int = 60) -> str:
    """
    Короткий однострочный фрагмент текста вопроса для логов и отчёта:
    без HTML-тегов, с многоточием при обрезке.
    """
    plain = _WS_RE.sub(" ", _TAG_RE.sub(" ", text or "")).strip()
    if len(plain) <= limit:
        return plain
    return plain[: limit - 1].rstrip() + "…"
