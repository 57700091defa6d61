"""
Плейсхолдеры картинок в тексте вопроса.

Формат: {filename.ext}, ext из IMAGE_EXTENSIONS без учёта регистра.
Пример: "Посмотрите на {diagram1.png}" -> требуется файл diagram1.png.
"""
from __future__ import annotations

import html
import re
from typing import Callable, Iterable, List, Mapping

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "svg")

PLACEHOLDER_RE = re.compile(
    r"\{([A-Za-z0-9._-]+\.(?:" + "|".join(IMAGE_EXTENSIONS) + r"))\}",
    re.IGNORECASE,
)

# Пропуск для FillInBlank: "___" (три и более подчёркивания) или {1}, {2}, ...
BLANK_RE = re.compile(r"_{3,}|\{\d+\}")


def extract_placeholders(text: str) -> List[str]:
    """
    Имена файлов из плейсхолдеров в порядке первого появления.
    Повторы (в том числе отличающиеся только регистром) отбрасываются.
    """
    seen = set()
    result: List[str] = []
    for m in PLACEHOLDER_RE.finditer(text or ""):
        name = m.group(1)
        key = name.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(name)
    return result


def collect_required(texts: Iterable[str]) -> List[str]:
    """
    Объединение плейсхолдеров по всем строкам файла, первый увиденный выигрывает.
    """
    seen = set()
    result: List[str] = []
    for text in texts:
        for name in extract_placeholders(text):
            key = name.casefold()
            if key not in seen:
                seen.add(key)
                result.append(name)
    return result


def count_blanks(text: str) -> int:
    # подчёркивания внутри {file.ext} пропуском не считаются
    return len(BLANK_RE.findall(PLACEHOLDER_RE.sub(" ", text or "")))


def substitute_placeholders(
    text: str,
    resolved: Mapping[str, str],
    render: Callable[[str], str],
) -> str:
    """
    Заменяет каждый {name.ext} на render(stored_name).
    resolved: требуемое имя -> имя в медиа-хранилище; поиск без учёта регистра.
    Нерезолвленные плейсхолдеры остаются как есть.
    """
    lookup = {k.casefold(): v for k, v in resolved.items()}

    def _sub(m: re.Match) -> str:
        stored = lookup.get(m.group(1).casefold())
        if stored is None:
            return m.group(0)
        return render(stored)

    return PLACEHOLDER_RE.sub(_sub, text or "")


def image_url(base_url: str, stored_name: str) -> str:
    return f"{base_url.rstrip('/')}/api/uploads/images/{stored_name}"


def img_tag(base_url: str, stored_name: str) -> str:
    src = html.escape(image_url(base_url, stored_name), quote=True)
    alt = html.escape(stored_name, quote=True)
    return (
        f'<img src="{src}" alt="{alt}" '
        f'style="max-width: 100%; height: auto; display: block; margin: 0.5rem 0;" />'
    )


def convert_placeholders(text: str, resolved: Mapping[str, str], base_url: str) -> str:
    """
    Готовый к хранению rich text: плейсхолдеры -> <img> на путь раздачи файлов.
    """
    return substitute_placeholders(text, resolved, lambda stored: img_tag(base_url, stored))
