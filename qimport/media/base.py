from __future__ import annotations

import mimetypes
import os
from typing import Optional

from qimport.assets.placeholders import IMAGE_EXTENSIONS
from qimport.models.question_input import UploadedAsset

ALLOWED_IMAGE_MIMES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/svg+xml",
})


class MediaUploadError(Exception):
    """Файл отклонён или не загружен медиа-хранилищем."""


class MediaStore:
    """
    Абстрактное медиа-хранилище: загрузка и проверка файлов по имени.
    """

    def upload(self, asset: UploadedAsset) -> str:
        """Сохраняет файл, возвращает имя, под которым он доступен."""
        raise NotImplementedError

    def exists(self, filename: str) -> bool:
        raise NotImplementedError


def guess_content_type(asset: UploadedAsset) -> str:
    if asset.content_type:
        return asset.content_type
    guessed, _ = mimetypes.guess_type(asset.filename)
    return guessed or "application/octet-stream"


def check_image(asset: UploadedAsset, max_bytes: Optional[int]) -> None:
    """
    Те же ограничения, что у загрузки на портале: только картинки, не больше max_bytes.
    """
    ext = os.path.splitext(asset.filename)[1].lstrip(".").lower()
    if ext not in IMAGE_EXTENSIONS:
        raise MediaUploadError(
            f"{asset.filename}: недопустимое расширение, разрешены: {', '.join(IMAGE_EXTENSIONS)}"
        )
    content_type = guess_content_type(asset)
    if content_type not in ALLOWED_IMAGE_MIMES:
        raise MediaUploadError(f"{asset.filename}: недопустимый тип файла {content_type}")
    if max_bytes is not None and asset.size > max_bytes:
        raise MediaUploadError(
            f"{asset.filename}: файл слишком большой ({asset.size} байт, максимум {max_bytes})"
        )
