# qimport/media/local_store.py
from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from qimport.media.base import MediaStore, MediaUploadError, check_image
from qimport.models.question_input import UploadedAsset

log = logging.getLogger(__name__)


class LocalMediaStore(MediaStore):
    """
    Хранилище картинок в каталоге на диске (аналог uploads/images портала).

    Имя сохранённого файла: <base>-<миллисекунды>-<случайное>.<ext>,
    поэтому повторная загрузка одного и того же файла не перезаписывает старый.
    """

    def __init__(self, directory: str | Path, max_bytes: Optional[int] = 20 * 1024 * 1024):
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def _unique_name(self, filename: str) -> str:
        base, ext = os.path.splitext(os.path.basename(filename))
        suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{base}-{suffix}{ext}"

    def upload(self, asset: UploadedAsset) -> str:
        check_image(asset, self.max_bytes)
        self.directory.mkdir(parents=True, exist_ok=True)

        stored = self._unique_name(asset.filename)
        path = self.directory / stored
        try:
            path.write_bytes(asset.content)
        except OSError as e:
            raise MediaUploadError(f"{asset.filename}: не удалось записать файл: {e}") from e

        log.info("Файл %s сохранён как %s (%d байт)", asset.filename, stored, asset.size)
        return stored

    def exists(self, filename: str) -> bool:
        name = os.path.basename(filename)
        if not name or name != filename:
            return False
        return (self.directory / name).is_file()
