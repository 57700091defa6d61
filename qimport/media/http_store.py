# qimport/media/http_store.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests import Response

from qimport.config import Settings
from qimport.media.base import MediaStore, MediaUploadError, check_image, guess_content_type
from qimport.models.question_input import UploadedAsset


class HttpMediaStore(MediaStore):
    """
    Медиа-хранилище поверх upload API портала:
      - POST /api/uploads/file (multipart, поле "file")
      - GET  /api/uploads/images/{filename}
    """

    def __init__(self, settings: Settings) -> None:
        self.base_url: str = str(settings.media_api_base_url or "").rstrip("/")
        self.token: Optional[str] = settings.media_api_token
        self.timeout: float = settings.media_api_timeout
        self.max_bytes: int = settings.max_upload_bytes

        self.log = logging.getLogger(self.__class__.__name__)

        if not self.base_url:
            self.log.warning("⚠️ Media API base URL is not configured.")
        if not self.token:
            self.log.warning("⚠️ Media API token is not configured.")

    # -------------------------------------------------------------
    # Internal helper
    # -------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> Response:
        """
        Единая точка HTTP-запросов: подставляет Bearer-токен и таймаут, логирует ответ.
        """
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = dict(kwargs.pop("headers", None) or {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self.log.debug("HTTP %s %s", method, url)
        resp = requests.request(method=method, url=url, headers=headers, timeout=self.timeout, **kwargs)
        self.log.debug("Response %s %s...", resp.status_code, resp.text[:300])
        return resp

    # -------------------------------------------------------------
    # MediaStore
    # -------------------------------------------------------------
    def upload(self, asset: UploadedAsset) -> str:
        """
        POST /api/uploads/file
        Ответ: {"success": true, "file": {"filename": "...", "url": "...", ...}}
        """
        check_image(asset, self.max_bytes)
        files = {"file": (asset.filename, asset.content, guess_content_type(asset))}
        try:
            resp = self._request("POST", "/api/uploads/file", files=files)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise MediaUploadError(f"{asset.filename}: {e}") from e

        stored = (data.get("file") or {}).get("filename")
        if not stored:
            raise MediaUploadError(f"{asset.filename}: в ответе нет file.filename")
        return stored

    def exists(self, filename: str) -> bool:
        """
        GET /api/uploads/images/{filename}: 200 -> есть, 404 -> нет, остальное -> ошибка.
        """
        resp = self._request("GET", f"/api/uploads/images/{filename}", stream=True)
        try:
            if resp.status_code == 404:
                return False
            resp.raise_for_status()
            return True
        finally:
            resp.close()
