# src/migrator/core/clients/blob_source.py
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import requests

from migrator.core.exceptions import BlobNotFoundError
from migrator.core.managers.config_manager import ConfigManager
from migrator.model import RawDocuments

logger = logging.getLogger(__name__)


class HttpBlobSource:
    """
    Fetches the raw page and its computed-style document from two URLs.
    A non-2xx answer or a transport error raises BlobNotFoundError.
    """

    def __init__(self, html_url: str, style_url: str, timeout: float = 60,
                 session: Optional[requests.Session] = None):
        self.html_url = html_url
        self.style_url = style_url
        self.timeout = timeout
        self._session = session

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _get(self, url: str, label: str) -> requests.Response:
        try:
            response = self._get_session().get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise BlobNotFoundError(f"{label} file could not be fetched: {e}") from e
        if not response.ok:
            raise BlobNotFoundError(f"{label} file not found: {response.status_code} {response.reason}")
        return response

    def fetch_raw_html(self) -> str:
        return self._get(self.html_url, "HTML").text

    def fetch_style_document(self) -> Any:
        response = self._get(self.style_url, "Style")
        try:
            return response.json()
        except ValueError as e:
            raise BlobNotFoundError(f"Style file is not valid JSON: {e}") from e

    def fetch_documents(self) -> RawDocuments:
        html = self.fetch_raw_html()
        style_document = self.fetch_style_document()
        logger.info("Fetched raw HTML (%d chars) and style document", len(html))
        return RawDocuments(html=html, style_document=style_document)


class LocalBlobSource:
    """Reads the same two inputs from files on disk."""

    def __init__(self, html_path: Union[str, Path], style_path: Union[str, Path]):
        self.html_path = Path(html_path)
        self.style_path = Path(style_path)

    @staticmethod
    def _read(path: Path, label: str) -> str:
        if not path.is_file():
            raise BlobNotFoundError(f"{label} file not found: {path}")
        return path.read_text(encoding="utf-8")

    def fetch_raw_html(self) -> str:
        return self._read(self.html_path, "HTML")

    def fetch_style_document(self) -> Any:
        content = self._read(self.style_path, "Style")
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise BlobNotFoundError(f"Style file is not valid JSON: {e}") from e

    def fetch_documents(self) -> RawDocuments:
        return RawDocuments(html=self.fetch_raw_html(), style_document=self.fetch_style_document())


def build_blob_source(config: ConfigManager, html_path: Optional[str] = None,
                      style_path: Optional[str] = None):
    """Local files when both paths are given, otherwise the configured URLs."""
    if html_path and style_path:
        return LocalBlobSource(html_path, style_path)
    return HttpBlobSource(
        html_url=config.get_nested("blob.html_url"),
        style_url=config.get_nested("blob.style_url"),
        timeout=config.get_nested("blob.timeout", 60),
    )
