# src/migrator/core/clients/export_sink.py
import json
import logging
import random
import string
import time
from pathlib import Path
from typing import Any, Optional, Union

from migrator.model import ExportResult

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_job_id() -> str:
    """job_<epoch-ms>_<7 random base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"job_{int(time.time() * 1000)}_{suffix}"


class LocalExportSink:
    """
    Writes exported trees as pretty-printed JSON files.

    `public_url` is `<public_base_url>/<file>` when a base url is configured,
    otherwise the file URI of the written file.
    """

    def __init__(self, export_dir: Union[str, Path], public_base_url: Optional[str] = None):
        self.export_dir = Path(export_dir)
        self.public_base_url = (public_base_url or "").rstrip("/")

    def upload_json(self, tree: Any, total_nodes: int = 0) -> ExportResult:
        job_id = generate_job_id()
        file_name = f"{job_id}.json"
        self.export_dir.mkdir(parents=True, exist_ok=True)
        path = self.export_dir / file_name

        path.write_text(json.dumps(tree, indent=2, ensure_ascii=False), encoding="utf-8")

        if self.public_base_url:
            public_url = f"{self.public_base_url}/{file_name}"
        else:
            public_url = path.resolve().as_uri()

        logger.info("Exported tree to %s", path)
        return ExportResult(
            job_id=job_id,
            file_name=file_name,
            path=str(path),
            public_url=public_url,
            total_nodes=total_nodes,
        )
