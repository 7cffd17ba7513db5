"""
JSON File Storage Implementation

DESIGN DECISION: One JSON file per collection under a data directory.
This mirrors how the app kept one local-storage key per collection, and
lets a user back up or inspect their data with any text editor.

Writes go to a temporary file first and are moved into place, so a
crash mid-write leaves the previous version intact.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from biztrack.services.storage.interface import (
    Collection,
    StateStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileStateStorage(StateStorageInterface):
    """Stores each collection as <data_dir>/<collection>.json."""

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, collection: Collection) -> Path:
        return self._data_dir / f"{collection.value}.json"

    def load_collection(self, collection: Collection) -> Optional[Any]:
        path = self.path_for(collection)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt data file {path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, payload: str) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)

    def save_collection(self, collection: Collection, records: Any) -> None:
        path = self.path_for(collection)
        payload = json.dumps(records, ensure_ascii=False, indent=2)
        try:
            self._write(path, payload)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
        logger.debug("collection_saved", collection=collection.value, path=str(path))
