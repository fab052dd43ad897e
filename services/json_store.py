from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Generic, Hashable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import PersistenceError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class KeyedJsonStore(Generic[M]):
    """List of records in one JSON file, upserted by a natural key.

    Last writer wins; writes rewrite the whole file so a failed save can be
    retried with the same record.
    """

    def __init__(self, path: Optional[Path], model: Type[M], key: Callable[[M], Hashable]):
        self.path = Path(path) if path is not None else None
        self.model = model
        self.key = key
        self._lock = threading.RLock()
        self._records: Dict[Hashable, M] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        text = self.path.read_text(encoding="utf-8").strip()
        if not text:
            return
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("ignoring unreadable store %s: %s", self.path, exc)
            return
        if not isinstance(raw, list):
            return
        for item in raw:
            try:
                record = self.model.model_validate(item)
            except ValidationError as exc:
                logger.warning("skipping invalid record in %s: %s", self.path, exc)
                continue
            self._records[self.key(record)] = record

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(
                    [r.model_dump(by_alias=True) for r in self._records.values()], indent=2
                ),
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"could not write {self.path}: {exc}") from exc

    def get(self, key: Hashable) -> Optional[M]:
        with self._lock:
            return self._records.get(key)

    def all(self) -> List[M]:
        with self._lock:
            return list(self._records.values())

    def upsert(self, record: M) -> M:
        with self._lock:
            self._records[self.key(record)] = record
            self._save()
            return record

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            removed = self._records.pop(key, None) is not None
            if removed:
                self._save()
            return removed
