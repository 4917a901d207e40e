# readiness/services/storage.py
import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Generic, List, Optional, Type, TypeVar

from ..models import StoredModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StoredModel)


class JsonListFile(Generic[T]):
    """
    A list of records kept in one JSON file, read and rewritten wholesale.

    With cache_seconds > 0 reads are served from memory until the entry ages
    out or the next write. Callers always receive a fresh list of copies.
    """

    def __init__(
        self,
        path: Path,
        model: Type[T],
        cache_seconds: float = 0,
        default_factory: Optional[Callable[[], List[T]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path)
        self.model = model
        self.cache_seconds = cache_seconds
        self.default_factory = default_factory or list
        self._clock = clock
        self._lock = threading.RLock()
        self._cache: Optional[List[T]] = None
        self._cache_time = 0.0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write(self.default_factory())

    def load(self) -> List[T]:
        with self._lock:
            if self._cache is not None and self._clock() - self._cache_time < self.cache_seconds:
                return [r.model_copy(deep=True) for r in self._cache]

            try:
                raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
                records = [self.model.model_validate(item) for item in raw or []]
            except (OSError, ValueError) as e:
                logger.error("Error loading %s: %s", self.path, e)
                return self.default_factory()

            if self.cache_seconds > 0:
                self._cache = records
                self._cache_time = self._clock()
            return [r.model_copy(deep=True) for r in records]

    def save(self, records: List[T]) -> None:
        with self._lock:
            self._cache = None
            try:
                self._write(records)
            except OSError as e:
                logger.error("Error saving %s: %s", self.path, e)
                raise

    def _write(self, records: List[T]) -> None:
        payload = [r.to_json_dict() for r in records]
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)
