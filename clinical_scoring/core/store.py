"""
Learning-State Persistence

The self-learning layers (patient lab baselines, wound phase corrections,
readmission weights and outcomes) read and write their state through a
StateStore. Values must be JSON-serialisable. Two media are provided: a
process-local dictionary and a JSON file rewritten atomically on every
mutation.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import copy
import json
import os
import tempfile

from clinical_scoring import config
from clinical_scoring.utils import get_logger, StateStoreError

logger = get_logger(__name__)


class StateStore(ABC):
    """Key-value store for engine learning state."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value stored under ``key``."""

    @abstractmethod
    def apply(self, puts: Optional[Dict[str, Any]] = None, clears: Iterable[str] = ()) -> None:
        """
        Remove ``clears`` and then write ``puts`` as one mutation.

        Either every change lands or none does.
        """

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every key."""

    def put(self, key: str, value: Any) -> None:
        """Replace the value stored under ``key``."""
        self.apply(puts={key: value})

    def clear(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        self.apply(clears=(key,))

    def get_list(self, key: str) -> List[Any]:
        items = self.get(key, [])
        if not isinstance(items, list):
            raise StateStoreError(f"Value under '{key}' is not a list", key=key)
        return items

    def append(self, key: str, item: Any) -> None:
        """Append ``item`` to the list stored under ``key``."""
        items = self.get_list(key)
        items.append(item)
        self.put(key, items)


class InMemoryStateStore(StateStore):
    """Dictionary-backed store living for the lifetime of the process."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return copy.deepcopy(default)
        return copy.deepcopy(self._data[key])

    def apply(self, puts: Optional[Dict[str, Any]] = None, clears: Iterable[str] = ()) -> None:
        staged = dict(self._data)
        for key in clears:
            staged.pop(key, None)
        for key, value in (puts or {}).items():
            staged[key] = copy.deepcopy(value)
        self._commit(staged)

    def clear_all(self) -> None:
        self._commit({})

    def _commit(self, data: Dict[str, Any]) -> None:
        self._data = data

    def keys(self):
        return list(self._data)


class JsonFileStateStore(InMemoryStateStore):
    """
    Store persisted as a single JSON document.

    Every mutation is staged on a copy, written through a temporary file and
    ``os.replace``, and only then becomes the in-memory state. A failed write
    leaves both memory and disk as they were.
    """

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(self._load())
        logger.info(f"JsonFileStateStore opened at {self.path} ({len(self._data)} keys)")

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise StateStoreError(
                f"Cannot read learning state from {self.path}: {e}",
                details={"path": str(self.path)}
            ) from e
        if not isinstance(data, dict):
            raise StateStoreError(
                f"Learning state at {self.path} is not a JSON object",
                details={"path": str(self.path)}
            )
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StateStoreError(
                f"Cannot write learning state to {self.path}: {e}",
                details={"path": str(self.path)}
            ) from e

    def apply(self, puts: Optional[Dict[str, Any]] = None, clears: Iterable[str] = ()) -> None:
        for key, value in (puts or {}).items():
            try:
                json.dumps(value)
            except (TypeError, ValueError) as e:
                raise StateStoreError(f"Value under '{key}' is not JSON-serialisable: {e}", key=key) from e
        super().apply(puts, clears)

    def _commit(self, data: Dict[str, Any]) -> None:
        self._flush(data)
        super()._commit(data)


_default_store: Optional[StateStore] = None


def default_store() -> StateStore:
    """
    Process-wide store used when an engine is built without one.

    A JSON file store when CLINICAL_SCORING_STATE_PATH is set, otherwise an
    in-memory store shared by every engine in the process.
    """
    global _default_store
    if _default_store is None:
        if config.STATE_PATH:
            _default_store = JsonFileStateStore(config.STATE_PATH)
        else:
            _default_store = InMemoryStateStore()
    return _default_store
