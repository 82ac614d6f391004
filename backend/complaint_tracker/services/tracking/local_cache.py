"""
Local Cache

On-disk fallback copy of the complaint list, used when the REST backend is
unreachable, plus a small key/value state file (e.g. the last feed sync
marker).

Reads never raise: a missing or corrupt file is treated as empty.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from ...models.domain import Complaint
from .reconciliation import dedupe

logger = logging.getLogger(__name__)

CACHE_DIR = os.getenv("CACHE_DIR", "data/cache")


class LocalCache:
    """JSON-file cache: complaints.json and state.json under one directory."""

    COMPLAINTS_FILE = "complaints.json"
    STATE_FILE = "state.json"

    def __init__(self, directory: Union[str, Path] = CACHE_DIR):
        self.directory = Path(directory)

    @property
    def complaints_path(self) -> Path:
        return self.directory / self.COMPLAINTS_FILE

    @property
    def state_path(self) -> Path:
        return self.directory / self.STATE_FILE

    # =========================================================================
    # COMPLAINTS
    # =========================================================================

    def read_complaints(self) -> List[Complaint]:
        raw = self._read_json(self.complaints_path)
        if not isinstance(raw, list):
            return []

        complaints = []
        for item in raw:
            try:
                complaints.append(Complaint.from_dict(item))
            except (TypeError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable cached complaint: {e}")
        return dedupe(complaints)

    def write_complaints(self, complaints: Iterable[Complaint]) -> None:
        payload = [c.to_dict() for c in dedupe(complaints)]
        self._write_json(self.complaints_path, payload)

    # =========================================================================
    # KEY/VALUE STATE
    # =========================================================================

    def get_state(self, key: str) -> Optional[Any]:
        state = self._read_json(self.state_path)
        if not isinstance(state, dict):
            return None
        return state.get(key)

    def set_state(self, key: str, value: Any) -> None:
        state = self._read_json(self.state_path)
        if not isinstance(state, dict):
            state = {}
        state[key] = value
        self._write_json(self.state_path, state)

    def clear(self) -> None:
        self._write_json(self.complaints_path, [])

    # =========================================================================
    # FILE HELPERS
    # =========================================================================

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {path}: {e}")
            return None

    def _write_json(self, path: Path, payload: Any) -> None:
        # Best effort: failures are logged, never raised
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning(f"Could not write cache file {path}: {e}")

    def __repr__(self) -> str:
        return f"LocalCache({str(self.directory)!r})"