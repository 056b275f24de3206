"""Persisted path -> (mtime, size) snapshot used for incremental updates."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

from quietlibrary.models import FileFingerprint

LOGGER = logging.getLogger(__name__)

Snapshot = Dict[str, FileFingerprint]


class FingerprintStore:
    """JSON file mapping absolute path to ``[mtime_secs, size]``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Snapshot:
        """Load the last snapshot; a missing or unreadable file yields an empty one."""
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return {
                path: FileFingerprint(path=path, mtime_secs=int(mtime), size=int(size))
                for path, (mtime, size) in raw.items()
            }
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            LOGGER.warning("Ignoring unreadable fingerprint snapshot %s: %s", self.path, exc)
            return {}

    def save(self, snapshot: Mapping[str, FileFingerprint]) -> None:
        payload = {path: list(fp.as_pair()) for path, fp in sorted(snapshot.items())}
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            LOGGER.warning("Could not save fingerprint snapshot %s: %s", self.path, exc)


def diff_snapshots(previous: Mapping[str, FileFingerprint], current: Mapping[str, FileFingerprint]) -> Tuple[List[str], List[str]]:
    """Return (changed, deleted) paths between two snapshots.

    A path is changed when it is new or its fingerprint differs; deleted when
    it only exists in ``previous``.
    """
    changed = [path for path, fp in current.items() if previous.get(path) != fp]
    deleted = [path for path in previous if path not in current]
    return changed, deleted
