from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

HISTORY_KEY = "opencspaper_history_v1"
CONFIG_KEY = "opencspaper_config_v1"

logger = logging.getLogger(__name__)


def atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


class SnapshotStore:
    """Key-value blob store: one JSON document per key inside ``root``.

    Every ``write`` replaces the whole document. Decoding errors on ``read``
    are left to the caller.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def read(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as f:
            return json.load(f)

    def write(self, key: str, value: Any) -> None:
        data = json.dumps(value, ensure_ascii=False, indent=2).encode("utf-8")
        atomic_write(self.path_for(key), data)
        logger.debug(f"Snapshot '{key}' written ({len(data)} bytes)")

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)
