from __future__ import annotations

import hashlib
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from errors import WriteConflict
from log_utils import get_logger
from reconciler import empty_shard
from schemas import Manifest, RegionShard

logger = get_logger(__name__)

SHARD_FILENAME = "zones.json"
MANIFEST_FILENAME = "manifest.json"


@dataclass
class ShardSnapshot:
    shard: RegionShard
    token: Optional[str]  # None when the shard file does not exist yet
    path: Path

    @property
    def exists(self) -> bool:
        return self.token is not None


def content_token(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def dump_json(data: Any) -> bytes:
    return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def _atomic_write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ZoneStore:
    """Sharded dataset on disk: <root>/zones/<country>/<region>/zones.json.

    Writes are guarded by a content token taken at read time; a write whose
    token no longer matches the file raises WriteConflict.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)
        self._lock = Lock()
        self._reads = 0
        self._writes = 0
        self._conflicts = 0

    @property
    def root(self) -> Path:
        return self._root

    @property
    def zones_dir(self) -> Path:
        return self._root / "zones"

    @property
    def manifest_path(self) -> Path:
        return self._root / MANIFEST_FILENAME

    def shard_path(self, country: str, region: str) -> Path:
        for part in (country, region):
            if not part or part in {".", ".."} or "/" in part or "\\" in part:
                raise ValueError(f"Invalid shard path component: {part!r}")
        return self.zones_dir / country / region / SHARD_FILENAME

    def _current_token(self, path: Path) -> Optional[str]:
        try:
            return content_token(path.read_bytes())
        except FileNotFoundError:
            return None

    def _load(self, path: Path) -> ShardSnapshot:
        raw = path.read_bytes()
        return ShardSnapshot(
            shard=RegionShard.model_validate_json(raw),
            token=content_token(raw),
            path=path,
        )

    def read(self, country: str, region: str) -> ShardSnapshot:
        path = self.shard_path(country, region)
        with self._lock:
            self._reads += 1
            try:
                return self._load(path)
            except FileNotFoundError:
                return ShardSnapshot(shard=empty_shard(country, region), token=None, path=path)

    def read_all_shards(self) -> list[ShardSnapshot]:
        """Every readable shard, ordered by path. Unreadable files are skipped."""
        if not self.zones_dir.is_dir():
            return []

        snapshots: list[ShardSnapshot] = []
        for path in sorted(self.zones_dir.rglob(SHARD_FILENAME)):
            with self._lock:
                self._reads += 1
                try:
                    snapshots.append(self._load(path))
                except (OSError, ValueError) as exc:
                    logger.warning("Failed to parse %s: %s", path, exc)
        return snapshots

    def write(self, shard: RegionShard, expected_token: Optional[str]) -> str:
        path = self.shard_path(shard.country, shard.region)
        payload = dump_json(shard.to_wire())
        with self._lock:
            if self._current_token(path) != expected_token:
                self._conflicts += 1
                raise WriteConflict(
                    f"Shard {shard.country}/{shard.region} changed since it was read."
                )
            _atomic_write(path, payload)
            self._writes += 1
        logger.debug("Wrote %s (%d zones)", path, shard.zone_count)
        return content_token(payload)

    def read_manifest(self) -> Optional[Manifest]:
        try:
            raw = self.manifest_path.read_bytes()
        except FileNotFoundError:
            return None
        return Manifest.model_validate_json(raw)

    def write_manifest(self, manifest: Manifest) -> None:
        payload = dump_json(manifest.to_wire())
        with self._lock:
            _atomic_write(self.manifest_path, payload)
            self._writes += 1

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "reads": self._reads,
                "writes": self._writes,
                "conflicts": self._conflicts,
            }
