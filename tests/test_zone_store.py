import json
import tempfile
import unittest
from pathlib import Path

from errors import WriteConflict
from manifest_builder import build_manifest
from zone_fixtures import FIXED_NOW, make_shard, make_zone
from zone_store import ZoneStore, content_token


class ZoneStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.store = ZoneStore(self.root)
        self.shard = make_shard([make_zone("gb-a", "Car Park A", 51.5, -0.12)])

    def test_missing_shard_reads_as_empty(self) -> None:
        snapshot = self.store.read("GB", "london")
        self.assertFalse(snapshot.exists)
        self.assertIsNone(snapshot.token)
        self.assertEqual(snapshot.shard.zones, {})
        self.assertEqual(snapshot.shard.zone_count, 0)

    def test_write_then_read(self) -> None:
        token = self.store.write(self.shard, None)

        path = self.root / "zones" / "GB" / "london" / "zones.json"
        raw = path.read_bytes()
        self.assertEqual(token, content_token(raw))
        self.assertTrue(raw.endswith(b"\n"))

        data = json.loads(raw)
        self.assertEqual(data["zoneCount"], 1)
        self.assertIn("lastUpdated", data)
        zone = next(iter(data["zones"].values()))[0]
        self.assertEqual(zone["enforcementType"], "private")
        self.assertEqual(zone["freeMinutes"], 0)
        self.assertNotIn("maxStayMinutes", zone)

        snapshot = self.store.read("GB", "london")
        self.assertTrue(snapshot.exists)
        self.assertEqual(snapshot.token, token)
        self.assertEqual(snapshot.shard.zones, self.shard.zones)
        self.assertEqual(snapshot.shard.last_updated, FIXED_NOW)

    def test_stale_token_conflicts(self) -> None:
        token = self.store.write(self.shard, None)
        newer = make_shard(
            [make_zone("gb-a", "Car Park A", 51.5, -0.12), make_zone("gb-b", "B", 51.6, -0.2)]
        )
        self.store.write(newer, token)

        with self.assertRaises(WriteConflict):
            self.store.write(self.shard, token)
        self.assertEqual(self.store.read("GB", "london").shard.zone_count, 2)
        self.assertEqual(self.store.stats()["conflicts"], 1)

    def test_create_conflicts_when_file_appeared(self) -> None:
        self.store.write(self.shard, None)
        with self.assertRaises(WriteConflict):
            self.store.write(self.shard, None)

    def test_read_all_shards_sorted_and_skips_corrupt(self) -> None:
        auckland = make_shard(
            [make_zone("nz-1", "Britomart", -36.8442, 174.7681, country="NZ", region="auckland")],
            country="NZ",
            region="auckland",
        )
        self.store.write(auckland, None)
        self.store.write(self.shard, None)
        broken = self.root / "zones" / "GB" / "broken" / "zones.json"
        broken.parent.mkdir(parents=True)
        broken.write_text("{not json", encoding="utf-8")

        snapshots = self.store.read_all_shards()
        self.assertEqual(
            [(s.shard.country, s.shard.region) for s in snapshots],
            [("GB", "london"), ("NZ", "auckland")],
        )

    def test_read_all_shards_without_dataset(self) -> None:
        self.assertEqual(self.store.read_all_shards(), [])

    def test_rejects_path_traversal(self) -> None:
        with self.assertRaises(ValueError):
            self.store.shard_path("GB", "..")
        with self.assertRaises(ValueError):
            self.store.shard_path("GB", "a/b")

    def test_manifest_round_trip(self) -> None:
        self.assertIsNone(self.store.read_manifest())
        manifest = build_manifest([self.shard], now=FIXED_NOW)
        self.store.write_manifest(manifest)

        data = json.loads((self.root / "manifest.json").read_text(encoding="utf-8"))
        self.assertEqual(data["regions"][0]["zoneCount"], 1)
        self.assertEqual(self.store.read_manifest(), manifest)


if __name__ == "__main__":
    unittest.main()
