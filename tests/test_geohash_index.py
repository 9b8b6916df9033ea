import unittest

from geohash_index import encode
from schemas import Coordinate


class EncodeTests(unittest.TestCase):
    def test_reference_vector_auckland(self) -> None:
        point = Coordinate(lat=-36.8442, lng=174.7681)
        self.assertEqual(encode(point, 6), "rckq2u")

    def test_reference_vector_classic(self) -> None:
        self.assertEqual(encode(Coordinate(lat=42.6, lng=-5.6), 5), "ezs42")

    def test_default_precision_is_six(self) -> None:
        self.assertEqual(len(encode(Coordinate(lat=51.5, lng=-0.12))), 6)

    def test_deterministic(self) -> None:
        point = Coordinate(lat=51.5074, lng=-0.1278)
        self.assertEqual(encode(point), encode(Coordinate(lat=51.5074, lng=-0.1278)))

    def test_prefix_property(self) -> None:
        point = Coordinate(lat=-36.8442, lng=174.7681)
        self.assertTrue(encode(point, 9).startswith(encode(point, 6)))

    def test_south_west_corner(self) -> None:
        self.assertEqual(encode(Coordinate(lat=-90, lng=-180), 6), "000000")

    def test_invalid_precision(self) -> None:
        point = Coordinate(lat=0, lng=0)
        with self.assertRaises(ValueError):
            encode(point, 0)
        with self.assertRaises(ValueError):
            encode(point, 13)


if __name__ == "__main__":
    unittest.main()
