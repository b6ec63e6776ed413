"""
Tests for SGP4 propagation and frame conversion

Run with:
    python -m pytest tests/test_propagation.py -v
"""

import math
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

import numpy as np

from satglobe.exceptions import ElementSetError
from satglobe.propagation import (
    SGP4Propagator,
    ecef_to_geodetic,
    gmst,
    julian_date,
    teme_to_ecef,
)
from tests.fakes import ISS_EPOCH, ISS_LINE1, ISS_LINE2


class TestTimeConversion(unittest.TestCase):

    def test_julian_date_j2000(self):
        jd, fr = julian_date(datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc))
        self.assertAlmostEqual(jd + fr, 2451545.0, places=9)

    def test_naive_datetime_is_utc(self):
        aware = julian_date(datetime(2024, 6, 1, 3, 4, 5, tzinfo=timezone.utc))
        naive = julian_date(datetime(2024, 6, 1, 3, 4, 5))
        self.assertAlmostEqual(sum(aware), sum(naive), places=9)

    def test_gmst_at_j2000(self):
        # 280.46061837 degrees
        self.assertAlmostEqual(math.degrees(gmst(2451545.0, 0.0)), 280.46061837, places=6)

    def test_gmst_range(self):
        for days in (0.0, 0.3, 1234.5, 9000.25):
            theta = gmst(2451545.0 + days, 0.0)
            self.assertGreaterEqual(theta, 0.0)
            self.assertLess(theta, 2 * math.pi)


class TestFrameConversion(unittest.TestCase):

    def test_teme_to_ecef_preserves_radius(self):
        r = np.array([6778.0, 120.0, -35.0])
        r_ecef = teme_to_ecef(r, 1.234)
        self.assertAlmostEqual(np.linalg.norm(r_ecef), np.linalg.norm(r), places=9)
        self.assertEqual(r_ecef[2], r[2])

    def test_equator_prime_meridian(self):
        geo = ecef_to_geodetic([6378.137, 0.0, 0.0])
        self.assertAlmostEqual(geo.latitude, 0.0, places=9)
        self.assertAlmostEqual(geo.longitude, 0.0, places=9)
        self.assertAlmostEqual(geo.height, 0.0, places=6)

    def test_equator_ninety_east(self):
        geo = ecef_to_geodetic([0.0, 6478.137, 0.0])
        self.assertAlmostEqual(math.degrees(geo.longitude), 90.0, places=9)
        self.assertAlmostEqual(geo.height, 100.0, places=6)

    def test_pole(self):
        polar_radius = 6378.137 * (1.0 - 1.0 / 298.257223563)
        geo = ecef_to_geodetic([0.0, 0.0, polar_radius + 10.0])
        self.assertAlmostEqual(math.degrees(geo.latitude), 90.0, places=9)
        self.assertAlmostEqual(geo.height, 10.0, places=6)


class TestSGP4Propagator(unittest.TestCase):

    def setUp(self):
        self.propagator = SGP4Propagator()

    def test_parse_iss(self):
        satellite = self.propagator.parse(ISS_LINE1, ISS_LINE2)
        self.assertEqual(satellite.satnum, 25544)

    def test_rejects_malformed_lines(self):
        with self.assertRaises(ElementSetError):
            self.propagator.parse("L1", "L2")
        with self.assertRaises(ElementSetError):
            self.propagator.parse(ISS_LINE2, ISS_LINE1)

    def test_iss_position_is_plausible(self):
        satellite = self.propagator.parse(ISS_LINE1, ISS_LINE2)
        for minutes in (0, 45, 90, 600):
            geo = self.propagator.position_at(satellite, ISS_EPOCH + timedelta(minutes=minutes))

            self.assertIsNotNone(geo)
            self.assertLess(abs(math.degrees(geo.latitude)), 52.0)
            self.assertLessEqual(abs(geo.longitude), math.pi)
            self.assertGreater(geo.height, 380.0)
            self.assertLess(geo.height, 450.0)

    def test_deterministic(self):
        satellite = self.propagator.parse(ISS_LINE1, ISS_LINE2)
        when = ISS_EPOCH + timedelta(minutes=17)
        self.assertEqual(self.propagator.position_at(satellite, when),
                         self.propagator.position_at(satellite, when))

    def test_sgp4_error_gives_no_position(self):
        satellite = mock.Mock(satnum=99999)
        satellite.sgp4.return_value = (6, (float("nan"),) * 3, (float("nan"),) * 3)

        self.assertIsNone(self.propagator.position_at(satellite, ISS_EPOCH))

    def test_non_finite_result_gives_no_position(self):
        satellite = mock.Mock(satnum=99999)
        satellite.sgp4.return_value = (0, (float("nan"), 0.0, 0.0), (0.0, 0.0, 0.0))

        self.assertIsNone(self.propagator.position_at(satellite, ISS_EPOCH))


if __name__ == "__main__":
    unittest.main()
