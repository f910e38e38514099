# delivery/tests/test_fees.py

import json
from decimal import Decimal
from http.client import IncompleteRead
from unittest import mock
from urllib.error import URLError

from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from delivery.services.fees import (
    fee_for_address,
    fee_for_distance,
    fee_for_zone,
    haversine_km,
    zones_by_fee,
)
from delivery.services.geocoding import NominatimGeocoder

PICKUP = (6.3167, 5.6167)


def _north_of_pickup(km_degrees):
    return (PICKUP[0] + km_degrees, PICKUP[1])


class StubGeocoder:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        return self.result


class ZoneFeeTests(SimpleTestCase):
    def test_known_zone_is_case_insensitive(self):
        quote = fee_for_zone("g.r.a, benin city")

        self.assertEqual(quote.fee, Decimal("1600.00"))
        self.assertEqual(quote.zone, "G.R.A, Benin City")
        self.assertFalse(quote.approximate)

    def test_unknown_zone_uses_default_fee(self):
        quote = fee_for_zone("Somewhere Else")

        self.assertEqual(quote.fee, Decimal("2000.00"))
        self.assertTrue(quote.approximate)

    @override_settings(DELIVERY={"ZONES": {"Campus": 500}, "DEFAULT_ZONE_FEE": 1500})
    def test_zone_table_can_be_overridden(self):
        self.assertEqual(fee_for_zone("campus").fee, Decimal("500.00"))
        self.assertEqual(fee_for_zone("GRA").fee, Decimal("1500.00"))

    def test_zones_sorted_cheapest_first(self):
        fees = [z["fee"] for z in zones_by_fee()]
        self.assertEqual(fees, sorted(fees))
        self.assertEqual(fees[0], Decimal("1600.00"))


class DistanceFeeTests(SimpleTestCase):
    def test_haversine_one_degree_latitude(self):
        self.assertAlmostEqual(haversine_km((0.0, 0.0), (1.0, 0.0)), 111.19, places=1)

    def test_tiers(self):
        cases = [
            (0.0, Decimal("800.00")),
            (0.02, Decimal("800.00")),   # ~2.2 km
            (0.04, Decimal("900.00")),   # ~4.4 km
            (0.08, Decimal("1000.00")),  # ~8.9 km
            (0.12, Decimal("1100.00")),  # ~13.3 km
            (0.20, Decimal("1200.00")),  # ~22.2 km
        ]
        for offset, expected in cases:
            with self.subTest(offset=offset):
                quote = fee_for_distance(PICKUP, _north_of_pickup(offset))
                self.assertEqual(quote.fee, expected)

    def test_distance_rounded_to_one_decimal(self):
        quote = fee_for_distance(PICKUP, _north_of_pickup(0.02))

        self.assertEqual(quote.distance_km, 2.2)
        self.assertFalse(quote.approximate)

    def test_unknown_destination_uses_mid_tier(self):
        quote = fee_for_distance(PICKUP, None)

        self.assertEqual(quote.fee, Decimal("1000.00"))
        self.assertIsNone(quote.distance_km)
        self.assertTrue(quote.approximate)

    def test_same_input_same_output(self):
        a = fee_for_distance(PICKUP, _north_of_pickup(0.05))
        b = fee_for_distance(PICKUP, _north_of_pickup(0.05))
        self.assertEqual(a, b)

    def test_address_goes_through_geocoder(self):
        geocoder = StubGeocoder(_north_of_pickup(0.04))

        quote = fee_for_address("12 Airport Road", geocoder=geocoder)

        self.assertEqual(geocoder.calls, ["12 Airport Road"])
        self.assertEqual(quote.fee, Decimal("900.00"))

    def test_address_not_found_falls_back(self):
        quote = fee_for_address("nowhere", geocoder=StubGeocoder(None))

        self.assertEqual(quote.fee, Decimal("1000.00"))
        self.assertTrue(quote.approximate)


def _fake_response(payload):
    resp = mock.MagicMock()
    resp.read.return_value = json.dumps(payload).encode("utf-8")
    resp.__enter__.return_value = resp
    return resp


class NominatimGeocoderTests(SimpleTestCase):
    @mock.patch("delivery.services.geocoding.urlopen")
    def test_parses_first_result(self, urlopen):
        urlopen.return_value = _fake_response([{"lat": "6.34", "lon": "5.62"}])

        coords = NominatimGeocoder(city_suffix="Benin City, Nigeria").geocode("Ugbowo")

        self.assertEqual(coords, (6.34, 5.62))
        req = urlopen.call_args[0][0]
        self.assertIn("Benin+City", req.full_url)
        self.assertTrue(req.get_header("User-agent"))

    @mock.patch("delivery.services.geocoding.urlopen")
    def test_empty_result_is_none(self, urlopen):
        urlopen.return_value = _fake_response([])

        self.assertIsNone(NominatimGeocoder().geocode("Atlantis"))

    @mock.patch("delivery.services.geocoding.urlopen", side_effect=URLError("down"))
    def test_transport_error_is_none(self, urlopen):
        self.assertIsNone(NominatimGeocoder().geocode("Ugbowo"))

    @mock.patch("delivery.services.geocoding.urlopen")
    def test_broken_response_body_is_none(self, urlopen):
        resp = _fake_response([])
        resp.read.side_effect = IncompleteRead(b"")
        urlopen.return_value = resp

        self.assertIsNone(NominatimGeocoder().geocode("Ugbowo"))

    @mock.patch("delivery.services.geocoding.urlopen")
    def test_connection_reset_while_reading_is_none(self, urlopen):
        resp = _fake_response([])
        resp.read.side_effect = ConnectionResetError("reset by peer")
        urlopen.return_value = resp

        self.assertIsNone(NominatimGeocoder().geocode("Ugbowo"))


class DeliveryApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_zones_endpoint(self):
        res = self.client.get("/api/delivery/zones/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data), 12)

    def test_fee_for_zone(self):
        res = self.client.post("/api/delivery/fee/", {"zone": "Ugbowo, Benin City"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(Decimal(str(res.data["fee"])), Decimal("2700.00"))

    def test_fee_for_address_without_geocoder_is_standard(self):
        res = self.client.post("/api/delivery/fee/", {"address": "5 Some Street"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(Decimal(str(res.data["fee"])), Decimal("1000.00"))
        self.assertIsNone(res.data["distance"])

    def test_fee_requires_zone_or_address(self):
        res = self.client.post("/api/delivery/fee/", {}, format="json")

        self.assertEqual(res.status_code, 400)
