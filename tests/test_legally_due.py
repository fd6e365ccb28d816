"""Tests for the legal landing-declaration obligation."""
from __future__ import annotations

import pytest

from landingcheck.modules.legally_due import annotate_legally_due, is_legally_due


class TestUnderTenMetres:
    @pytest.mark.parametrize("da", ["England", "Isle of Man"])
    def test_quota_species_always_due(self, da):
        assert is_legally_due(6.5, da, "2023-05-01", "2023-05-01", True, 10) is True

    @pytest.mark.parametrize("da", ["England", "Isle of Man", "Wales"])
    def test_non_quota_due_after_more_than_a_day(self, da):
        assert is_legally_due(6.5, da, "2023-05-03T00:00:00Z", "2023-05-01", False, 10) is True
        assert is_legally_due(6.5, da, "2023-05-02T23:59:59Z", "2023-05-01", False, 10) is False

    def test_wales_ignores_quota_status(self):
        assert is_legally_due(6.5, "Wales", "2023-05-01", "2023-05-01", True, 10) is False

    @pytest.mark.parametrize("da", ["Scotland", "Northern Ireland", "Guernsey", "Jersey"])
    def test_other_authorities_never_due(self, da):
        assert is_legally_due(6.5, da, "2023-06-01", "2023-05-01", True, 1000) is False


class TestOtherSizes:
    def test_over_twelve_metres_due_above_tolerance(self):
        assert is_legally_due(15, "Scotland", "2023-05-01", "2023-05-01", False, 50.5) is True
        assert is_legally_due(15, "Scotland", "2023-05-01", "2023-05-01", False, 50) is False

    @pytest.mark.parametrize("length", [10, 11.5, 12, None])
    def test_ten_to_twelve_and_unknown_never_due(self, length):
        assert is_legally_due(length, "England", "2023-06-01", "2023-05-01", True, 1000) is False


def _certificate(*products):
    return {
        "documentNumber": "GBR-2019-CC-1",
        "createdAt": "2019-07-31T08:26:06Z",
        "exportData": {"products": list(products)},
    }


class TestAnnotateLegallyDue:
    def test_marks_each_catch(self, cache):
        products = annotate_legally_due(_certificate(
            {"speciesCode": "COD", "caughtBy": [
                {"pln": "WA1", "date": "2019-07-30", "weight": 10},
                {"pln": "BF800", "date": "2019-07-30", "weight": 60},
            ]},
            {"speciesCode": "LBE", "caughtBy": [
                {"pln": "WA1", "date": "2019-07-31", "weight": 10},
                {"pln": "BF800", "date": "2019-07-30", "weight": 40},
            ]},
        ), cache)

        assert [c["isLegallyDue"] for c in products[0]["caughtBy"]] == [True, True]
        assert [c["isLegallyDue"] for c in products[1]["caughtBy"]] == [False, False]
        assert products[0]["caughtBy"][0]["pln"] == "WA1"

    def test_non_quota_under_ten_due_after_a_day(self, cache):
        [product] = annotate_legally_due(_certificate(
            {"speciesCode": "LBE", "caughtBy": [{"pln": "WA1", "date": "2019-07-28", "weight": 10}]},
        ), cache)
        assert product["caughtBy"][0]["isLegallyDue"] is True

    def test_unlicensed_vessel_is_not_due(self, cache):
        [product] = annotate_legally_due(_certificate(
            {"speciesCode": "COD", "caughtBy": [
                {"pln": "ZZ1", "date": "2019-07-30", "weight": 500},
                {"pln": "WA1", "date": "not-a-date", "weight": 500},
            ]},
        ), cache)
        assert [c["isLegallyDue"] for c in product["caughtBy"]] == [False, False]

    def test_no_products(self, cache):
        assert annotate_legally_due(_certificate(), cache) == []

    def test_missing_created_at_raises(self, cache):
        with pytest.raises(ValueError):
            annotate_legally_due({"documentNumber": "GBR-2019-CC-1"}, cache)
