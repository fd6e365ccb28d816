"""Tests for the temporal PLN licence index and DA resolution."""
from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace

from conftest import make_vessel
from landingcheck.modules.vessel_index import VesselLicenceIndex, devolved_authority, plns_for_landings


class TestDevolvedAuthority:
    def test_crown_dependency_flag_wins_over_port(self):
        assert devolved_authority("JEY", "PLYMOUTH") == "Jersey"

    def test_admin_port_mapping(self):
        assert devolved_authority("GBR", "GUERNSEY") == "Guernsey"
        assert devolved_authority("GBR", "peterhead") == "Scotland"
        assert devolved_authority("GBR", "MILFORD HAVEN") == "Wales"
        assert devolved_authority("GBR", "KILKEEL") == "Northern Ireland"

    def test_defaults_to_england(self):
        assert devolved_authority(None, None) == "England"
        assert devolved_authority("GBR", "PLYMOUTH") == "England"


class TestLookup:
    def test_returns_covering_licence(self):
        index = VesselLicenceIndex.build([make_vessel()])
        licence = index.lookup("WA1", "2019-07-10")
        assert licence.rss_number == "rssWA1"
        assert licence.da == "England"
        assert licence.vessel_length == 6.88

    def test_boundary_days_are_inclusive(self):
        index = VesselLicenceIndex.build([make_vessel(
            fishing_licence_valid_from="2019-01-01T00:00:00",
            fishing_licence_valid_to="2019-12-31T00:00:00",
        )])
        assert index.lookup("WA1", "2019-01-01") is not None
        assert index.lookup("WA1", "2019-12-31") is not None
        assert index.lookup("WA1", "2020-01-01") is None
        assert index.lookup("WA1", "2018-12-31") is None

    def test_accepts_dates_and_datetimes(self):
        index = VesselLicenceIndex.build([make_vessel()])
        assert index.lookup("WA1", date(2019, 7, 10)) is not None
        assert index.lookup("WA1", datetime(2019, 7, 10, 23, 59, tzinfo=timezone.utc)) is not None

    def test_picks_the_licence_for_the_day(self):
        index = VesselLicenceIndex.build([
            make_vessel(rss="OLD", fishing_licence_valid_from="2010-01-01T00:00:00",
                        fishing_licence_valid_to="2015-12-31T00:00:00"),
            make_vessel(rss="NEW", fishing_licence_valid_from="2016-01-01T00:00:00",
                        fishing_licence_valid_to="2030-12-31T00:00:00"),
        ])
        assert index.rss_number("WA1", "2012-06-01") == "OLD"
        assert index.rss_number("WA1", "2019-06-01") == "NEW"
        assert len(index.licences("WA1")) == 2

    def test_overlapping_licences_first_wins(self):
        index = VesselLicenceIndex.build([make_vessel(rss="FIRST"), make_vessel(rss="SECOND")])
        assert index.rss_number("WA1", "2019-06-01") == "FIRST"

    def test_missing_valid_from_is_open_ended(self):
        index = VesselLicenceIndex.build([make_vessel(fishing_licence_valid_from=None)])
        assert index.lookup("WA1", "1990-01-01") is not None

    def test_unknown_pln_returns_none(self):
        index = VesselLicenceIndex.build([make_vessel()])
        assert index.lookup("ZZ1", "2019-07-10") is None
        assert index.rss_number("ZZ1", "2019-07-10") is None
        assert "ZZ1" not in index

    def test_unparseable_date_returns_none(self):
        index = VesselLicenceIndex.build([make_vessel()])
        assert index.lookup("WA1", "not-a-date") is None
        assert index.rss_number("WA1", "10/07/2019") is None

    def test_unparseable_licence_is_skipped(self):
        index = VesselLicenceIndex.build([
            make_vessel("BAD", fishing_licence_valid_to="never"),
            make_vessel(),
        ])
        assert "BAD" not in index
        assert len(index) == 1


class TestPlnsForLandings:
    def test_maps_rss_back_to_licensed_pln(self):
        vessels = [make_vessel(), make_vessel("WA2", "rssWA2")]
        landings = [
            SimpleNamespace(rss_number="rssWA1", date_time_landed="2019-07-10T01:00:00Z"),
            SimpleNamespace(rss_number="rssWA1", date_time_landed="2019-07-10T09:00:00Z"),
            SimpleNamespace(rss_number="unknown", date_time_landed="2019-07-10T09:00:00Z"),
        ]
        assert plns_for_landings(vessels, landings) == [
            {"rssNumber": "rssWA1", "dateLanded": "2019-07-10", "pln": "WA1"},
        ]
