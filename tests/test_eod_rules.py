"""Tests for evidence-of-date rule resolution and administration."""
from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from landingcheck.models.base import EodRuleType, VesselSizeGroup
from landingcheck.modules.eod_repository import SqlEodRepository
from landingcheck.modules.eod_rules import EvidenceOfDateEngine, vessel_size_group
from landingcheck.modules.reference_types import EodRule, EodSetting

NOW = datetime(2023, 5, 10, 14, 30, 15, tzinfo=timezone.utc)

UNDER_10 = SimpleNamespace(da="England", vessel_length=6.88)
OVER_12 = SimpleNamespace(da="England", vessel_length=24.5)


def _setting(da="England", sizes=(VesselSizeGroup.UNDER_10M,), expected=1, end=5) -> EodSetting:
    rules = []
    for size in sizes:
        rules.append(EodRule(EodRuleType.EXPECTED_DATE, size, expected))
        rules.append(EodRule(EodRuleType.END_DATE, size, end))
    return EodSetting(da=da, vessel_sizes=tuple(sizes), rules=tuple(rules))


@pytest.fixture
def engine(cache):
    cache.update(eod_settings=[_setting()])
    return EvidenceOfDateEngine(cache)


@pytest.fixture
def repository(db):
    return SqlEodRepository(db)


@pytest.fixture
def admin(cache, repository):
    return EvidenceOfDateEngine(cache, repository, system_user="system")


class TestVesselSizeGroup:
    @pytest.mark.parametrize("length,group", [
        (6.88, VesselSizeGroup.UNDER_10M),
        (10, VesselSizeGroup.TEN_TO_TWELVE_M),
        (12, VesselSizeGroup.TEN_TO_TWELVE_M),
        (12.01, VesselSizeGroup.OVER_12M),
        (None, VesselSizeGroup.TEN_TO_TWELVE_M),
    ])
    def test_buckets(self, length, group):
        assert vessel_size_group(length) == group


class TestRuleDates:
    def test_data_ever_expected(self, engine):
        assert engine.data_ever_expected(UNDER_10) is True
        assert engine.data_ever_expected(OVER_12) is False
        assert engine.data_ever_expected(SimpleNamespace(da="Wales", vessel_length=6.88)) is False

    def test_expected_date_adds_rule_days(self, engine):
        assert engine.landing_data_rule_date("2023-05-01", UNDER_10, "expectedDate", now=NOW) == "2023-05-02"

    @pytest.mark.parametrize("landing_date,days,expected", [
        ("2023-05-10", 10, "2023-05-20"),
        ("2023-05-25", 10, "2023-06-04"),
    ])
    def test_expected_date_offsets(self, cache, landing_date, days, expected):
        cache.update(eod_settings=[_setting(expected=days)])
        engine = EvidenceOfDateEngine(cache)
        assert engine.landing_data_rule_date(landing_date, UNDER_10, "expectedDate", now=NOW) == expected

    def test_end_date_counts_from_expected_date(self, engine):
        result = engine.landing_data_rule_date("2023-05-01", UNDER_10, EodRuleType.END_DATE, "2023-05-02", now=NOW)
        assert result == "2023-05-07"

    def test_no_rule_defaults(self, engine):
        assert engine.landing_data_rule_date("2023-05-01", OVER_12, "expectedDate", now=NOW) == "2023-05-10"
        assert engine.landing_data_rule_date("2023-05-01", OVER_12, "endDate", "2023-05-02", now=NOW) == "2023-05-24"

    @pytest.mark.parametrize("expected", [None, "", "02/05/2023", "2023-5-2", "2023-02-30"])
    def test_end_date_with_invalid_expected_date_defaults(self, engine, expected):
        assert engine.landing_data_rule_date("2023-05-01", UNDER_10, "endDate", expected, now=NOW) == "2023-05-24"

    def test_unparseable_landing_date_defaults(self, engine):
        assert engine.landing_data_rule_date("yesterday", UNDER_10, "expectedDate", now=NOW) == "2023-05-10"

    def test_unknown_rule_kind_raises(self, engine):
        with pytest.raises(ValueError):
            engine.landing_data_rule_date("2023-05-01", UNDER_10, "sometime", now=NOW)


class TestLandingDataAvailable:
    def test_not_expected_for_vessel_size(self, engine):
        assert engine.is_landing_data_available(OVER_12, "2023-05-01", is_legally_due=True, now=NOW) is False

    def test_legally_due_overrides_schedule(self, engine):
        assert engine.is_landing_data_available(UNDER_10, "2023-05-10", is_legally_due=True, now=NOW) is True

    def test_before_expected_date(self, engine):
        assert engine.is_landing_data_available(UNDER_10, "2023-05-10", now=NOW) is False

    def test_after_expected_date(self, engine):
        assert engine.is_landing_data_available(UNDER_10, "2023-05-09", now=NOW) is True

    def test_unparseable_landed_date_is_available(self, engine):
        assert engine.is_landing_data_available(UNDER_10, "bad", now=NOW) is True

    def test_unparseable_landed_date_still_needs_data_expected(self, engine):
        assert engine.is_landing_data_available(OVER_12, "bad", now=NOW) is False

    def test_no_expected_rule_is_available(self, cache):
        cache.update(eod_settings=[EodSetting(da="England", vessel_sizes=(VesselSizeGroup.UNDER_10M,))])
        engine = EvidenceOfDateEngine(cache)
        assert engine.is_landing_data_available(UNDER_10, "2023-05-10", now=NOW) is True


class TestCreateEodRules:
    def test_requires_exactly_one_shape(self, admin):
        with pytest.raises(ValueError):
            admin.create_eod_rules("ana", "England", now=NOW)
        with pytest.raises(ValueError):
            admin.create_eod_rules(
                "ana", "England", vessel_sizes=["Under 10m"],
                rule=EodRule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M, 1), now=NOW,
            )

    def test_rejects_data_ever_expected_rule(self, admin):
        with pytest.raises(ValueError):
            admin.create_eod_rules(
                "ana", "England", rule=EodRule(EodRuleType.DATA_EVER_EXPECTED, VesselSizeGroup.UNDER_10M, 0)
            )

    def test_rejects_unknown_vessel_size(self, admin):
        with pytest.raises(ValueError):
            admin.create_eod_rules("ana", "England", vessel_sizes=["huge"])

    def test_without_repository_raises(self, cache):
        with pytest.raises(RuntimeError):
            EvidenceOfDateEngine(cache).create_eod_rules("ana", "England", vessel_sizes=["Under 10m"])

    def test_vessel_sizes_seed_default_rules(self, admin, repository):
        admin.create_eod_rules("ana", "England", vessel_sizes=["Under 10m", "Under 10m"], now=NOW)

        setting = repository.get_setting("England")
        assert setting.vessel_sizes == (VesselSizeGroup.UNDER_10M,)
        assert setting.find_rule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M).number_of_days == 0
        assert setting.find_rule(EodRuleType.END_DATE, VesselSizeGroup.UNDER_10M).number_of_days == 14
        assert [a.user for a in setting.audit] == ["ana", "system", "system"]
        assert setting.audit[0].changed_to == "Under 10m"

    def test_adding_a_size_only_seeds_missing_rules(self, admin, repository):
        admin.create_eod_rules("ana", "England", vessel_sizes=["Under 10m"], now=NOW)
        admin.create_eod_rules(
            "ana", "England", rule=EodRule(EodRuleType.END_DATE, VesselSizeGroup.UNDER_10M, 7), now=NOW
        )
        admin.create_eod_rules("ana", "England", vessel_sizes=["Under 10m", "12m+"], now=NOW)

        setting = repository.get_setting("England")
        assert len(setting.rules) == 4
        assert setting.find_rule(EodRuleType.END_DATE, VesselSizeGroup.UNDER_10M).number_of_days == 7
        assert setting.find_rule(EodRuleType.END_DATE, VesselSizeGroup.OVER_12M).number_of_days == 14
        assert setting.audit[-3].changed_from == "Under 10m"
        assert setting.audit[-3].changed_to == "Under 10m,12m+"

    def test_rule_upsert_replaces_and_audits_change(self, admin, repository):
        admin.create_eod_rules("ana", "Wales", vessel_sizes=["Under 10m"], now=NOW)
        admin.create_eod_rules(
            "bob", "Wales", rule=EodRule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M, 3), now=NOW
        )

        setting = repository.get_setting("Wales")
        expected_rules = [r for r in setting.rules if r.rule_type == EodRuleType.EXPECTED_DATE]
        assert len(expected_rules) == 1
        assert expected_rules[0].number_of_days == 3
        last = setting.audit[-1]
        assert last.user == "bob"
        assert last.rule.changed_from == "0"
        assert last.rule.changed_to == "3"


class TestSeedAndAudit:
    def test_seed_eod_rules_fills_gaps(self, admin, repository):
        repository.set_vessel_sizes("Scotland", [VesselSizeGroup.OVER_12M])
        assert admin.seed_eod_rules(now=NOW) == 2
        assert admin.seed_eod_rules(now=NOW) == 0
        assert len(repository.get_setting("Scotland").rules) == 2

    def test_eod_audits_admin_format(self, admin):
        admin.create_eod_rules("ana", "England", vessel_sizes=["Under 10m"], now=NOW)
        audits = admin.eod_audits()

        assert audits[0] == {
            "date": "10-05-2023",
            "time": "02:30:15 pm",
            "user": "ana",
            "rule": "dataEverExpected",
            "da": "England",
            "vesselSizes": "Under 10m",
            "changedFrom": None,
            "changedTo": "Under 10m",
        }
        assert audits[1]["rule"] == "expectedDate"
        assert audits[1]["vesselSizes"] == "Under 10m"
        assert audits[1]["changedTo"] == "0"

    def test_eod_settings_lists_every_da(self, admin, repository):
        repository.set_vessel_sizes("Wales", [VesselSizeGroup.UNDER_10M])
        repository.set_vessel_sizes("England", [VesselSizeGroup.OVER_12M])
        assert [s.da for s in admin.eod_settings()] == ["England", "Wales"]
