"""Tests for the SQL-backed EOD settings repository."""
from __future__ import annotations

from landingcheck.models.base import EodRuleType, VesselSizeGroup
from landingcheck.models.eod_setting import EodSettingRow
from landingcheck.modules.eod_repository import SqlEodRepository
from landingcheck.modules.reference_types import EodAudit, EodRule


class TestSqlEodRepository:
    def test_missing_setting_is_none(self, db):
        assert SqlEodRepository(db).get_setting("England") is None

    def test_set_vessel_sizes_creates_row(self, db):
        repo = SqlEodRepository(db)
        setting = repo.set_vessel_sizes("England", [VesselSizeGroup.UNDER_10M, VesselSizeGroup.OVER_12M])
        assert setting.vessel_sizes == (VesselSizeGroup.UNDER_10M, VesselSizeGroup.OVER_12M)
        assert db.query(EodSettingRow).count() == 1

    def test_upsert_rule_replaces_same_key_only(self, db):
        repo = SqlEodRepository(db)
        repo.upsert_rule("England", EodRule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M, 0))
        repo.upsert_rule("England", EodRule(EodRuleType.END_DATE, VesselSizeGroup.UNDER_10M, 14))
        setting = repo.upsert_rule("England", EodRule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M, 2))

        assert [(r.rule_type, r.number_of_days) for r in setting.rules] == [
            (EodRuleType.END_DATE, 14),
            (EodRuleType.EXPECTED_DATE, 2),
        ]

    def test_stored_rules_omit_change_fields(self, db):
        repo = SqlEodRepository(db)
        repo.upsert_rule("England", EodRule(EodRuleType.EXPECTED_DATE, VesselSizeGroup.UNDER_10M, 1, "0", "1"))
        row = db.query(EodSettingRow).one()
        assert row.rules == [{"ruleType": "expectedDate", "vesselSize": "Under 10m", "numberOfDays": 1}]

    def test_append_audit_persists_in_order(self, db):
        repo = SqlEodRepository(db)
        repo.append_audit("Wales", EodAudit(user="a", timestamp="2023-05-10T14:30:15.000Z", vessel_sizes="Under 10m"))
        repo.append_audit("Wales", EodAudit(
            user="b",
            timestamp="2023-05-11T09:00:00.000Z",
            rule=EodRule(EodRuleType.END_DATE, VesselSizeGroup.UNDER_10M, 5, "14", "5"),
        ))
        db.expire_all()
        audit = repo.get_setting("Wales").audit
        assert [a.user for a in audit] == ["a", "b"]
        assert audit[1].rule.changed_from == "14"
