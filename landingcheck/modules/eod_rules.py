"""Evidence-of-date (EOD) rule engine.

Each devolved authority (DA) decides, per vessel-size group, whether landing
data is ever expected and how many days after landing it should arrive
(``expectedDate``) and must have arrived (``endDate``).

Resolution reads the cached EOD settings. Writes go through an
``EodRepository`` and append one audit entry per rule or vessel-size change.

Defaults when no rule applies:
  expectedDate -> today (UTC)
  endDate      -> today + 14 days (UTC)
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from landingcheck.config import settings
from landingcheck.models.base import EodRuleType, VesselSizeGroup
from landingcheck.modules.eod_repository import EodRepository
from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import EodAudit, EodRule, EodSetting
from landingcheck.utils.dates import (
    format_calendar_date,
    is_calendar_date,
    to_utc_datetime,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_END_DATE_DAYS = 14

# Seeded for every vessel size that becomes subject to EOD rules.
DEFAULT_RULES: tuple[tuple[EodRuleType, int], ...] = (
    (EodRuleType.EXPECTED_DATE, 0),
    (EodRuleType.END_DATE, DEFAULT_END_DATE_DAYS),
)


def vessel_size_group(vessel_length: Optional[float]) -> VesselSizeGroup:
    """Bucket a vessel length; unknown lengths fall into 10-12m."""
    if vessel_length is not None and vessel_length < 10:
        return VesselSizeGroup.UNDER_10M
    if vessel_length is not None and vessel_length > 12:
        return VesselSizeGroup.OVER_12M
    return VesselSizeGroup.TEN_TO_TWELVE_M


def _audit_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _join_sizes(sizes: Iterable[VesselSizeGroup]) -> Optional[str]:
    joined = ",".join(VesselSizeGroup(s).value for s in sizes)
    return joined or None


class EvidenceOfDateEngine:
    def __init__(
        self,
        cache: ReferenceDataCache,
        repository: Optional[EodRepository] = None,
        system_user: Optional[str] = None,
    ):
        self.cache = cache
        self.repository = repository
        self.system_user = system_user or settings.EOD_SYSTEM_USER

    # ── Resolution ───────────────────────────────────────────────────────────

    def data_ever_expected(self, licence) -> bool:
        group = vessel_size_group(licence.vessel_length)
        return any(
            setting.da == licence.da and group in setting.vessel_sizes
            for setting in self.cache.eod_settings
        )

    def _find_rule(self, licence, rule_type: EodRuleType) -> Optional[EodRule]:
        setting = self.cache.eod_setting(licence.da)
        if setting is None:
            return None
        return setting.find_rule(rule_type, vessel_size_group(licence.vessel_length))

    def landing_data_rule_date(
        self,
        landing_date: str | date | datetime,
        licence,
        rule_kind: EodRuleType | str,
        landing_data_expected_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Return the expected or end date (``YYYY-MM-DD``) for a landing."""
        kind = EodRuleType(rule_kind)
        today = (now or utc_now()).astimezone(timezone.utc)

        def default_date() -> str:
            if kind == EodRuleType.EXPECTED_DATE:
                return format_calendar_date(today)
            return format_calendar_date(today + timedelta(days=DEFAULT_END_DATE_DAYS))

        if kind == EodRuleType.END_DATE and not is_calendar_date(landing_data_expected_date):
            return default_date()

        rule = self._find_rule(licence, kind)
        if rule is None:
            return default_date()

        base = landing_date if kind == EodRuleType.EXPECTED_DATE else landing_data_expected_date
        try:
            base_dt = to_utc_datetime(base)
        except ValueError:
            logger.warning("Unparseable %s base date %r for DA %s", kind.value, base, licence.da)
            return default_date()
        return format_calendar_date(base_dt + timedelta(days=rule.number_of_days))

    def is_landing_data_available(
        self,
        licence,
        landed_date: str | date | datetime,
        is_legally_due: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        if not self.data_ever_expected(licence):
            return False

        # A legal obligation overrides the scheduling rule.
        if is_legally_due is True:
            return True

        rule = self._find_rule(licence, EodRuleType.EXPECTED_DATE)
        if rule is None:
            return True

        try:
            landed_at = to_utc_datetime(landed_date)
        except ValueError:
            # Treated like a missing rule: the landing is not held back.
            logger.warning("Unparseable landed date %r for DA %s", landed_date, licence.da)
            return True

        expected_at = landed_at + timedelta(days=rule.number_of_days)
        return (now or utc_now()) >= expected_at

    # ── Administration ───────────────────────────────────────────────────────

    def _require_repository(self) -> EodRepository:
        if self.repository is None:
            raise RuntimeError("EOD repository is not configured")
        return self.repository

    def create_eod_rules(
        self,
        user: str,
        da: str,
        vessel_sizes: Optional[Iterable[VesselSizeGroup | str]] = None,
        rule: Optional[EodRule] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Replace a DA's vessel sizes, or upsert a single rule.

        Raises:
            ValueError: if both or neither of *vessel_sizes* and *rule* are given,
                a vessel size is not a known group, or the rule type is not
                expectedDate/endDate.
        """
        if (vessel_sizes is None) == (rule is None):
            raise ValueError("Exactly one of vessel_sizes or rule must be supplied")
        now = now or utc_now()
        if rule is not None:
            if rule.rule_type == EodRuleType.DATA_EVER_EXPECTED:
                raise ValueError("dataEverExpected is set through vessel sizes, not as a rule")
            self._upsert_rule(user, da, rule, now)
        else:
            sizes = tuple(dict.fromkeys(VesselSizeGroup(size) for size in vessel_sizes))
            self._replace_vessel_sizes(user, da, sizes, now)

    def _upsert_rule(self, user: str, da: str, rule: EodRule, now: datetime) -> None:
        repository = self._require_repository()
        existing = repository.get_setting(da)
        previous = existing.find_rule(rule.rule_type, rule.vessel_size) if existing else None

        changed_from = rule.changed_from
        if changed_from is None and previous is not None:
            changed_from = str(previous.number_of_days)
        changed_to = rule.changed_to if rule.changed_to is not None else str(rule.number_of_days)
        stored = replace(rule, changed_from=changed_from, changed_to=changed_to)

        repository.upsert_rule(da, stored)
        repository.append_audit(da, EodAudit(
            user=user,
            timestamp=_audit_timestamp(now),
            rule=stored,
            changed_from=changed_from,
            changed_to=changed_to,
        ))
        logger.info(
            "EOD rule %s/%s for %s set to %d days by %s",
            stored.rule_type.value, stored.vessel_size.value, da, stored.number_of_days, user,
        )

    def _replace_vessel_sizes(
        self, user: str, da: str, sizes: tuple[VesselSizeGroup, ...], now: datetime
    ) -> None:
        repository = self._require_repository()
        existing = repository.get_setting(da)
        previous_sizes = existing.vessel_sizes if existing else ()

        setting = repository.set_vessel_sizes(da, sizes)
        repository.append_audit(da, EodAudit(
            user=user,
            timestamp=_audit_timestamp(now),
            vessel_sizes=_join_sizes(sizes),
            changed_from=_join_sizes(previous_sizes),
            changed_to=_join_sizes(sizes),
        ))
        logger.info("EOD vessel sizes for %s set to %s by %s", da, _join_sizes(sizes), user)

        self._seed_default_rules(setting, now)

    def _seed_default_rules(self, setting: EodSetting, now: datetime) -> int:
        seeded = 0
        for size in setting.vessel_sizes:
            for rule_type, days in DEFAULT_RULES:
                if setting.find_rule(rule_type, size) is None:
                    self._upsert_rule(
                        self.system_user,
                        setting.da,
                        EodRule(rule_type=rule_type, vessel_size=size, number_of_days=days,
                                changed_from=None, changed_to=str(days)),
                        now,
                    )
                    seeded += 1
        return seeded

    def seed_eod_rules(self, now: Optional[datetime] = None) -> int:
        """Add default rules wherever a configured vessel size lacks them."""
        now = now or utc_now()
        seeded = 0
        for setting in self._require_repository().list_settings():
            seeded += self._seed_default_rules(setting, now)
        logger.info("Seeded %d default EOD rules", seeded)
        return seeded

    def eod_settings(self) -> list[EodSetting]:
        return self._require_repository().list_settings()

    def eod_audits(self) -> list[dict]:
        """Flatten every DA's audit trail into the admin report shape."""
        audits: list[dict] = []
        for setting in self._require_repository().list_settings():
            for audit in setting.audit:
                audits.append(_admin_audit(audit, setting.da))
        return audits


def _admin_audit(audit: EodAudit, da: str) -> dict:
    stamp = to_utc_datetime(audit.timestamp)
    rule = audit.rule
    return {
        "date": stamp.strftime("%d-%m-%Y"),
        "time": stamp.strftime("%I:%M:%S %p").lower(),
        "user": audit.user,
        "rule": rule.rule_type.value if rule else EodRuleType.DATA_EVER_EXPECTED.value,
        "da": da,
        "vesselSizes": rule.vessel_size.value if rule else audit.vessel_sizes,
        "changedFrom": rule.changed_from if rule else audit.changed_from,
        "changedTo": rule.changed_to if rule else audit.changed_to,
    }
