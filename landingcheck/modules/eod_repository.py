"""Persistence for evidence-of-date settings.

The EOD engine talks to storage only through ``EodRepository``. The SQL
implementation keeps one row per devolved authority with document-shaped JSON
columns; every write method commits on its own, so each call is a single
document update.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from landingcheck.models.base import VesselSizeGroup
from landingcheck.models.eod_setting import EodSettingRow
from landingcheck.modules.reference_types import EodAudit, EodRule, EodSetting

logger = logging.getLogger(__name__)


class EodRepository(ABC):
    """Narrow storage contract used by the EOD engine."""

    @abstractmethod
    def get_setting(self, da: str) -> Optional[EodSetting]:
        ...

    @abstractmethod
    def list_settings(self) -> list[EodSetting]:
        ...

    @abstractmethod
    def set_vessel_sizes(self, da: str, vessel_sizes: Iterable[VesselSizeGroup]) -> EodSetting:
        """Replace the DA's vessel sizes, creating the setting if needed."""

    @abstractmethod
    def upsert_rule(self, da: str, rule: EodRule) -> EodSetting:
        """Drop any rule with the same (rule_type, vessel_size), then insert *rule*."""

    @abstractmethod
    def append_audit(self, da: str, audit: EodAudit) -> None:
        ...


def _to_setting(row: EodSettingRow) -> EodSetting:
    return EodSetting.from_document({
        "da": row.da,
        "vesselSizes": row.vessel_sizes or [],
        "rules": row.rules or [],
        "audit": row.audit or [],
    })


class SqlEodRepository(EodRepository):
    def __init__(self, db: Session):
        self.db = db

    def _row(self, da: str, create: bool = False) -> Optional[EodSettingRow]:
        row = self.db.query(EodSettingRow).filter(EodSettingRow.da == da).first()
        if row is None and create:
            row = EodSettingRow(da=da, vessel_sizes=[], rules=[], audit=[])
            self.db.add(row)
            self.db.flush()
            logger.info("EOD setting created for DA %s", da)
        return row

    def get_setting(self, da: str) -> Optional[EodSetting]:
        row = self._row(da)
        return _to_setting(row) if row is not None else None

    def list_settings(self) -> list[EodSetting]:
        rows = self.db.query(EodSettingRow).order_by(EodSettingRow.da).all()
        return [_to_setting(row) for row in rows]

    def set_vessel_sizes(self, da: str, vessel_sizes: Iterable[VesselSizeGroup]) -> EodSetting:
        row = self._row(da, create=True)
        # JSON columns are replaced, not mutated in place, so the change is tracked.
        row.vessel_sizes = [VesselSizeGroup(size).value for size in vessel_sizes]
        self.db.commit()
        return _to_setting(row)

    def upsert_rule(self, da: str, rule: EodRule) -> EodSetting:
        row = self._row(da, create=True)
        kept = [
            existing for existing in (row.rules or [])
            if not (
                existing.get("ruleType") == rule.rule_type.value
                and existing.get("vesselSize") == rule.vessel_size.value
            )
        ]
        row.rules = kept + [rule.to_document(include_changes=False)]
        self.db.commit()
        return _to_setting(row)

    def append_audit(self, da: str, audit: EodAudit) -> None:
        row = self._row(da, create=True)
        row.audit = list(row.audit or []) + [audit.to_document()]
        self.db.commit()
