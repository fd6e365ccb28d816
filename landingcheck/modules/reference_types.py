"""Typed reference-data records held by the cache.

Every record is a frozen dataclass so a snapshot handed to a reader can never
be changed underneath it. Loader rows are converted into these records once;
numeric fields that are not finite numbers become ``None`` at that point.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from landingcheck.models.base import EodRuleType, VesselSizeGroup


def finite_or_none(value: Any) -> Optional[float]:
    """Coerce *value* to a finite float, or None for blanks, NaN and infinities."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ── Vessels ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VesselRecord:
    registration_number: str
    rss_number: str
    fishing_licence_valid_to: str
    fishing_licence_valid_from: Optional[str] = None
    fishing_vessel_name: Optional[str] = None
    flag: Optional[str] = None
    home_port: Optional[str] = None
    admin_port: Optional[str] = None
    fishing_licence_number: Optional[str] = None
    vessel_length: Optional[float] = None
    imo: Optional[str] = None
    ircs: Optional[str] = None
    cfr: Optional[str] = None
    licence_holder_name: Optional[str] = None
    vessel_not_found: bool = False

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "VesselRecord":
        imo = doc.get("imo")
        return cls(
            registration_number=str(doc.get("registrationNumber") or "").strip(),
            rss_number=str(doc.get("rssNumber") or "").strip(),
            fishing_licence_valid_to=doc.get("fishingLicenceValidTo") or "",
            fishing_licence_valid_from=doc.get("fishingLicenceValidFrom"),
            fishing_vessel_name=doc.get("fishingVesselName"),
            flag=doc.get("flag"),
            home_port=doc.get("homePort"),
            admin_port=doc.get("adminPort"),
            fishing_licence_number=_blank_to_none(doc.get("fishingLicenceNumber")),
            vessel_length=finite_or_none(doc.get("vesselLength")),
            imo=str(imo) if imo not in (None, "") else None,
            ircs=doc.get("ircs"),
            cfr=doc.get("cfr"),
            licence_holder_name=doc.get("licenceHolderName"),
            vessel_not_found=bool(doc.get("vesselNotFound", False)),
        )


@dataclass(frozen=True)
class LicencePeriod:
    """One licence validity window for a PLN, with the identity fields lookups need."""
    valid_from: Optional[datetime]
    valid_to: datetime
    rss_number: str
    da: str
    vessel_length: Optional[float] = None
    home_port: Optional[str] = None
    flag: Optional[str] = None
    imo: Optional[str] = None
    licence_number: Optional[str] = None
    licence_holder: Optional[str] = None
    vessel_not_found: bool = False


# ── Conversion factors and exporter behaviour ───────────────────────────────

@dataclass(frozen=True)
class ConversionFactor:
    species: str
    state: Optional[str]
    presentation: Optional[str]
    to_live_weight_factor: Optional[float] = None
    quota_status: Optional[str] = None
    risk_score: Optional[float] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ConversionFactor":
        return cls(
            species=str(row.get("species") or "").strip(),
            state=_blank_to_none(row.get("state")),
            presentation=_blank_to_none(row.get("presentation")),
            to_live_weight_factor=finite_or_none(row.get("toLiveWeightFactor")),
            quota_status=_blank_to_none(row.get("quotaStatus")),
            risk_score=finite_or_none(row.get("riskScore")),
        )


@dataclass(frozen=True)
class ExporterBehaviour:
    account_id: Optional[str]
    contact_id: Optional[str]
    name: Optional[str] = None
    score: Optional[float] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ExporterBehaviour":
        return cls(
            account_id=_blank_to_none(row.get("accountId")),
            contact_id=_blank_to_none(row.get("contactId")),
            name=_blank_to_none(row.get("name")),
            score=finite_or_none(row.get("score")),
        )


# ── Risking settings ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VesselOfInterest:
    registration_number: str
    fishing_vessel_name: str
    home_port: str
    da: str


@dataclass(frozen=True)
class RiskWeighting:
    vessel_weight: float = 0.0
    species_weight: float = 0.0
    exporter_weight: float = 0.0
    threshold: float = 0.0


@dataclass(frozen=True)
class SpeciesRiskToggle:
    enabled: bool = False


# ── Evidence of date ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EodRule:
    rule_type: EodRuleType
    vessel_size: VesselSizeGroup
    number_of_days: int
    changed_from: Optional[str] = None
    changed_to: Optional[str] = None

    @property
    def key(self) -> tuple[EodRuleType, VesselSizeGroup]:
        return (self.rule_type, self.vessel_size)

    def to_document(self, include_changes: bool = True) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "ruleType": self.rule_type.value,
            "vesselSize": self.vessel_size.value,
            "numberOfDays": self.number_of_days,
        }
        if include_changes:
            doc["changedFrom"] = self.changed_from
            doc["changedTo"] = self.changed_to
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "EodRule":
        return cls(
            rule_type=EodRuleType(doc["ruleType"]),
            vessel_size=VesselSizeGroup(doc["vesselSize"]),
            number_of_days=int(doc["numberOfDays"]),
            changed_from=doc.get("changedFrom"),
            changed_to=doc.get("changedTo"),
        )


@dataclass(frozen=True)
class EodAudit:
    user: str
    timestamp: str
    rule: Optional[EodRule] = None
    vessel_sizes: Optional[str] = None
    changed_from: Optional[str] = None
    changed_to: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        return {
            "user": self.user,
            "timestamp": self.timestamp,
            "rule": self.rule.to_document() if self.rule else None,
            "vesselSizes": self.vessel_sizes,
            "changedFrom": self.changed_from,
            "changedTo": self.changed_to,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "EodAudit":
        rule = doc.get("rule")
        return cls(
            user=doc["user"],
            timestamp=doc["timestamp"],
            rule=EodRule.from_document(rule) if rule else None,
            vessel_sizes=doc.get("vesselSizes"),
            changed_from=doc.get("changedFrom"),
            changed_to=doc.get("changedTo"),
        )


@dataclass(frozen=True)
class EodSetting:
    da: str
    vessel_sizes: tuple[VesselSizeGroup, ...] = ()
    rules: tuple[EodRule, ...] = ()
    audit: tuple[EodAudit, ...] = field(default=(), repr=False)

    def find_rule(self, rule_type: EodRuleType, vessel_size: VesselSizeGroup) -> Optional[EodRule]:
        for rule in self.rules:
            if rule.rule_type == rule_type and rule.vessel_size == vessel_size:
                return rule
        return None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "EodSetting":
        return cls(
            da=doc["da"],
            vessel_sizes=tuple(VesselSizeGroup(s) for s in doc.get("vesselSizes") or []),
            rules=tuple(EodRule.from_document(r) for r in doc.get("rules") or []),
            audit=tuple(EodAudit.from_document(a) for a in doc.get("audit") or []),
        )
