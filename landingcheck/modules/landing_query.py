"""Landing reconciliation — cross-references catch certificates against landings.

Every catch event declared on a certificate (PLN, date, species, weight) is
joined to the landings recorded for the same vessel (RSS number, resolved via
the licence index) on the same UTC day. Species match directly or through a
known alias. Declared weights are converted to live weight and summed across
all certificates for the same vessel/day/species, so overuse spread over
several certificates is visible on each of them.

Two predicates sit on top of the join:

  real-time validation   passes when all-certificate weight is within 50kg of
                         the landed weight, or the catch is not high risk
  validation overuse     the stricter "should block" check used by case
                         management

``missing_landing_investigation_refresh_query`` turns failures on recent
certificates (created less than 40 days before the query time) into
deduplicated (RSS number, landing date) pairs whose landings should be
re-fetched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, NamedTuple, Optional

from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import LicencePeriod, finite_or_none
from landingcheck.modules.risk_scoring import RiskScoringEngine
from landingcheck.modules.vessel_index import VesselLicenceIndex
from landingcheck.utils.dates import format_calendar_date, to_calendar_date, to_utc_datetime

logger = logging.getLogger(__name__)

TOLERANCE_IN_KG = 50
INVESTIGATION_WINDOW = timedelta(days=40)

SpeciesAliasResolver = Callable[[str], list[str]]


def _code(value: Any) -> Optional[str]:
    """State/presentation arrive either as a bare code or as ``{"code": ...}``."""
    if isinstance(value, dict):
        value = value.get("code")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ── Declared export data ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class CaughtBy:
    pln: str
    date: str
    weight: float
    vessel: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "CaughtBy":
        return cls(
            pln=str(doc.get("pln") or "").strip(),
            date=str(doc.get("date") or ""),
            weight=finite_or_none(doc.get("weight")) or 0.0,
            vessel=doc.get("vessel"),
        )


@dataclass(frozen=True)
class Product:
    species_code: str
    caught_by: tuple[CaughtBy, ...] = ()
    state: Optional[str] = None
    presentation: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Product":
        return cls(
            species_code=str(doc.get("speciesCode") or "").strip(),
            caught_by=tuple(CaughtBy.from_document(c) for c in doc.get("caughtBy") or []),
            state=_code(doc.get("state")),
            presentation=_code(doc.get("presentation")),
        )


@dataclass(frozen=True)
class CatchCertificate:
    document_number: str
    created_at: datetime
    products: tuple[Product, ...] = ()
    status: Optional[str] = None
    exporter_account_id: Optional[str] = None
    exporter_contact_id: Optional[str] = None
    pre_approved_by: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "CatchCertificate":
        missing = [k for k in ("documentNumber", "createdAt") if not doc.get(k)]
        if missing:
            raise ValueError(f"Catch certificate missing {', '.join(missing)}")
        export_data = doc.get("exportData") or {}
        exporter = export_data.get("exporterDetails") or {}
        return cls(
            document_number=doc["documentNumber"],
            created_at=to_utc_datetime(doc["createdAt"]),
            products=tuple(Product.from_document(p) for p in export_data.get("products") or []),
            status=doc.get("status"),
            exporter_account_id=exporter.get("accountId") or None,
            exporter_contact_id=exporter.get("contactId") or None,
            pre_approved_by=doc.get("preApprovedBy") or None,
        )


# ── Observed landings ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LandingItem:
    species: str
    weight: float
    factor: float = 1.0
    state: Optional[str] = None
    presentation: Optional[str] = None

    @property
    def live_weight(self) -> float:
        return self.weight * self.factor


@dataclass(frozen=True)
class Landing:
    rss_number: str
    date_time_landed: datetime
    source: Optional[str] = None
    items: tuple[LandingItem, ...] = ()
    date_time_retrieved: Optional[datetime] = None

    @property
    def date_landed(self) -> str:
        return format_calendar_date(self.date_time_landed)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Landing":
        missing = [k for k in ("rssNumber", "dateTimeLanded") if not doc.get(k)]
        if missing:
            raise ValueError(f"Landing missing {', '.join(missing)}")
        retrieved = doc.get("dateTimeRetrieved")
        return cls(
            rss_number=str(doc["rssNumber"]),
            date_time_landed=to_utc_datetime(doc["dateTimeLanded"]),
            source=doc.get("source"),
            items=tuple(
                LandingItem(
                    species=str(item.get("species") or ""),
                    weight=finite_or_none(item.get("weight")) or 0.0,
                    factor=finite_or_none(item.get("factor")) or 1.0,
                    state=item.get("state"),
                    presentation=item.get("presentation"),
                )
                for item in doc.get("items") or []
            ),
            date_time_retrieved=to_utc_datetime(retrieved) if retrieved else None,
        )


# ── Query results ────────────────────────────────────────────────────────────

@dataclass
class CcQueryResult:
    document_number: str
    created_at: datetime
    status: Optional[str]
    pln: str
    rss_number: Optional[str]
    da: Optional[str]
    date_landed: str
    species: str
    raw_weight_on_cert: float
    weight_factor: float
    weight_on_cert: float
    weight_on_all_certs: float
    weight_on_all_certs_before: float
    weight_on_all_certs_after: float
    is_landing_exists: bool
    is_species_exists: bool
    number_of_landings_on_day: int
    weight_on_landing: float
    weight_on_landing_all_species: float
    is_overused_this_cert: bool
    is_overused_all_certs: bool
    is_pre_approved: bool
    duration_since_cert_creation: timedelta
    over_used_info: list[str] = field(default_factory=list)
    species_alias: Optional[str] = None
    exporter_account_id: Optional[str] = None
    exporter_contact_id: Optional[str] = None


class InvestigationCandidate(NamedTuple):
    rss_number: str
    date_landed: str


@dataclass(frozen=True)
class _DeclaredCatch:
    certificate: CatchCertificate
    product: Product
    catch: CaughtBy
    date_landed: str
    licence: Optional[LicencePeriod]
    weight_factor: float

    @property
    def weight(self) -> float:
        return self.catch.weight * self.weight_factor

    @property
    def key(self) -> tuple[str, str, str]:
        vessel = self.licence.rss_number if self.licence else f"pln:{self.catch.pln}"
        return (vessel, self.date_landed, self.product.species_code)


def _as_certificates(certificates: Iterable[CatchCertificate | dict]) -> list[CatchCertificate]:
    return [c if isinstance(c, CatchCertificate) else CatchCertificate.from_document(c) for c in certificates]


def _as_landings(landings: Iterable[Landing | dict]) -> list[Landing]:
    return [item if isinstance(item, Landing) else Landing.from_document(item) for item in landings]


class LandingReconciliationQuery:
    def __init__(self, cache: ReferenceDataCache, risk: Optional[RiskScoringEngine] = None):
        self.cache = cache
        self.risk = risk or RiskScoringEngine(cache)

    def _declared_catches(
        self, certificates: list[CatchCertificate], vessels_index: VesselLicenceIndex
    ) -> list[_DeclaredCatch]:
        declared: list[_DeclaredCatch] = []
        for certificate in certificates:
            for product in certificate.products:
                factor = self.cache.to_live_weight_factor(
                    product.species_code, product.state, product.presentation
                )
                for catch in product.caught_by:
                    try:
                        date_landed = format_calendar_date(to_calendar_date(catch.date))
                    except ValueError:
                        logger.warning(
                            "Skipping catch on %s with invalid date %r (pln=%s)",
                            certificate.document_number, catch.date, catch.pln,
                        )
                        continue
                    declared.append(_DeclaredCatch(
                        certificate=certificate,
                        product=product,
                        catch=catch,
                        date_landed=date_landed,
                        licence=vessels_index.lookup(catch.pln, date_landed),
                        weight_factor=factor,
                    ))
        return declared

    def cc_query(
        self,
        certificates: Iterable[CatchCertificate | dict],
        landings: Iterable[Landing | dict],
        vessels_index: VesselLicenceIndex,
        query_time: datetime,
        species_aliases: Optional[SpeciesAliasResolver] = None,
    ) -> list[CcQueryResult]:
        """Join each declared catch event to the landings for its vessel and day."""
        aliases = species_aliases or self.cache.species_aliases
        declared = self._declared_catches(_as_certificates(certificates), vessels_index)

        landings_by_day: dict[tuple[str, str], list[Landing]] = {}
        for landing in _as_landings(landings):
            landings_by_day.setdefault((landing.rss_number, landing.date_landed), []).append(landing)

        # Running totals in certificate creation order give before/after figures.
        before: dict[int, float] = {}
        totals: dict[tuple[str, str, str], float] = {}
        documents: dict[tuple[str, str, str], list[str]] = {}
        for i in sorted(range(len(declared)), key=lambda i: declared[i].certificate.created_at):
            row = declared[i]
            before[i] = totals.get(row.key, 0.0)
            totals[row.key] = before[i] + row.weight
            documents.setdefault(row.key, []).append(row.certificate.document_number)

        query_time = to_utc_datetime(query_time)
        results: list[CcQueryResult] = []
        for i, row in enumerate(declared):
            species = row.product.species_code
            codes = {species, *aliases(species)}
            day_landings = (
                landings_by_day.get((row.licence.rss_number, row.date_landed), []) if row.licence else []
            )
            all_items = [item for landing in day_landings for item in landing.items]
            matching = [item for item in all_items if item.species in codes]
            weight_on_landing = sum(item.live_weight for item in matching)
            weight_on_all_certs = totals[row.key]
            is_species_exists = bool(matching)
            is_overused_all_certs = is_species_exists and weight_on_all_certs > weight_on_landing + TOLERANCE_IN_KG
            alias = next((item.species for item in matching if item.species != species), None)

            results.append(CcQueryResult(
                document_number=row.certificate.document_number,
                created_at=row.certificate.created_at,
                status=row.certificate.status,
                pln=row.catch.pln,
                rss_number=row.licence.rss_number if row.licence else None,
                da=row.licence.da if row.licence else None,
                date_landed=row.date_landed,
                species=species,
                raw_weight_on_cert=row.catch.weight,
                weight_factor=row.weight_factor,
                weight_on_cert=row.weight,
                weight_on_all_certs=weight_on_all_certs,
                weight_on_all_certs_before=before[i],
                weight_on_all_certs_after=before[i] + row.weight,
                is_landing_exists=bool(day_landings),
                is_species_exists=is_species_exists,
                number_of_landings_on_day=len(day_landings),
                weight_on_landing=weight_on_landing,
                weight_on_landing_all_species=sum(item.live_weight for item in all_items),
                is_overused_this_cert=is_species_exists and row.weight > weight_on_landing + TOLERANCE_IN_KG,
                is_overused_all_certs=is_overused_all_certs,
                is_pre_approved=bool(row.certificate.pre_approved_by),
                duration_since_cert_creation=query_time - row.certificate.created_at,
                over_used_info=(
                    [d for d in dict.fromkeys(documents[row.key]) if d != row.certificate.document_number]
                    if is_overused_all_certs else []
                ),
                species_alias=alias,
                exporter_account_id=row.certificate.exporter_account_id,
                exporter_contact_id=row.certificate.exporter_contact_id,
            ))
        return results

    def _item_risk_score(self, item: CcQueryResult) -> float:
        return self.risk.total_risk_score(
            item.pln, item.species, item.exporter_account_id, item.exporter_contact_id
        )

    def is_real_time_validation_successful(self, item: CcQueryResult) -> bool:
        return (
            item.weight_on_all_certs <= item.weight_on_landing + TOLERANCE_IN_KG
            or not self.risk.is_high_risk(self._item_risk_score(item))
        )

    def is_validation_overuse(self, item: CcQueryResult) -> bool:
        return (
            item.is_species_exists
            and not item.is_overused_this_cert
            and not item.is_pre_approved
            and self.risk.is_high_risk(self._item_risk_score(item))
            and item.is_overused_all_certs
        )

    def missing_landing_investigation_refresh_query(
        self,
        certificates: Iterable[CatchCertificate | dict],
        landings: Iterable[Landing | dict],
        vessels_index: VesselLicenceIndex,
        query_time: datetime,
    ) -> list[InvestigationCandidate]:
        """Landings worth re-fetching: failed items on certificates under 40 days old.

        Items whose PLN has no licence on the catch date are omitted rather than
        emitted with an empty RSS number, since there is nothing to re-fetch by.
        """
        query_time = to_utc_datetime(query_time)
        candidates: dict[InvestigationCandidate, None] = {}
        for item in self.cc_query(certificates, landings, vessels_index, query_time):
            if item.duration_since_cert_creation >= INVESTIGATION_WINDOW:
                continue
            if (
                item.is_landing_exists
                and item.is_species_exists
                and self.is_real_time_validation_successful(item)
            ):
                continue
            if item.rss_number is None:
                logger.warning(
                    "No licence for %s on %s (%s); cannot refresh landings",
                    item.pln, item.date_landed, item.document_number,
                )
                continue
            candidates[InvestigationCandidate(item.rss_number, item.date_landed)] = None
        logger.info("Missing landing investigation: %d candidates", len(candidates))
        return list(candidates)
