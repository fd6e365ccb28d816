"""Reference data cache.

Holds one immutable snapshot per category (vessels, conversion factors,
exporter behaviour, vessels of interest, weighting, species toggle, EOD
settings, species aliases). ``update()`` replaces only the categories it is
given; each replacement is a single attribute assignment, so a reader sees
either the old or the new snapshot of a category, never a mix.

Cross-category consistency is not guaranteed: a reader may pair freshly
loaded vessels with the previous weighting while a refresh is in progress.
Refreshes themselves are not serialized here; the caller must not run two at
once.

The cache is constructed once per process and handed to the engines; there is
no module-level instance.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from landingcheck.config import settings
from landingcheck.models.base import QuotaStatus
from landingcheck.modules.reference_types import (
    ConversionFactor,
    EodSetting,
    ExporterBehaviour,
    RiskWeighting,
    SpeciesRiskToggle,
    VesselOfInterest,
    VesselRecord,
    finite_or_none,
)
from landingcheck.modules.vessel_index import VesselLicenceIndex

logger = logging.getLogger(__name__)

DEFAULT_SPECIES_RISK_SCORE = 0.5
DEFAULT_TO_LIVE_WEIGHT_FACTOR = 1


@dataclass(frozen=True)
class _VesselSnapshot:
    vessels: tuple[VesselRecord, ...]
    index: VesselLicenceIndex


@dataclass(frozen=True)
class _VesselsOfInterestSnapshot:
    vessels: tuple[VesselOfInterest, ...]
    plns: frozenset[str]


def _normalise_factor(factor: ConversionFactor | Mapping[str, Any]) -> ConversionFactor:
    if isinstance(factor, ConversionFactor):
        return ConversionFactor(
            species=factor.species,
            state=factor.state,
            presentation=factor.presentation,
            to_live_weight_factor=finite_or_none(factor.to_live_weight_factor),
            quota_status=factor.quota_status,
            risk_score=finite_or_none(factor.risk_score),
        )
    return ConversionFactor.from_row(dict(factor))


class ReferenceDataCache:
    """Category-tagged, refreshable snapshots of reference data."""

    def __init__(
        self,
        vessel_not_found_enabled: Optional[bool] = None,
        vessel_not_found_name: Optional[str] = None,
        vessel_not_found_pln: Optional[str] = None,
    ):
        self.vessel_not_found_enabled = (
            settings.VESSEL_NOT_FOUND_ENABLED if vessel_not_found_enabled is None else vessel_not_found_enabled
        )
        self.vessel_not_found_name = vessel_not_found_name or settings.VESSEL_NOT_FOUND_NAME
        self.vessel_not_found_pln = vessel_not_found_pln or settings.VESSEL_NOT_FOUND_PLN

        self._vessels = _VesselSnapshot(vessels=(), index=VesselLicenceIndex())
        self._conversion_factors: tuple[ConversionFactor, ...] = ()
        self._exporter_behaviour: tuple[ExporterBehaviour, ...] = ()
        self._vessels_of_interest = _VesselsOfInterestSnapshot(vessels=(), plns=frozenset())
        self._weighting = RiskWeighting()
        self._species_toggle = SpeciesRiskToggle(enabled=False)
        self._eod_settings: tuple[EodSetting, ...] = ()
        self._species_aliases: Mapping[str, tuple[str, ...]] = {}

    # ── Bulk replace ─────────────────────────────────────────────────────────

    def update(
        self,
        *,
        vessels: Optional[Iterable[VesselRecord]] = None,
        conversion_factors: Optional[Iterable[ConversionFactor | Mapping[str, Any]]] = None,
        exporter_behaviour: Optional[Iterable[ExporterBehaviour]] = None,
        vessels_of_interest: Optional[Iterable[VesselOfInterest]] = None,
        weighting: Optional[RiskWeighting] = None,
        species_toggle: Optional[SpeciesRiskToggle] = None,
        eod_settings: Optional[Iterable[EodSetting]] = None,
        species_aliases: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        """Replace every category passed with a non-None value; leave the rest."""
        if vessels is not None:
            snapshot = tuple(vessels)
            self._vessels = _VesselSnapshot(vessels=snapshot, index=VesselLicenceIndex.build(snapshot))
        if conversion_factors is not None:
            self._conversion_factors = tuple(_normalise_factor(f) for f in conversion_factors)
        if exporter_behaviour is not None:
            self._exporter_behaviour = tuple(exporter_behaviour)
        if vessels_of_interest is not None:
            voi = tuple(v for v in vessels_of_interest if v is not None)
            self._vessels_of_interest = _VesselsOfInterestSnapshot(
                vessels=voi, plns=frozenset(v.registration_number for v in voi)
            )
        if weighting is not None:
            self._weighting = weighting
        if species_toggle is not None:
            self._species_toggle = species_toggle
        if eod_settings is not None:
            self._eod_settings = tuple(eod_settings)
        if species_aliases is not None:
            self._species_aliases = {code: tuple(aliases) for code, aliases in species_aliases.items()}

    def add_vessel_not_found(self, vessels: Iterable[VesselRecord]) -> list[VesselRecord]:
        """Return *vessels* plus the sentinel "not found" vessel when enabled."""
        updated = list(vessels)
        if self.vessel_not_found_enabled:
            updated.append(VesselRecord(
                registration_number=self.vessel_not_found_pln,
                rss_number="N/A",
                fishing_vessel_name=self.vessel_not_found_name,
                flag="GBR",
                home_port="N/A",
                admin_port="N/A",
                fishing_licence_number="27619",
                fishing_licence_valid_from="2016-07-01T00:01:00",
                fishing_licence_valid_to="2300-12-31T00:01:00",
                vessel_length=0,
                ircs="",
                imo=None,
                cfr=None,
                licence_holder_name="licenced holder not found",
                vessel_not_found=True,
            ))
        return updated

    # ── Snapshot accessors ───────────────────────────────────────────────────

    @property
    def vessels(self) -> tuple[VesselRecord, ...]:
        return self._vessels.vessels

    @property
    def vessel_index(self) -> VesselLicenceIndex:
        return self._vessels.index

    @property
    def exporter_behaviour(self) -> tuple[ExporterBehaviour, ...]:
        return self._exporter_behaviour

    @property
    def vessels_of_interest(self) -> tuple[VesselOfInterest, ...]:
        return self._vessels_of_interest.vessels

    @property
    def weighting(self) -> RiskWeighting:
        return self._weighting

    @property
    def species_toggle(self) -> SpeciesRiskToggle:
        return self._species_toggle

    @property
    def eod_settings(self) -> tuple[EodSetting, ...]:
        return self._eod_settings

    def is_vessel_of_interest(self, pln: str) -> bool:
        return pln in self._vessels_of_interest.plns

    def eod_setting(self, da: str) -> Optional[EodSetting]:
        for setting in self._eod_settings:
            if setting.da == da:
                return setting
        return None

    def species_aliases(self, species_code: str) -> list[str]:
        return list(self._species_aliases.get(species_code, ()))

    def vessel_details(self, rss_number: str) -> Optional[dict[str, Any]]:
        for vessel in self._vessels.vessels:
            if vessel.rss_number == rss_number:
                logger.info("Vessel details found for RSS %s", rss_number)
                return {
                    "vesselLength": vessel.vessel_length,
                    "cfr": vessel.cfr,
                    "adminPort": vessel.admin_port,
                    "flag": vessel.flag,
                }
        logger.info("Vessel details not found for RSS %s", rss_number)
        return None

    # ── Conversion factors ───────────────────────────────────────────────────

    def all_conversion_factors(self) -> tuple[ConversionFactor, ...]:
        return self._conversion_factors

    def conversion_factor(self, species: str, state: Optional[str], presentation: Optional[str]) -> Optional[ConversionFactor]:
        for factor in self._conversion_factors:
            if factor.species == species and factor.state == state and factor.presentation == presentation:
                return factor
        return None

    def _first_factor_for_species(self, species: str) -> Optional[ConversionFactor]:
        for factor in self._conversion_factors:
            if factor.species == species:
                return factor
        return None

    def species_risk_score(self, species: str) -> float:
        factor = self._first_factor_for_species(species)
        if factor is None or factor.risk_score is None:
            return DEFAULT_SPECIES_RISK_SCORE
        return factor.risk_score

    def to_live_weight_factor(self, species: str, state: Optional[str], presentation: Optional[str]) -> float:
        # A zero factor is treated as missing data, not as a real multiplier.
        factor = self.conversion_factor(species, state, presentation)
        if factor is None or not factor.to_live_weight_factor:
            return DEFAULT_TO_LIVE_WEIGHT_FACTOR
        return factor.to_live_weight_factor

    def is_quota_species(self, species: str) -> bool:
        factor = self._first_factor_for_species(species)
        return factor is not None and factor.quota_status == QuotaStatus.QUOTA.value

    def category_counts(self) -> dict[str, int]:
        return {
            "vessels": len(self._vessels.vessels),
            "conversion_factors": len(self._conversion_factors),
            "exporter_behaviour": len(self._exporter_behaviour),
            "vessels_of_interest": len(self._vessels_of_interest.vessels),
            "eod_settings": len(self._eod_settings),
            "species_aliases": len(self._species_aliases),
        }
