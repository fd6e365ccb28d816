"""Risk scoring engine.

Produces the composite risk score for an exported catch:

  total = (vessel_score × vessel_weight)
        × (species_score × species_weight)
        × (exporter_score × exporter_weight)

A total strictly above the configured threshold is high risk. Sub-scores:

  vessel    1.0 for a vessel of interest, else 0.5
  species   conversion-factor riskScore for the species, else 0.5
  exporter  exporter-behaviour score via ordered fallback tiers, else 1.0

All inputs come from the current reference-data snapshot; nothing here does I/O.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import ExporterBehaviour

logger = logging.getLogger(__name__)

VESSEL_OF_INTEREST_SCORE = 1.0
DEFAULT_VESSEL_SCORE = 0.5
DEFAULT_EXPORTER_SCORE = 1.0

ExporterMatcher = Callable[[ExporterBehaviour], bool]


def calc_risk_score(score: float, weighting: float) -> float:
    return score * weighting


def _exact_match(account_id: str, contact_id: Optional[str]) -> ExporterMatcher:
    return lambda row: row.account_id == account_id and row.contact_id == contact_id


def _contact_only(contact_id: Optional[str]) -> ExporterMatcher:
    return lambda row: contact_id is not None and row.contact_id == contact_id and not row.account_id


def _account_only(account_id: str) -> ExporterMatcher:
    return lambda row: row.account_id == account_id and not row.contact_id


def exporter_matchers(account_id: Optional[str], contact_id: Optional[str]) -> list[ExporterMatcher]:
    """Return the fallback tiers for an exporter, most specific first."""
    if not account_id:
        return [_contact_only(contact_id)]
    return [
        _exact_match(account_id, contact_id),
        _contact_only(contact_id),
        _account_only(account_id),
    ]


class RiskScoringEngine:
    def __init__(self, cache: ReferenceDataCache):
        self.cache = cache

    def vessel_risk_score(self, pln: str) -> float:
        if self.cache.is_vessel_of_interest(pln):
            return VESSEL_OF_INTEREST_SCORE
        return DEFAULT_VESSEL_SCORE

    def species_risk_score(self, species: str) -> float:
        return self.cache.species_risk_score(species)

    def exporter_risk_score(self, account_id: Optional[str] = None, contact_id: Optional[str] = None) -> float:
        rows = self.cache.exporter_behaviour
        if (not account_id and not contact_id) or not rows:
            return DEFAULT_EXPORTER_SCORE
        for matches in exporter_matchers(account_id, contact_id):
            # Only the first matching row in a tier counts; a blank score falls to the next tier.
            row = next((r for r in rows if matches(r)), None)
            if row is not None and row.score is not None:
                return row.score
        return DEFAULT_EXPORTER_SCORE

    def weighted_vessel_score(self, pln: str) -> float:
        return calc_risk_score(self.vessel_risk_score(pln), self.cache.weighting.vessel_weight)

    def weighted_species_score(self, species: str) -> float:
        return calc_risk_score(self.species_risk_score(species), self.cache.weighting.species_weight)

    def weighted_exporter_score(self, account_id: Optional[str], contact_id: Optional[str]) -> float:
        return calc_risk_score(
            self.exporter_risk_score(account_id, contact_id), self.cache.weighting.exporter_weight
        )

    def total_risk_score(
        self,
        pln: str,
        species: str,
        account_id: Optional[str] = None,
        contact_id: Optional[str] = None,
    ) -> float:
        return (
            self.weighted_vessel_score(pln)
            * self.weighted_species_score(species)
            * self.weighted_exporter_score(account_id, contact_id)
        )

    def is_high_risk(self, score: float) -> bool:
        return score > self.cache.weighting.threshold

    def is_risk_enabled(self) -> bool:
        return self.cache.species_toggle.enabled

    def risk_breakdown(
        self,
        pln: str,
        species: str,
        account_id: Optional[str] = None,
        contact_id: Optional[str] = None,
    ) -> dict:
        """Weighted components, total and verdict for one vessel/species/exporter."""
        vessel = self.weighted_vessel_score(pln)
        species_score = self.weighted_species_score(species)
        exporter = self.weighted_exporter_score(account_id, contact_id)
        total = vessel * species_score * exporter
        high_risk = self.is_high_risk(total)
        logger.debug(
            "Risk for pln=%s species=%s: vessel=%s species=%s exporter=%s total=%s high=%s",
            pln, species, vessel, species_score, exporter, total, high_risk,
        )
        return {
            "vesselScore": vessel,
            "speciesScore": species_score,
            "exporterScore": exporter,
            "totalScore": total,
            "threshold": self.cache.weighting.threshold,
            "isHighRisk": high_risk,
            "isRiskEnabled": self.is_risk_enabled(),
        }
