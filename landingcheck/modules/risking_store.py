"""Risking settings persistence — vessels of interest, weighting, species toggle.

Weighting and the species toggle are single-row tables. Seeding only writes
when the table is empty, so analyst edits survive a restart. Reads return the
typed records the cache holds.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from landingcheck.models.risk_weighting import RiskWeightingRow, SpeciesRiskToggleRow
from landingcheck.models.vessel_of_interest import VesselOfInterestRow
from landingcheck.modules.reference_types import RiskWeighting, SpeciesRiskToggle, VesselOfInterest

logger = logging.getLogger(__name__)


def _to_vessel(row: VesselOfInterestRow) -> VesselOfInterest:
    return VesselOfInterest(
        registration_number=row.registration_number,
        fishing_vessel_name=row.fishing_vessel_name,
        home_port=row.home_port,
        da=row.da,
    )


def _to_weighting(row: RiskWeightingRow) -> RiskWeighting:
    return RiskWeighting(
        vessel_weight=row.vessel_weight,
        species_weight=row.species_weight,
        exporter_weight=row.exporter_weight,
        threshold=row.threshold,
    )


# ── Vessels of interest ──────────────────────────────────────────────────────

def seed_vessels_of_interest(db: Session, vessels: Iterable[VesselOfInterest]) -> int:
    if db.query(VesselOfInterestRow).first() is not None:
        return 0
    count = 0
    for vessel in vessels:
        db.add(VesselOfInterestRow(
            registration_number=vessel.registration_number,
            fishing_vessel_name=vessel.fishing_vessel_name,
            home_port=vessel.home_port,
            da=vessel.da,
        ))
        count += 1
    db.commit()
    logger.info("Seeded %d vessels of interest", count)
    return count


def get_vessels_of_interest(db: Session) -> list[VesselOfInterest]:
    rows = db.query(VesselOfInterestRow).order_by(VesselOfInterestRow.registration_number).all()
    return [_to_vessel(row) for row in rows]


def filter_vessels_of_interest(db: Session, search: str) -> list[VesselOfInterest]:
    """Case-insensitive substring match on PLN or vessel name."""
    pattern = f"%{search.strip()}%"
    rows = (
        db.query(VesselOfInterestRow)
        .filter(or_(
            VesselOfInterestRow.registration_number.ilike(pattern),
            VesselOfInterestRow.fishing_vessel_name.ilike(pattern),
        ))
        .order_by(VesselOfInterestRow.registration_number)
        .all()
    )
    return [_to_vessel(row) for row in rows]


def create_vessel_of_interest(db: Session, vessel: VesselOfInterest) -> VesselOfInterest:
    existing = (
        db.query(VesselOfInterestRow)
        .filter(VesselOfInterestRow.registration_number == vessel.registration_number)
        .first()
    )
    if existing is not None:
        raise ValueError(f"Vessel {vessel.registration_number} is already a vessel of interest")
    db.add(VesselOfInterestRow(
        registration_number=vessel.registration_number,
        fishing_vessel_name=vessel.fishing_vessel_name,
        home_port=vessel.home_port,
        da=vessel.da,
    ))
    db.commit()
    logger.info("Vessel of interest added: %s", vessel.registration_number)
    return vessel


def delete_vessel_of_interest(db: Session, registration_number: str) -> bool:
    deleted = (
        db.query(VesselOfInterestRow)
        .filter(VesselOfInterestRow.registration_number == registration_number)
        .delete()
    )
    db.commit()
    if deleted:
        logger.info("Vessel of interest removed: %s", registration_number)
    return bool(deleted)


# ── Weighting ────────────────────────────────────────────────────────────────

def seed_weighting(db: Session, weighting: RiskWeighting) -> bool:
    if db.query(RiskWeightingRow).first() is not None:
        return False
    db.add(RiskWeightingRow(
        vessel_weight=weighting.vessel_weight,
        species_weight=weighting.species_weight,
        exporter_weight=weighting.exporter_weight,
        threshold=weighting.threshold,
    ))
    db.commit()
    logger.info("Seeded risk weighting: %s", weighting)
    return True


def get_weighting(db: Session) -> Optional[RiskWeighting]:
    row = db.query(RiskWeightingRow).first()
    return _to_weighting(row) if row is not None else None


def _weighting_row(db: Session) -> RiskWeightingRow:
    row = db.query(RiskWeightingRow).first()
    if row is None:
        row = RiskWeightingRow(vessel_weight=0.0, species_weight=0.0, exporter_weight=0.0, threshold=0.0)
        db.add(row)
    return row


def set_weighting(
    db: Session, vessel_weight: float, species_weight: float, exporter_weight: float
) -> RiskWeighting:
    row = _weighting_row(db)
    row.vessel_weight = vessel_weight
    row.species_weight = species_weight
    row.exporter_weight = exporter_weight
    db.commit()
    logger.info(
        "Risk weighting updated: vessel=%s species=%s exporter=%s",
        vessel_weight, species_weight, exporter_weight,
    )
    return _to_weighting(row)


def set_threshold(db: Session, threshold: float) -> RiskWeighting:
    row = _weighting_row(db)
    row.threshold = threshold
    db.commit()
    logger.info("Risk threshold updated: %s", threshold)
    return _to_weighting(row)


# ── Species toggle ───────────────────────────────────────────────────────────

def seed_species_toggle(db: Session, toggle: SpeciesRiskToggle) -> bool:
    if db.query(SpeciesRiskToggleRow).first() is not None:
        return False
    db.add(SpeciesRiskToggleRow(enabled=toggle.enabled))
    db.commit()
    return True


def get_species_toggle(db: Session) -> SpeciesRiskToggle:
    """Risking is enabled unless an analyst has switched it off."""
    row = db.query(SpeciesRiskToggleRow).first()
    return SpeciesRiskToggle(enabled=row.enabled if row is not None else True)


def set_species_toggle(db: Session, enabled: bool) -> SpeciesRiskToggle:
    row = db.query(SpeciesRiskToggleRow).first()
    if row is None:
        row = SpeciesRiskToggleRow(enabled=enabled)
        db.add(row)
    row.enabled = enabled
    db.commit()
    logger.info("Species risk toggle set to %s", enabled)
    return SpeciesRiskToggle(enabled=enabled)
