from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from landingcheck.database import get_db
from landingcheck.models.base import EodRuleType
from landingcheck.modules import risking_store
from landingcheck.modules.eod_repository import SqlEodRepository
from landingcheck.modules.eod_rules import EvidenceOfDateEngine
from landingcheck.modules.landing_query import Landing, LandingReconciliationQuery
from landingcheck.modules.legally_due import annotate_legally_due
from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import EodRule, VesselOfInterest
from landingcheck.modules.refresh import refresh_all
from landingcheck.modules.risk_scoring import RiskScoringEngine
from landingcheck.modules.vessel_index import plns_for_landings
from landingcheck.schemas.eod import EodAuditRead, EodRulesAddRequest, EodSettingRead, LandingDataRead
from landingcheck.schemas.landing import (
    InvestigationCandidateRead,
    InvestigationRequest,
    LegallyDueRead,
    LegallyDueRequest,
    LicenceRead,
    PlnForLandingRead,
    PlnLookupRequest,
)
from landingcheck.schemas.risking import (
    RiskScoreRead,
    SpeciesToggle,
    ThresholdUpdate,
    VesselOfInterestIn,
    WeightingRead,
    WeightingUpdate,
)
from landingcheck.utils.dates import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


def get_cache(request: Request) -> ReferenceDataCache:
    return request.app.state.cache


def _weighting_read(weighting) -> WeightingRead:
    return WeightingRead(
        vesselWeight=weighting.vessel_weight,
        speciesWeight=weighting.species_weight,
        exporterWeight=weighting.exporter_weight,
        threshold=weighting.threshold,
    )


def _vessel_read(vessel: VesselOfInterest) -> dict:
    return {
        "registrationNumber": vessel.registration_number,
        "fishingVesselName": vessel.fishing_vessel_name,
        "homePort": vessel.home_port,
        "da": vessel.da,
    }


# ---------------------------------------------------------------------------
# Evidence of date
# ---------------------------------------------------------------------------

@router.post("/eod/rules/add", tags=["eod"])
def add_eod_rules(
    body: EodRulesAddRequest,
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    """Replace a DA's vessel sizes or upsert one rule. Body carries exactly one of the two."""
    if not body.da:
        raise HTTPException(status_code=400, detail="da required")

    repository = SqlEodRepository(db)
    rule = None
    if body.rule is not None:
        rule = EodRule(
            rule_type=body.rule.ruleType,
            vessel_size=body.rule.vesselSize,
            number_of_days=body.rule.numberOfDays,
            changed_from=body.rule.changedFrom,
            changed_to=body.rule.changedTo,
        )
    EvidenceOfDateEngine(cache, repository).create_eod_rules(
        body.user, body.da, vessel_sizes=body.vesselSizes, rule=rule
    )
    cache.update(eod_settings=repository.list_settings())
    return {"status": "ok"}


@router.get("/eod/rules", tags=["eod"], response_model=list[EodSettingRead])
def list_eod_rules(db: Session = Depends(get_db)):
    return [
        EodSettingRead(
            da=setting.da,
            vesselSizes=[size.value for size in setting.vessel_sizes],
            rules=[rule.to_document(include_changes=False) for rule in setting.rules],
        )
        for setting in SqlEodRepository(db).list_settings()
    ]


@router.get("/eod/audit", tags=["eod"], response_model=list[EodAuditRead])
def list_eod_audit(
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    return EvidenceOfDateEngine(cache, SqlEodRepository(db)).eod_audits()


@router.get("/eod/landing-data", tags=["eod"], response_model=LandingDataRead)
def landing_data(
    pln: str = Query(..., min_length=1),
    landed: date = Query(..., alias="date"),
    isLegallyDue: Optional[bool] = Query(None),
    cache: ReferenceDataCache = Depends(get_cache),
):
    """Expected and end dates for a landing, and whether its data should be available yet."""
    licence = cache.vessel_index.lookup(pln, landed)
    if licence is None:
        raise HTTPException(status_code=404, detail=f"No licence for {pln} on {landed.isoformat()}")

    engine = EvidenceOfDateEngine(cache)
    expected_date = engine.landing_data_rule_date(landed, licence, EodRuleType.EXPECTED_DATE)
    return LandingDataRead(
        pln=pln,
        rssNumber=licence.rss_number,
        da=licence.da,
        dataEverExpected=engine.data_ever_expected(licence),
        expectedDate=expected_date,
        endDate=engine.landing_data_rule_date(landed, licence, EodRuleType.END_DATE, expected_date),
        isLandingDataAvailable=engine.is_landing_data_available(licence, landed, isLegallyDue),
    )


# ---------------------------------------------------------------------------
# Risking settings
# ---------------------------------------------------------------------------

@router.get("/risking/weighting", tags=["risking"], response_model=WeightingRead)
def get_weighting(db: Session = Depends(get_db), cache: ReferenceDataCache = Depends(get_cache)):
    return _weighting_read(risking_store.get_weighting(db) or cache.weighting)


@router.put("/risking/weighting", tags=["risking"], response_model=WeightingRead)
def update_weighting(
    body: WeightingUpdate,
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    weighting = risking_store.set_weighting(db, body.vesselWeight, body.speciesWeight, body.exporterWeight)
    cache.update(weighting=weighting)
    return _weighting_read(weighting)


@router.put("/risking/threshold", tags=["risking"], response_model=WeightingRead)
def update_threshold(
    body: ThresholdUpdate,
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    weighting = risking_store.set_threshold(db, body.threshold)
    cache.update(weighting=weighting)
    return _weighting_read(weighting)


@router.get("/risking/species-toggle", tags=["risking"], response_model=SpeciesToggle)
def get_species_toggle(db: Session = Depends(get_db)):
    return SpeciesToggle(enabled=risking_store.get_species_toggle(db).enabled)


@router.put("/risking/species-toggle", tags=["risking"], response_model=SpeciesToggle)
def update_species_toggle(
    body: SpeciesToggle,
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    toggle = risking_store.set_species_toggle(db, body.enabled)
    cache.update(species_toggle=toggle)
    return SpeciesToggle(enabled=toggle.enabled)


@router.get("/risking/vessels-of-interest", tags=["risking"])
def list_vessels_of_interest(
    search: Optional[str] = Query(None, description="Substring of PLN or vessel name"),
    db: Session = Depends(get_db),
):
    if search:
        vessels = risking_store.filter_vessels_of_interest(db, search)
    else:
        vessels = risking_store.get_vessels_of_interest(db)
    return [_vessel_read(v) for v in vessels]


@router.post("/risking/vessels-of-interest", tags=["risking"], status_code=201)
def add_vessel_of_interest(
    body: VesselOfInterestIn,
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    vessel = risking_store.create_vessel_of_interest(db, VesselOfInterest(
        registration_number=body.registrationNumber.strip(),
        fishing_vessel_name=body.fishingVesselName,
        home_port=body.homePort,
        da=body.da,
    ))
    cache.update(vessels_of_interest=risking_store.get_vessels_of_interest(db))
    return _vessel_read(vessel)


@router.delete("/risking/vessels-of-interest", tags=["risking"])
def remove_vessel_of_interest(
    pln: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    if not risking_store.delete_vessel_of_interest(db, pln):
        raise HTTPException(status_code=404, detail="Vessel of interest not found")
    cache.update(vessels_of_interest=risking_store.get_vessels_of_interest(db))
    return {"status": "ok"}


@router.get("/risking/score", tags=["risking"], response_model=RiskScoreRead)
def risk_score(
    pln: str = Query(...),
    species: str = Query(...),
    accountId: Optional[str] = Query(None),
    contactId: Optional[str] = Query(None),
    cache: ReferenceDataCache = Depends(get_cache),
):
    return RiskScoringEngine(cache).risk_breakdown(pln, species, accountId, contactId)


# ---------------------------------------------------------------------------
# Vessels and landings
# ---------------------------------------------------------------------------

@router.get("/vessels/{pln}/licence", tags=["vessels"], response_model=LicenceRead)
def vessel_licence(
    pln: str,
    on: date = Query(..., alias="date"),
    cache: ReferenceDataCache = Depends(get_cache),
):
    licence = cache.vessel_index.lookup(pln, on)
    if licence is None:
        raise HTTPException(status_code=404, detail=f"No licence for {pln} on {on.isoformat()}")
    return LicenceRead(
        pln=pln,
        rssNumber=licence.rss_number,
        da=licence.da,
        vesselLength=licence.vessel_length,
        homePort=licence.home_port,
        flag=licence.flag,
        imo=licence.imo,
        licenceNumber=licence.licence_number,
        licenceHolder=licence.licence_holder,
        licenceValidTo=licence.valid_to,
        vesselNotFound=licence.vessel_not_found,
    )


@router.post(
    "/landings/investigation",
    tags=["landings"],
    response_model=list[InvestigationCandidateRead],
)
def landing_investigation(
    body: InvestigationRequest,
    cache: ReferenceDataCache = Depends(get_cache),
):
    """(RSS number, landing date) pairs whose landings should be re-fetched."""
    query = LandingReconciliationQuery(cache)
    candidates = query.missing_landing_investigation_refresh_query(
        body.certificates,
        body.landings,
        cache.vessel_index,
        body.queryTime or utc_now(),
    )
    return [InvestigationCandidateRead(rssNumber=c.rss_number, dateLanded=c.date_landed) for c in candidates]


@router.post("/landings/legally-due", tags=["landings"], response_model=LegallyDueRead)
def legally_due(
    body: LegallyDueRequest,
    cache: ReferenceDataCache = Depends(get_cache),
):
    """Mark each catch on a certificate with whether its landing declaration is legally due."""
    products = annotate_legally_due(body.model_dump(), cache)
    if not products:
        raise HTTPException(status_code=404, detail=f"No products on {body.documentNumber}")
    return LegallyDueRead(documentNumber=body.documentNumber, products=products)


@router.post("/landings/plns", tags=["landings"], response_model=list[PlnForLandingRead])
def landing_plns(
    body: PlnLookupRequest,
    cache: ReferenceDataCache = Depends(get_cache),
):
    """PLNs licensed to each landing's RSS number on the landing day."""
    landings = [Landing.from_document(doc) for doc in body.landings]
    return plns_for_landings(cache.vessels, landings)


@router.post("/reference-data/refresh", tags=["admin"])
def refresh_reference_data(
    db: Session = Depends(get_db),
    cache: ReferenceDataCache = Depends(get_cache),
):
    counts = refresh_all(cache, db)
    logger.info("Reference data refreshed via API: %s", counts)
    return {"status": "ok", "counts": counts}
