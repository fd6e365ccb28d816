"""Reference data refresh — repopulate the cache from files and the database.

  refresh_reference_data  vessels (+ "not found" sentinel), conversion factors,
                          exporter behaviour, species aliases
  refresh_risking_data    seeds then reads vessels of interest, weighting and
                          the species toggle
  load_eod_settings       EOD settings from the repository; optionally seeds
                          default rules first (EOD_RULES_MIGRATION)
  refresh_all             all of the above

Loader failures raise ``ReferenceLoadError`` before the cache is touched, so a
broken file leaves the previous snapshot of that category in place. Callers
must not run two refreshes against the same cache concurrently.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from landingcheck.config import settings
from landingcheck.modules import reference_loader, risking_store
from landingcheck.modules.eod_repository import SqlEodRepository
from landingcheck.modules.eod_rules import EvidenceOfDateEngine
from landingcheck.modules.reference_cache import ReferenceDataCache

logger = logging.getLogger(__name__)


def _data_path(data_dir: Optional[str], name: str) -> Path:
    return Path(data_dir or settings.DATA_DIR) / name


def load_vessels(cache: ReferenceDataCache, data_dir: Optional[str] = None) -> int:
    vessels = reference_loader.load_vessels(_data_path(data_dir, reference_loader.VESSELS_FILE))
    cache.update(vessels=cache.add_vessel_not_found(vessels))
    return len(cache.vessels)


def refresh_reference_data(cache: ReferenceDataCache, data_dir: Optional[str] = None) -> dict[str, int]:
    before = cache.category_counts()
    logger.info("Refreshing reference data (before: %s)", before)

    conversion_factors = reference_loader.load_conversion_factors(
        _data_path(data_dir, reference_loader.CONVERSION_FACTORS_FILE)
    )
    exporter_behaviour = reference_loader.load_exporter_behaviour(
        _data_path(data_dir, reference_loader.EXPORTER_BEHAVIOUR_FILE)
    )
    species_aliases = reference_loader.load_species_aliases(
        _data_path(data_dir, reference_loader.SPECIES_ALIASES_FILE)
    )
    load_vessels(cache, data_dir)
    cache.update(
        conversion_factors=conversion_factors,
        exporter_behaviour=exporter_behaviour,
        species_aliases=species_aliases,
    )

    after = cache.category_counts()
    logger.info("Reference data refreshed (after: %s)", after)
    return after


def refresh_risking_data(
    cache: ReferenceDataCache,
    db: Session,
    data_dir: Optional[str] = None,
    weighting_config: Optional[str] = None,
) -> None:
    """Seed empty risking tables from the local files, then cache what is stored."""
    voi_path = _data_path(data_dir, reference_loader.VESSELS_OF_INTEREST_FILE)
    if voi_path.exists():
        risking_store.seed_vessels_of_interest(db, reference_loader.load_vessels_of_interest(voi_path))
    else:
        logger.warning("Vessels of interest seed not found at %s", voi_path)

    weighting_path = Path(weighting_config or settings.RISK_WEIGHTING_CONFIG)
    if weighting_path.exists():
        weighting, toggle = reference_loader.load_risk_weighting(weighting_path)
        risking_store.seed_weighting(db, weighting)
        risking_store.seed_species_toggle(db, toggle)
    else:
        logger.warning("Risk weighting seed not found at %s", weighting_path)

    weighting = risking_store.get_weighting(db)
    cache.update(
        vessels_of_interest=risking_store.get_vessels_of_interest(db),
        weighting=weighting,
        species_toggle=risking_store.get_species_toggle(db),
    )
    logger.info(
        "Risking data refreshed: %d vessels of interest, weighting=%s, enabled=%s",
        len(cache.vessels_of_interest), cache.weighting, cache.species_toggle.enabled,
    )


def load_eod_settings(cache: ReferenceDataCache, db: Session, migrate: Optional[bool] = None) -> int:
    repository = SqlEodRepository(db)
    if settings.EOD_RULES_MIGRATION if migrate is None else migrate:
        EvidenceOfDateEngine(cache, repository).seed_eod_rules()
    eod_settings = repository.list_settings()
    cache.update(eod_settings=eod_settings)
    logger.info("Loaded EOD settings for %d DAs", len(eod_settings))
    return len(eod_settings)


def refresh_all(
    cache: ReferenceDataCache,
    db: Session,
    data_dir: Optional[str] = None,
    weighting_config: Optional[str] = None,
) -> dict[str, int]:
    refresh_reference_data(cache, data_dir)
    refresh_risking_data(cache, db, data_dir, weighting_config)
    load_eod_settings(cache, db)
    return cache.category_counts()
