"""Reference data loaders — read local files into typed reference records.

Supported sources (paths resolved against ``settings.DATA_DIR`` by refresh):

  vessels.json              JSON array of vessel documents (camelCase keys)
  conversion_factors.csv    species,state,presentation,toLiveWeightFactor,quotaStatus,riskScore
  exporter_behaviour.csv    accountId,contactId,name,score
  species_aliases.json      [{"speciesCode": ..., "speciesAlias": [...]}] or {"COD": [...]}
  vessels_of_interest.csv   registrationNumber,fishingVesselName,homePort,da
  risk_weighting.yaml       weighting + species toggle seed values

Any unreadable or malformed file raises ``ReferenceLoadError`` naming the
category; loaders never return partial data for a broken file.
"""
from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from landingcheck.modules.reference_types import (
    ConversionFactor,
    ExporterBehaviour,
    RiskWeighting,
    SpeciesRiskToggle,
    VesselOfInterest,
    VesselRecord,
    finite_or_none,
)

logger = logging.getLogger(__name__)

VESSELS_FILE = "vessels.json"
CONVERSION_FACTORS_FILE = "conversion_factors.csv"
EXPORTER_BEHAVIOUR_FILE = "exporter_behaviour.csv"
SPECIES_ALIASES_FILE = "species_aliases.json"
VESSELS_OF_INTEREST_FILE = "vessels_of_interest.csv"


class ReferenceLoadError(Exception):
    """A reference data source could not be read or parsed."""

    def __init__(self, category: str, cause: str):
        self.category = category
        self.cause = cause
        super().__init__(f"Failed to load {category}: {cause}")


def _read_json(path: str | Path, category: str) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ReferenceLoadError(category, str(exc)) from exc


def _read_csv(path: str | Path, category: str, required: tuple[str, ...]) -> list[dict[str, str]]:
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            missing = [c for c in required if c not in (reader.fieldnames or [])]
            if missing:
                raise ReferenceLoadError(category, f"missing columns: {', '.join(missing)}")
            return list(reader)
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise ReferenceLoadError(category, str(exc)) from exc


def load_vessels(path: str | Path) -> list[VesselRecord]:
    data = _read_json(path, "vessels")
    if not isinstance(data, list):
        raise ReferenceLoadError("vessels", "expected a JSON array")
    vessels = []
    for doc in data:
        if not isinstance(doc, dict):
            raise ReferenceLoadError("vessels", f"expected an object, got {type(doc).__name__}")
        vessels.append(VesselRecord.from_document(doc))
    logger.info("Loaded %d vessels from %s", len(vessels), path)
    return vessels


def load_conversion_factors(path: str | Path) -> list[ConversionFactor]:
    rows = _read_csv(path, "conversion factors", ("species", "state", "presentation"))
    factors = [ConversionFactor.from_row(row) for row in rows if (row.get("species") or "").strip()]
    logger.info("Loaded %d conversion factors from %s", len(factors), path)
    return factors


def load_exporter_behaviour(path: str | Path) -> list[ExporterBehaviour]:
    rows = _read_csv(path, "exporter behaviour", ("accountId", "contactId", "score"))
    behaviour = [ExporterBehaviour.from_row(row) for row in rows]
    logger.info("Loaded %d exporter behaviour rows from %s", len(behaviour), path)
    return behaviour


def load_species_aliases(path: str | Path) -> dict[str, list[str]]:
    """Accept the list-of-documents export or a plain code→aliases mapping."""
    data = _read_json(path, "species aliases")
    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, list):
        try:
            items = [(doc["speciesCode"], doc.get("speciesAlias") or []) for doc in data]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ReferenceLoadError("species aliases", f"malformed entry: {exc}") from exc
    else:
        raise ReferenceLoadError("species aliases", "expected a JSON array or object")

    aliases: dict[str, list[str]] = {}
    for code, codes in items:
        if not isinstance(codes, list):
            raise ReferenceLoadError("species aliases", f"aliases for {code} must be a list")
        aliases[str(code)] = [str(c) for c in codes]
    logger.info("Loaded aliases for %d species from %s", len(aliases), path)
    return aliases


def load_vessels_of_interest(path: str | Path) -> list[VesselOfInterest]:
    rows = _read_csv(path, "vessels of interest", ("registrationNumber",))
    vessels = [
        VesselOfInterest(
            registration_number=row["registrationNumber"].strip(),
            fishing_vessel_name=(row.get("fishingVesselName") or "").strip(),
            home_port=(row.get("homePort") or "").strip(),
            da=(row.get("da") or "").strip(),
        )
        for row in rows
        if (row.get("registrationNumber") or "").strip()
    ]
    logger.info("Loaded %d vessels of interest from %s", len(vessels), path)
    return vessels


def load_risk_weighting(path: str | Path) -> tuple[RiskWeighting, SpeciesRiskToggle]:
    """Read the weighting seed YAML.

    Expected layout::

        weighting:
          vessel_weight: 1.0
          species_weight: 1.0
          exporter_weight: 1.0
          threshold: 1.0
        species_toggle:
          enabled: true
    """
    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ReferenceLoadError("risk weighting", str(exc)) from exc
    if not isinstance(config, dict):
        raise ReferenceLoadError("risk weighting", "expected a mapping at the top level")

    section = config.get("weighting") or {}
    values = {}
    for key in ("vessel_weight", "species_weight", "exporter_weight", "threshold"):
        value = finite_or_none(section.get(key))
        if value is None:
            raise ReferenceLoadError("risk weighting", f"weighting.{key} must be a number")
        values[key] = value

    toggle = config.get("species_toggle") or {}
    return RiskWeighting(**values), SpeciesRiskToggle(enabled=bool(toggle.get("enabled", True)))
