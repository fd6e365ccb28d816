"""Import all models to register them with SQLAlchemy metadata."""
from landingcheck.models.base import Base
from landingcheck.models.eod_setting import EodSettingRow
from landingcheck.models.vessel_of_interest import VesselOfInterestRow
from landingcheck.models.risk_weighting import RiskWeightingRow, SpeciesRiskToggleRow

__all__ = [
    "Base",
    "EodSettingRow",
    "VesselOfInterestRow",
    "RiskWeightingRow",
    "SpeciesRiskToggleRow",
]
