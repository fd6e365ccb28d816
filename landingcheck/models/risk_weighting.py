"""RiskWeighting and SpeciesRiskToggle entities — single-row risking settings."""
from __future__ import annotations

from sqlalchemy import Integer, Float, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from landingcheck.models.base import Base


class RiskWeightingRow(Base):
    __tablename__ = "risk_weightings"

    risk_weighting_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_weight: Mapped[float] = mapped_column(Float, nullable=False)
    species_weight: Mapped[float] = mapped_column(Float, nullable=False)
    exporter_weight: Mapped[float] = mapped_column(Float, nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)


class SpeciesRiskToggleRow(Base):
    __tablename__ = "species_risk_toggles"

    species_risk_toggle_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
