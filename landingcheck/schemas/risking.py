"""Pydantic schemas for risking settings and score breakdowns."""
from __future__ import annotations
from pydantic import BaseModel, Field


class WeightingUpdate(BaseModel):
    vesselWeight: float = Field(..., ge=0)
    speciesWeight: float = Field(..., ge=0)
    exporterWeight: float = Field(..., ge=0)


class ThresholdUpdate(BaseModel):
    threshold: float = Field(..., ge=0)


class WeightingRead(BaseModel):
    vesselWeight: float
    speciesWeight: float
    exporterWeight: float
    threshold: float


class SpeciesToggle(BaseModel):
    enabled: bool


class VesselOfInterestIn(BaseModel):
    registrationNumber: str = Field(..., min_length=1)
    fishingVesselName: str
    homePort: str
    da: str


class RiskScoreRead(BaseModel):
    vesselScore: float
    speciesScore: float
    exporterScore: float
    totalScore: float
    threshold: float
    isHighRisk: bool
    isRiskEnabled: bool
