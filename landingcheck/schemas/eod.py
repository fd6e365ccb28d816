"""Pydantic schemas for evidence-of-date administration."""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field

from landingcheck.models.base import EodRuleType, VesselSizeGroup


class EodRuleIn(BaseModel):
    ruleType: EodRuleType
    vesselSize: VesselSizeGroup
    numberOfDays: int = Field(..., ge=0)
    changedFrom: Optional[str] = None
    changedTo: Optional[str] = None


class EodRulesAddRequest(BaseModel):
    """Either ``vesselSizes`` (replace the DA's sizes) or ``rule`` (upsert one rule)."""
    da: Optional[str] = None
    user: str = Field(default="unknown")
    vesselSizes: Optional[list[VesselSizeGroup]] = None
    rule: Optional[EodRuleIn] = None


class EodRuleRead(BaseModel):
    ruleType: str
    vesselSize: str
    numberOfDays: int


class EodSettingRead(BaseModel):
    da: str
    vesselSizes: list[str]
    rules: list[EodRuleRead]


class EodAuditRead(BaseModel):
    date: str
    time: str
    user: str
    rule: str
    da: str
    vesselSizes: Optional[str] = None
    changedFrom: Optional[str] = None
    changedTo: Optional[str] = None


class LandingDataRead(BaseModel):
    """Evidence-of-date view of one PLN landing on one day."""
    pln: str
    rssNumber: str
    da: str
    dataEverExpected: bool
    expectedDate: str
    endDate: str
    isLandingDataAvailable: bool
