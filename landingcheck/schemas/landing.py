"""Pydantic schemas for licence lookups and landing investigation."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class LicenceRead(BaseModel):
    pln: str
    rssNumber: str
    da: str
    vesselLength: Optional[float] = None
    homePort: Optional[str] = None
    flag: Optional[str] = None
    imo: Optional[str] = None
    licenceNumber: Optional[str] = None
    licenceHolder: Optional[str] = None
    licenceValidTo: datetime
    vesselNotFound: bool = False


class InvestigationRequest(BaseModel):
    """Raw certificate and landing documents, as stored upstream."""
    certificates: list[dict[str, Any]] = Field(default_factory=list)
    landings: list[dict[str, Any]] = Field(default_factory=list)
    queryTime: Optional[datetime] = None


class InvestigationCandidateRead(BaseModel):
    rssNumber: str
    dateLanded: str


class LegallyDueRequest(BaseModel):
    """A catch certificate document; only ``exportData.products`` is annotated."""
    documentNumber: str
    createdAt: str
    exportData: dict[str, Any] = Field(default_factory=dict)


class LegallyDueRead(BaseModel):
    documentNumber: str
    products: list[dict[str, Any]]


class PlnLookupRequest(BaseModel):
    landings: list[dict[str, Any]] = Field(default_factory=list)


class PlnForLandingRead(BaseModel):
    rssNumber: str
    dateLanded: str
    pln: str
