"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class VesselSizeGroup(str, enum.Enum):
    UNDER_10M = "Under 10m"
    TEN_TO_TWELVE_M = "10-12m"
    OVER_12M = "12m+"


class EodRuleType(str, enum.Enum):
    EXPECTED_DATE = "expectedDate"
    END_DATE = "endDate"
    # Audit-only label for vessel-size changes (no rule attached)
    DATA_EVER_EXPECTED = "dataEverExpected"


class DevolvedAuthority(str, enum.Enum):
    ENGLAND = "England"
    WALES = "Wales"
    SCOTLAND = "Scotland"
    NORTHERN_IRELAND = "Northern Ireland"
    ISLE_OF_MAN = "Isle of Man"
    GUERNSEY = "Guernsey"
    JERSEY = "Jersey"


class QuotaStatus(str, enum.Enum):
    QUOTA = "quota"
    NON_QUOTA = "nonquota"
