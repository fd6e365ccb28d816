"""VesselOfInterest entity — vessels flagged by analysts for elevated risk."""
from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from landingcheck.models.base import Base


class VesselOfInterestRow(Base):
    __tablename__ = "vessels_of_interest"

    vessel_of_interest_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    registration_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    fishing_vessel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    home_port: Mapped[str] = mapped_column(String(255), nullable=False)
    da: Mapped[str] = mapped_column(String(50), nullable=False)
