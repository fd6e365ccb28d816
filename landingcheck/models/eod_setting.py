"""EodSetting entity — per-DA evidence-of-date configuration, rules and audit trail."""
from __future__ import annotations

from sqlalchemy import Integer, String, JSON
from sqlalchemy.orm import Mapped, mapped_column
from landingcheck.models.base import Base


class EodSettingRow(Base):
    __tablename__ = "eod_settings"

    eod_setting_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    da: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    # Document-shaped columns, camelCase keys as exchanged with the admin front end
    vessel_sizes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    audit: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
