"""Shared test fixtures: reference data, in-memory database and API client."""
import os

# Must be set before landingcheck.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REFRESH_ON_STARTUP", "false")
os.environ.pop("LANDINGCHECK_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from landingcheck.database import get_db
from landingcheck.main import app
from landingcheck.api.routes import get_cache
from landingcheck.models import Base
from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import (
    ConversionFactor,
    ExporterBehaviour,
    RiskWeighting,
    SpeciesRiskToggle,
    VesselRecord,
)


def make_vessel(pln="WA1", rss="rssWA1", **overrides) -> VesselRecord:
    fields = dict(
        registration_number=pln,
        rss_number=rss,
        fishing_vessel_name="DARNIELLE",
        flag="GBR",
        home_port="PLYMOUTH",
        admin_port="PLYMOUTH",
        fishing_licence_number="12480",
        fishing_licence_valid_from="2006-06-07T00:00:00",
        fishing_licence_valid_to="2030-12-31T00:00:00",
        vessel_length=6.88,
        licence_holder_name="I am the Licence Holder name for this fishing boat",
    )
    fields.update(overrides)
    return VesselRecord(**fields)


@pytest.fixture
def vessels():
    return [
        make_vessel(),
        make_vessel("BF800", "C20415", admin_port="PETERHEAD", vessel_length=24.5),
        make_vessel("GU20", "G00020", admin_port="GUERNSEY", vessel_length=11.2),
    ]


@pytest.fixture
def cache(vessels):
    """Cache with vessels, one conversion factor per species and unit weighting."""
    c = ReferenceDataCache(vessel_not_found_enabled=False)
    c.update(
        vessels=vessels,
        conversion_factors=[
            ConversionFactor("LBE", "ALI", "WHL", 1.0, "nonquota", 0.6),
            ConversionFactor("COD", "FRE", "GUT", 1.17, "quota", 0.8),
        ],
        exporter_behaviour=[ExporterBehaviour("acc-001", "con-001", "Harbour Exports", 0.9)],
        weighting=RiskWeighting(vessel_weight=1, species_weight=1, exporter_weight=1, threshold=1),
        species_toggle=SpeciesRiskToggle(enabled=True),
        species_aliases={"SQC": ["SQR"]},
    )
    return c


@pytest.fixture
def db():
    """In-memory SQLite session with all tables, shareable across threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def api_client(db, cache):
    """TestClient with the DB session and reference cache overridden."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
