"""Whether a landing declaration is legally due for a catch.

Under-10m vessels:
  England / Isle of Man  due for quota species, otherwise once the export
                         application is more than one day after landing
  Wales                  due once the application is more than one day after landing
  elsewhere              never due
Over-12m vessels: due when the certificate weight exceeds the 50kg tolerance.
10-12m vessels: never due.

The result feeds ``EvidenceOfDateEngine.is_landing_data_available``.
``annotate_legally_due`` applies the rule to every catch on a certificate.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional

from landingcheck.models.base import DevolvedAuthority
from landingcheck.modules.landing_query import CatchCertificate
from landingcheck.modules.reference_cache import ReferenceDataCache
from landingcheck.modules.reference_types import finite_or_none
from landingcheck.modules.vessel_index import devolved_authority
from landingcheck.utils.dates import to_utc_datetime

logger = logging.getLogger(__name__)

TOLERANCE_IN_KG = 50


def _days_between(later: str | date | datetime, earlier: str | date | datetime) -> int:
    # Whole days, truncated toward zero.
    return int((to_utc_datetime(later) - to_utc_datetime(earlier)) / timedelta(days=1))


def is_legally_due(
    vessel_length: Optional[float],
    da: str,
    application_date: str | date | datetime,
    landed_date: str | date | datetime,
    is_quota_species: bool,
    weight_on_cert: float,
) -> bool:
    if vessel_length is not None and vessel_length < 10:
        if da in (DevolvedAuthority.ENGLAND.value, DevolvedAuthority.ISLE_OF_MAN.value):
            return True if is_quota_species else _days_between(application_date, landed_date) > 1
        if da == DevolvedAuthority.WALES.value:
            return _days_between(application_date, landed_date) > 1
        return False
    if vessel_length is not None and vessel_length > 12:
        return weight_on_cert > TOLERANCE_IN_KG
    return False


def _catch_is_legally_due(
    catch: dict[str, Any],
    created_at: datetime,
    quota_species: bool,
    cache: ReferenceDataCache,
) -> bool:
    pln = str(catch.get("pln") or "").strip()
    catch_date = str(catch.get("date") or "")
    rss_number = cache.vessel_index.rss_number(pln, catch_date)
    details = cache.vessel_details(rss_number) if rss_number else None
    if details is None:
        return False
    return is_legally_due(
        details["vesselLength"],
        devolved_authority(details["flag"], details["adminPort"]),
        created_at,
        catch_date,
        quota_species,
        finite_or_none(catch.get("weight")) or 0.0,
    )


def annotate_legally_due(certificate: dict[str, Any], cache: ReferenceDataCache) -> list[dict[str, Any]]:
    """Return the certificate's products with ``isLegallyDue`` set on each catch.

    The vessel is resolved from the PLN licensed on the catch date. A catch
    with no licence or no vessel details is not legally due.

    Raises:
        ValueError: if the certificate lacks ``documentNumber`` or ``createdAt``.
    """
    parsed = CatchCertificate.from_document(certificate)
    products = (certificate.get("exportData") or {}).get("products") or []

    annotated = []
    for product in products:
        quota_species = cache.is_quota_species(str(product.get("speciesCode") or "").strip())
        caught_by = [
            {**catch, "isLegallyDue": _catch_is_legally_due(catch, parsed.created_at, quota_species, cache)}
            for catch in product.get("caughtBy") or []
        ]
        annotated.append({**product, "caughtBy": caught_by})
    logger.info("Legally due check for %s: %d products", parsed.document_number, len(annotated))
    return annotated
