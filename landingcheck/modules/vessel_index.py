"""Vessel licence index — temporal PLN lookup over the vessel snapshot.

A PLN can hold several licences over time, so the vessel list is folded into
``PLN -> [LicencePeriod, ...]`` once per vessel refresh. Lookups pick the first
period whose validity window covers the requested calendar day.

The index is never mutated after construction; a refresh builds a new one.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from landingcheck.models.base import DevolvedAuthority
from landingcheck.modules.reference_types import LicencePeriod, VesselRecord
from landingcheck.utils.dates import to_calendar_date, to_utc_datetime

logger = logging.getLogger(__name__)

# Crown dependency flags take precedence over the admin port.
_FLAG_AUTHORITIES: dict[str, DevolvedAuthority] = {
    "GGY": DevolvedAuthority.GUERNSEY,
    "JEY": DevolvedAuthority.JERSEY,
    "IMN": DevolvedAuthority.ISLE_OF_MAN,
}

_ADMIN_PORT_AUTHORITIES: dict[DevolvedAuthority, frozenset[str]] = {
    DevolvedAuthority.SCOTLAND: frozenset({
        "ABERDEEN", "AYR", "BUCKIE", "CAMPBELTOWN", "EYEMOUTH", "FRASERBURGH",
        "KINLOCHBERVIE", "KIRKWALL", "LERWICK", "MALLAIG", "OBAN", "PETERHEAD",
        "PORTREE", "SCRABSTER", "STORNOWAY", "ULLAPOOL", "ANSTRUTHER",
    }),
    DevolvedAuthority.NORTHERN_IRELAND: frozenset({
        "ARDGLASS", "BELFAST", "COLERAINE", "KILKEEL", "PORTAVOGIE",
    }),
    DevolvedAuthority.WALES: frozenset({
        "ABERYSTWYTH", "CARDIFF", "HOLYHEAD", "MILFORD HAVEN", "SWANSEA",
    }),
    DevolvedAuthority.GUERNSEY: frozenset({"GUERNSEY", "ST PETER PORT"}),
    DevolvedAuthority.JERSEY: frozenset({"JERSEY", "ST HELIER"}),
    DevolvedAuthority.ISLE_OF_MAN: frozenset({"ISLE OF MAN", "DOUGLAS", "PEEL"}),
}


def devolved_authority(flag: Optional[str], admin_port: Optional[str]) -> str:
    """Return the DA governing a licence, defaulting to England."""
    if flag and flag.strip().upper() in _FLAG_AUTHORITIES:
        return _FLAG_AUTHORITIES[flag.strip().upper()].value
    port = (admin_port or "").strip().upper()
    for authority, ports in _ADMIN_PORT_AUTHORITIES.items():
        if port in ports:
            return authority.value
    return DevolvedAuthority.ENGLAND.value


def _licence_period(vessel: VesselRecord) -> Optional[LicencePeriod]:
    try:
        valid_to = to_utc_datetime(vessel.fishing_licence_valid_to)
        valid_from = (
            to_utc_datetime(vessel.fishing_licence_valid_from)
            if vessel.fishing_licence_valid_from else None
        )
    except ValueError:
        logger.warning(
            "Skipping licence with unparseable validity for PLN %s (from=%r to=%r)",
            vessel.registration_number,
            vessel.fishing_licence_valid_from,
            vessel.fishing_licence_valid_to,
        )
        return None
    return LicencePeriod(
        valid_from=valid_from,
        valid_to=valid_to,
        rss_number=vessel.rss_number,
        da=devolved_authority(vessel.flag, vessel.admin_port),
        vessel_length=vessel.vessel_length,
        home_port=vessel.home_port,
        flag=vessel.flag,
        imo=vessel.imo,
        licence_number=vessel.fishing_licence_number,
        licence_holder=vessel.licence_holder_name,
        vessel_not_found=vessel.vessel_not_found,
    )


class VesselLicenceIndex:
    """Immutable PLN -> licence periods map built from the full vessel list."""

    def __init__(self, periods: dict[str, tuple[LicencePeriod, ...]] | None = None):
        self._periods: dict[str, tuple[LicencePeriod, ...]] = dict(periods or {})

    @classmethod
    def build(cls, vessels: Iterable[VesselRecord]) -> "VesselLicenceIndex":
        grouped: dict[str, list[LicencePeriod]] = {}
        for vessel in vessels:
            if not vessel.registration_number:
                continue
            period = _licence_period(vessel)
            if period is not None:
                grouped.setdefault(vessel.registration_number, []).append(period)
        return cls({pln: tuple(periods) for pln, periods in grouped.items()})

    def __len__(self) -> int:
        return len(self._periods)

    def __contains__(self, pln: object) -> bool:
        return pln in self._periods

    def licences(self, pln: str) -> tuple[LicencePeriod, ...]:
        return self._periods.get(pln, ())

    def lookup(self, pln: str, on: str | date | datetime) -> Optional[LicencePeriod]:
        """Return the licence covering *on* for *pln*, or None.

        Periods are scanned in load order and the first covering one wins.
        """
        periods = self._periods.get(pln)
        if not periods:
            logger.error("Vessel not found: %s on %s", pln, on)
            return None
        try:
            day = to_calendar_date(on)
        except ValueError:
            logger.warning("Unparseable licence lookup date %r for %s", on, pln)
            return None
        for period in periods:
            starts = period.valid_from.date() if period.valid_from else date.min
            if starts <= day <= period.valid_to.date():
                return period
        return None

    def rss_number(self, pln: str, on: str | date | datetime) -> Optional[str]:
        licence = self.lookup(pln, on)
        if licence is None:
            logger.error("RSS number not found: %s on %s", pln, on)
            return None
        return licence.rss_number


def plns_for_landings(vessels: Iterable[VesselRecord], landings: Iterable) -> list[dict[str, str]]:
    """Map landings back to the PLN licensed to their RSS number on the landing day.

    Returns deduplicated ``{"rssNumber", "dateLanded", "pln"}`` dicts.
    """
    by_rss: dict[str, list[VesselRecord]] = {}
    for vessel in vessels:
        by_rss.setdefault(vessel.rss_number, []).append(vessel)

    matches: dict[tuple[str, str, str], dict[str, str]] = {}
    for landing in landings:
        landed = to_calendar_date(landing.date_time_landed)
        for vessel in by_rss.get(landing.rss_number, []):
            period = _licence_period(vessel)
            if period is None:
                continue
            starts = period.valid_from.date() if period.valid_from else date.min
            if starts <= landed <= period.valid_to.date():
                key = (landing.rss_number, landed.isoformat(), vessel.registration_number)
                matches[key] = {
                    "rssNumber": landing.rss_number,
                    "dateLanded": landed.isoformat(),
                    "pln": vessel.registration_number,
                }
                break
    return list(matches.values())
