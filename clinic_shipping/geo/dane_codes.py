"""
DANE code resolver.
Matches free-text Colombian city/department names to the codes Envioclick expects.
"""

import re
import unicodedata
from pathlib import Path
from typing import Iterable, Optional, Union
from loguru import logger

from clinic_shipping.config import DEFAULT_DANE_FILE
from clinic_shipping.models import GeoCode, GeoEntry


_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")

# Bogotá is its own DANE department (11), not part of Cundinamarca (25)
CAPITAL = "BOGOTA"
CAPITAL_DISTRICT = "BOGOTADC"
CAPITAL_REGION = "CUNDINAMARCA"


def normalize_name(text: Optional[str]) -> str:
    """
    Aggressively normalize a place name.

    "Bogotá, D.C." -> "BOGOTADC"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", stripped).upper()


def load_dane_table(path: Union[str, Path] = DEFAULT_DANE_FILE) -> list[GeoEntry]:
    """
    Load the tab-separated DANE table.

    Row format: dept code, dept name, city code, city name, area type, lon, lat.
    City codes are padded with "000" to the 8 digits Envioclick uses.
    """
    entries = []

    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue

            parts = line.rstrip("\n").split("\t")
            if len(parts) < 4:
                logger.warning(f"Skipping malformed DANE row {line_number}: {line.strip()!r}")
                continue

            entries.append(GeoEntry(
                department=parts[1].strip(),
                city=parts[3].strip(),
                city_code=parts[2].strip().zfill(5) + "000",
                state_code=parts[0].strip().zfill(2),
            ))

    logger.debug(f"Loaded {len(entries)} DANE entries from {path}")
    return entries


class DaneResolver:
    """
    Resolves city/department text to a GeoCode.

    The table is read once and never modified, so one instance can be
    shared by concurrent callers.
    """

    def __init__(self, entries: Iterable[GeoEntry]):
        # Pre-normalized (city, department, entry) triples, in table order
        self._entries: tuple[tuple[str, str, GeoEntry], ...] = tuple(
            (normalize_name(e.city), normalize_name(e.department), e)
            for e in entries
        )

    @classmethod
    def from_file(cls, path: Union[str, Path] = DEFAULT_DANE_FILE) -> "DaneResolver":
        return cls(load_dane_table(path))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[GeoEntry]:
        return [entry for _, _, entry in self._entries]

    def resolve(self, city: Optional[str], department: Optional[str]) -> Optional[GeoCode]:
        """
        Find the DANE codes for a destination.

        Returns:
            GeoCode, or None when the area is not covered
        """
        search_city = normalize_name(city)
        search_dept = normalize_name(department)

        if not search_city or not search_dept:
            return None

        if CAPITAL in search_city and CAPITAL_REGION in search_dept:
            search_dept = CAPITAL
        if search_dept == CAPITAL_DISTRICT:
            search_dept = CAPITAL

        # "VALLE DEL CAUCA" contains "CAUCA" and "NORTE DE SANTANDER" contains
        # "SANTANDER": an exact department wins over partial ones
        candidates = [
            (city_name, entry)
            for city_name, dept_name, entry in self._entries
            if dept_name == search_dept
        ]
        if not candidates:
            candidates = [
                (city_name, entry)
                for city_name, dept_name, entry in self._entries
                if dept_name in search_dept or search_dept in dept_name
            ]

        match = next(
            (entry for city_name, entry in candidates if city_name == search_city),
            None,
        )
        if match is None:
            match = next(
                (
                    entry for city_name, entry in candidates
                    if search_city in city_name or city_name in search_city
                ),
                None,
            )

        if match is None:
            return None

        return GeoCode(city_code=match.city_code, state_code=match.state_code)


# Process-wide resolver, loaded on first use
_resolver: Optional[DaneResolver] = None


def get_resolver() -> DaneResolver:
    """Get the shared resolver, loading the table on first call."""
    global _resolver
    if _resolver is None:
        from clinic_shipping.config import get_config
        _resolver = DaneResolver.from_file(get_config().dane_codes_file)
        logger.info(f"DANE table loaded: {len(_resolver)} cities")
    return _resolver


def init_resolver(path: Union[str, Path]) -> DaneResolver:
    """Preload the shared resolver from a specific table."""
    global _resolver
    _resolver = DaneResolver.from_file(path)
    return _resolver


def find_dane_code(city: Optional[str], department: Optional[str]) -> Optional[GeoCode]:
    """Resolve with the shared resolver."""
    return get_resolver().resolve(city, department)
