"""Meridian — Geo attribution.

Resolves the location hints carried by raw events (free-text country
names, ISO2/ISO3 codes, coordinates) to a canonical ISO 3166-1 alpha-2
code. Unresolvable inputs yield ``None``; callers count them as unmapped.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

import pycountry
from shapely.geometry import Point, shape
from shapely.prepared import prep

from meridian.fusion_engine.countries import CURATED_COUNTRIES

logger = logging.getLogger("meridian.fusion")

# Common names that pycountry does not carry (or carries in a formal form)
COUNTRY_NAME_ALIASES: dict[str, str] = {
    "russia": "RU",
    "iran": "IR",
    "syria": "SY",
    "south korea": "KR",
    "north korea": "KP",
    "vietnam": "VN",
    "laos": "LA",
    "bolivia": "BO",
    "venezuela": "VE",
    "tanzania": "TZ",
    "moldova": "MD",
    "palestine": "PS",
    "gaza": "PS",
    "west bank": "PS",
    "burma": "MM",
    "ivory coast": "CI",
    "drc": "CD",
    "dr congo": "CD",
    "democratic republic of the congo": "CD",
    "republic of the congo": "CG",
    "turkey": "TR",
    "czech republic": "CZ",
    "uk": "GB",
    "britain": "GB",
    "great britain": "GB",
    "united kingdom": "GB",
    "usa": "US",
    "united states": "US",
    "united states of america": "US",
    "taiwan": "TW",
    "kosovo": "XK",
    "macedonia": "MK",
    "swaziland": "SZ",
    "cape verde": "CV",
    "east timor": "TL",
    "micronesia": "FM",
    "brunei": "BN",
}

# Codes in common use that are not (yet) ISO-assigned
EXTRA_ISO2_CODES = {"XK"}

_ISO2_RE = re.compile(r"^[A-Z]{2}$")

_BOUNDARY_CODE_KEYS = ("ISO_A2", "iso_a2", "ISO3166-1-Alpha-2", "iso2", "ISO_A2_EH")
_BOUNDARY_NAME_KEYS = ("NAME", "name", "ADMIN", "admin")


def is_known_iso2(code: str) -> bool:
    upper = code.upper()
    if upper in EXTRA_ISO2_CODES:
        return True
    return pycountry.countries.get(alpha_2=upper) is not None


def iso3_to_iso2(code: str) -> Optional[str]:
    if len(code) != 3:
        return None
    country = pycountry.countries.get(alpha_3=code.upper())
    return country.alpha_2 if country else None


def name_to_country_code(name: str) -> Optional[str]:
    """Free-text country name -> ISO2 via the alias table, then pycountry."""
    lower = name.strip().lower()
    if not lower:
        return None
    if lower in COUNTRY_NAME_ALIASES:
        return COUNTRY_NAME_ALIASES[lower]
    # pycountry.lookup also accepts codes; only names are wanted here
    if len(lower) <= 3:
        return None
    try:
        return pycountry.countries.lookup(lower).alpha_2
    except LookupError:
        return None


def get_country_name_by_code(code: str) -> Optional[str]:
    cfg = CURATED_COUNTRIES.get(code)
    if cfg:
        return cfg["name"]
    if code == "XK":
        return "Kosovo"
    country = pycountry.countries.get(alpha_2=code)
    if country is None:
        return None
    return getattr(country, "common_name", None) or country.name


@lru_cache(maxsize=1)
def _country_name_pattern() -> tuple[re.Pattern, dict[str, str]]:
    names: dict[str, str] = {}
    for country in pycountry.countries:
        for attr in ("name", "common_name"):
            value = getattr(country, attr, None)
            if value and "," not in value:
                names[value.lower()] = country.alpha_2
    for alias, code in COUNTRY_NAME_ALIASES.items():
        if len(alias) > 3:
            names[alias] = code
    # Longest first so "south sudan" wins over "sudan"
    ordered = sorted(names, key=len, reverse=True)
    pattern = re.compile(r"\b(" + "|".join(re.escape(n) for n in ordered) + r")\b")
    return pattern, names


def match_country_names_in_text(text: str) -> list[str]:
    """ISO2 codes of every country named in ``text`` (word-boundary match)."""
    pattern, names = _country_name_pattern()
    found: list[str] = []
    for match in pattern.finditer(text.lower()):
        code = names[match.group(1)]
        if code not in found:
            found.append(code)
    return found


class CountryGeometry:
    """Point-in-polygon lookup over country boundary polygons."""

    def __init__(self, features: Optional[list[dict]] = None):
        self._polygons: list[tuple[str, str, tuple, object]] = []
        for feature in features or []:
            self._add_feature(feature)

    @classmethod
    def from_geojson(cls, data: dict) -> "CountryGeometry":
        return cls(data.get("features", []))

    @classmethod
    def from_file(cls, path: str | Path) -> "CountryGeometry":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        geometry = cls.from_geojson(data)
        logger.info("[geo] Loaded %d country polygons from %s", len(geometry), path)
        return geometry

    def _add_feature(self, feature: dict) -> None:
        props = feature.get("properties") or {}
        code = ""
        for key in _BOUNDARY_CODE_KEYS:
            value = str(props.get(key) or "").upper()
            if _ISO2_RE.match(value):
                code = value
                break
        if not code or not feature.get("geometry"):
            return

        name = next((props[k] for k in _BOUNDARY_NAME_KEYS if props.get(k)), code)
        try:
            geom = shape(feature["geometry"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("[geo] Skipping invalid boundary for %s: %s", code, e)
            return
        self._polygons.append((code, name, geom.bounds, prep(geom)))

    def __len__(self) -> int:
        return len(self._polygons)

    def get_country_at_coordinates(self, lat: float, lon: float) -> Optional[dict]:
        point = Point(lon, lat)
        for code, name, (min_x, min_y, max_x, max_y), prepared in self._polygons:
            if not (min_x <= lon <= max_x and min_y <= lat <= max_y):
                continue
            if prepared.covers(point):
                return {"code": code, "name": name}
        return None


class GeoAttributor:
    """Maps raw location signals to canonical ISO2 codes."""

    def __init__(self, geometry: Optional[CountryGeometry] = None):
        self.geometry = geometry or CountryGeometry()

    def ensure_iso2(self, code: str) -> Optional[str]:
        upper = code.strip().upper()
        if _ISO2_RE.match(upper):
            return upper if is_known_iso2(upper) else None
        iso2 = iso3_to_iso2(upper)
        if iso2:
            return iso2
        return name_to_country_code(code)

    def normalize_country_name(self, name: str) -> Optional[str]:
        """First curated keyword hit wins (curated table order), then the general name table."""
        if not name:
            return None
        lower = name.lower()
        for code, cfg in CURATED_COUNTRIES.items():
            if any(kw in lower for kw in cfg["scoring_keywords"]):
                return code
        return name_to_country_code(lower)

    def get_country_from_location(self, lat: float, lon: float) -> Optional[str]:
        hit = self.geometry.get_country_at_coordinates(lat, lon)
        return hit["code"] if hit else None

    def match_countries_in_title(self, title: str) -> list[str]:
        """Curated keyword hits plus plain country names, in discovery order."""
        lower = title.lower()
        matched: list[str] = []
        for code, cfg in CURATED_COUNTRIES.items():
            if any(kw in lower for kw in cfg["scoring_keywords"]):
                matched.append(code)
        for code in match_country_names_in_text(lower):
            if code not in matched:
                matched.append(code)
        return matched

    def country_name(self, code: str) -> str:
        return get_country_name_by_code(code) or code
