"""
test_geo_attribution.py — Country code resolution, name normalization,
title matching and point-in-polygon lookup.

Run:
    pytest tests/test_geo_attribution.py -v
"""

import json

import pytest

from meridian.fusion_engine.geo_attribution import (
    CountryGeometry,
    GeoAttributor,
    get_country_name_by_code,
    iso3_to_iso2,
    match_country_names_in_text,
    name_to_country_code,
)


# ── ensure_iso2 ──────────────────────────────────────────────────────────────

class TestEnsureIso2:

    @pytest.mark.parametrize("raw, expected", [
        ("USA", "US"),
        ("iran", "IR"),
        ("us", "US"),
        ("SYR", "SY"),
        ("Kenya", "KE"),
        ("  de ", "DE"),
        ("XK", "XK"),
    ])
    def test_resolves(self, raw, expected):
        assert GeoAttributor().ensure_iso2(raw) == expected

    @pytest.mark.parametrize("raw", ["XX", "ZZZ", "Atlantis", ""])
    def test_unknown_is_none(self, raw):
        assert GeoAttributor().ensure_iso2(raw) is None, f"{raw!r} should not resolve"


# ── normalize_country_name ──────────────────────────────────────────────────

class TestNormalizeCountryName:

    def test_curated_keyword_substring(self):
        assert GeoAttributor().normalize_country_name("Kyiv Oblast, Ukraine") == "UA"

    def test_curated_order_breaks_ties(self):
        """'ukraine' contains the UK keyword 'uk'; Ukraine comes first in the table."""
        assert GeoAttributor().normalize_country_name("Ukraine") == "UA"

    def test_city_keyword(self):
        assert GeoAttributor().normalize_country_name("Greater London") == "GB"

    def test_falls_back_to_name_table(self):
        assert GeoAttributor().normalize_country_name("Kenya") == "KE"
        assert GeoAttributor().normalize_country_name("Sudan") == "SD"

    def test_empty_and_unknown(self):
        attributor = GeoAttributor()
        assert attributor.normalize_country_name("") is None
        assert attributor.normalize_country_name("Atlantis") is None


# ── name table helpers ──────────────────────────────────────────────────────

class TestNameHelpers:

    def test_iso3_to_iso2(self):
        assert iso3_to_iso2("UKR") == "UA"
        assert iso3_to_iso2("UA") is None

    def test_name_to_code_skips_short_inputs(self):
        """Two and three letter strings are codes, not names."""
        assert name_to_country_code("ken") is None

    def test_alias_table(self):
        assert name_to_country_code("Ivory Coast") == "CI"
        assert name_to_country_code("DRC") == "CD"

    def test_curated_name_wins(self):
        assert get_country_name_by_code("IR") == "Iran"
        assert get_country_name_by_code("KE") == "Kenya"
        assert get_country_name_by_code("XK") == "Kosovo"
        assert get_country_name_by_code("QQ") is None


# ── title matching ──────────────────────────────────────────────────────────

class TestMatchCountriesInTitle:

    def test_keywords_and_names(self):
        codes = GeoAttributor().match_countries_in_title("Iran warns Israel over Gaza strikes")
        assert codes[:2] == ["IR", "IL"]
        assert "PS" in codes

    def test_no_duplicates(self):
        codes = GeoAttributor().match_countries_in_title("Iran, Tehran and the IRGC")
        assert codes == ["IR"]

    def test_longest_name_wins(self):
        codes = match_country_names_in_text("sudan and south sudan resume talks")
        assert set(codes) == {"SD", "SS"}

    def test_word_boundaries(self):
        assert match_country_names_in_text("chadwick reports on omanisation") == []


# ── CountryGeometry ─────────────────────────────────────────────────────────

class TestCountryGeometry:

    def test_point_inside(self, geometry):
        assert geometry.get_country_at_coordinates(0.0, 38.0) == {"code": "KE", "name": "Kenya"}

    def test_point_on_boundary_counts(self, geometry):
        assert geometry.get_country_at_coordinates(4.0, 38.0)["code"] == "KE"

    def test_international_waters(self, geometry):
        assert geometry.get_country_at_coordinates(-20.0, 70.0) is None

    def test_features_without_code_are_skipped(self, kenya_feature):
        nameless = {**kenya_feature, "properties": {"NAME": "Nowhere", "ISO_A2": "-99"}}
        geometry = CountryGeometry([kenya_feature, nameless, {"properties": {"ISO_A2": "TZ"}}])
        assert len(geometry) == 1

    def test_from_file(self, tmp_path, kenya_feature):
        path = tmp_path / "countries.geojson"
        path.write_text(json.dumps({"type": "FeatureCollection", "features": [kenya_feature]}))
        geometry = CountryGeometry.from_file(path)
        assert GeoAttributor(geometry).get_country_from_location(1.0, 36.8) == "KE"

    def test_attributor_without_geometry(self):
        assert GeoAttributor().get_country_from_location(0.0, 38.0) is None
