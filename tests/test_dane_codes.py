"""Tests for the DANE code resolver."""

import pytest

from clinic_shipping.geo import DaneResolver, normalize_name
from clinic_shipping.geo import dane_codes
from clinic_shipping.geo.dane_codes import load_dane_table
from clinic_shipping.models import GeoCode, GeoEntry


class TestNormalizeName:
    """Tests for place name normalization."""

    def test_strips_accents_punctuation_and_case(self):
        assert normalize_name("Bogotá, D.C.") == "BOGOTADC"
        assert normalize_name("Itagüí") == "ITAGUI"
        assert normalize_name("  norte de santander ") == "NORTEDESANTANDER"

    def test_empty(self):
        assert normalize_name("") == ""
        assert normalize_name(None) == ""


class TestLoadTable:
    """Tests for reading the tab-separated table."""

    def test_codes_are_padded(self, resolver):
        riohacha = next(e for e in resolver.entries if e.city == "RIOHACHA")

        assert riohacha.city_code == "44001000"
        assert riohacha.state_code == "44"
        assert riohacha.department == "LA GUAJIRA"

    def test_skips_blank_and_malformed_rows(self, tmp_path):
        table = tmp_path / "dane.tsv"
        table.write_text(
            "44\tLA GUAJIRA\t44430\tMAICAO\tMunicipio\t-72,24\t11,37\n"
            "\n"
            "broken row without tabs\n"
            "5\tANTIOQUIA\t5001\tMEDELLÍN\tMunicipio\t-75,58\t6,24\n",
            encoding="utf-8",
        )

        entries = load_dane_table(table)

        assert len(entries) == 2
        assert entries[0].city_code == "44430000"
        assert entries[1].city_code == "05001000"
        assert entries[1].state_code == "05"

    def test_bundled_table_covers_every_municipality(self, resolver):
        entries = resolver.entries

        assert len(entries) > 1100
        assert len({e.state_code for e in entries}) == 33
        assert any(e.city == "CALIMA" and e.city_code == "76126000" for e in entries)


class TestResolve:
    """Tests for city/department matching."""

    def test_every_table_row_resolves_to_itself(self, resolver):
        for entry in resolver.entries:
            result = resolver.resolve(entry.city, entry.department)
            assert result == GeoCode(city_code=entry.city_code, state_code=entry.state_code), entry

    @pytest.mark.parametrize("city,department", [
        ("Medellín", "Antioquia"),
        ("medellin", "antioquia"),
        ("MEDELLIN", "ANTIOQUIA"),
        ("Medellín.", " Antioquia "),
    ])
    def test_case_and_accent_variants(self, resolver, city, department):
        assert resolver.resolve(city, department) == GeoCode(city_code="05001000", state_code="05")

    def test_capital_under_cundinamarca(self, resolver):
        via_region = resolver.resolve("Bogotá", "Cundinamarca")
        via_district = resolver.resolve("Bogotá", "Bogotá D.C.")

        assert via_region == via_district
        assert via_region == GeoCode(city_code="11001000", state_code="11")

    def test_capital_variants(self, resolver):
        expected = GeoCode(city_code="11001000", state_code="11")

        assert resolver.resolve("Bogotá D.C.", "Bogotá") == expected
        assert resolver.resolve("Bogota", "Bogota DC") == expected

    def test_cundinamarca_city_is_not_the_capital(self, resolver):
        assert resolver.resolve("Soacha", "Cundinamarca").city_code == "25754000"

    def test_partial_department_name(self, resolver):
        assert resolver.resolve("Riohacha", "Guajira").city_code == "44001000"

    def test_partial_city_name(self, resolver):
        assert resolver.resolve("Cartagena", "Bolívar").city_code == "13001000"
        assert resolver.resolve("Cúcuta", "Norte de Santander").city_code == "54001000"

    def test_city_name_prefix_of_another_city(self, resolver):
        assert resolver.resolve("Calima", "Valle del Cauca").city_code == "76126000"
        assert resolver.resolve("Cali", "Valle del Cauca").city_code == "76001000"

    @pytest.mark.parametrize("department,expected", [
        ("Valle del Cauca", "76100000"),
        ("Cauca", "19100000"),
        ("Santander", "68101000"),
    ])
    def test_exact_department_beats_containing_department(self, resolver, department, expected):
        assert resolver.resolve("Bolívar", department).city_code == expected

    def test_same_city_name_in_three_departments(self, resolver):
        assert resolver.resolve("Argelia", "Antioquia").city_code == "05055000"
        assert resolver.resolve("Argelia", "Cauca").city_code == "19050000"
        assert resolver.resolve("Argelia", "Valle").city_code == "76054000"

    def test_non_municipalized_area(self, resolver):
        assert resolver.resolve("La Pedrera", "Amazonas") == GeoCode(city_code="91407000", state_code="91")

    def test_not_found(self, resolver):
        assert resolver.resolve("Nonexistent City", "Nonexistent Dept") is None

    def test_city_in_wrong_department(self, resolver):
        assert resolver.resolve("Maicao", "Antioquia") is None

    def test_empty_input_is_not_found(self, resolver):
        assert resolver.resolve("", "Antioquia") is None
        assert resolver.resolve("Medellín", "") is None
        assert resolver.resolve(None, None) is None

    def test_exact_city_beats_earlier_substring(self):
        resolver = DaneResolver([
            GeoEntry(department="DEPTO", city="VILLA NUEVA", city_code="99001000", state_code="99"),
            GeoEntry(department="DEPTO", city="NUEVA", city_code="99002000", state_code="99"),
        ])

        assert resolver.resolve("Nueva", "Depto").city_code == "99002000"
        assert resolver.resolve("Villa", "Depto").city_code == "99001000"

    def test_first_match_in_table_order(self):
        resolver = DaneResolver([
            GeoEntry(department="DEPTO", city="SAN PEDRO NORTE", city_code="99001000", state_code="99"),
            GeoEntry(department="DEPTO", city="SAN PEDRO SUR", city_code="99002000", state_code="99"),
        ])

        assert resolver.resolve("San Pedro", "Depto").city_code == "99001000"


class TestSharedResolver:
    """Tests for the lazily loaded process-wide resolver."""

    def test_loaded_once(self, monkeypatch, tmp_path):
        table = tmp_path / "dane.tsv"
        table.write_text("44\tLA GUAJIRA\t44001\tRIOHACHA\tMunicipio\t0\t0\n", encoding="utf-8")
        monkeypatch.setattr(dane_codes, "_resolver", None)

        loaded = dane_codes.init_resolver(table)

        assert dane_codes.get_resolver() is loaded
        assert dane_codes.get_resolver() is loaded
        assert dane_codes.find_dane_code("Riohacha", "La Guajira").city_code == "44001000"
