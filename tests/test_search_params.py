"""Tests for search parameter validation and cache key derivation."""

from __future__ import annotations

import json

import pytest

from autoagent_mcp.errors import ValidationError
from autoagent_mcp.search.keys import derive_cache_key
from autoagent_mcp.search.models import SearchParams, parse_search_params

BASE = {"location": "Seattle, WA", "condition": "used"}


class TestParseSearchParams:
    def test_minimal(self):
        params = parse_search_params(BASE)
        assert params == SearchParams(location="Seattle, WA", condition="used")

    def test_all_fields_camel_case(self):
        params = parse_search_params(
            {
                **BASE,
                "maxPrice": 30000,
                "make": "Toyota",
                "model": "RAV4",
                "radiusMiles": 50,
            }
        )
        assert params.max_price == 30000
        assert params.make == "Toyota"
        assert params.model == "RAV4"
        assert params.radius_miles == 50

    def test_snake_case_aliases(self):
        params = parse_search_params({**BASE, "max_price": 25000, "radius_miles": 10})
        assert params.max_price == 25000
        assert params.radius_miles == 10

    def test_blank_optionals_are_absent(self):
        params = parse_search_params({**BASE, "make": "  ", "model": None})
        assert params.make is None
        assert params.model is None

    def test_unknown_keys_ignored(self):
        assert parse_search_params({**BASE, "color": "red"}) == parse_search_params(BASE)

    @pytest.mark.parametrize(
        ("raw", "fragment"),
        [
            ({"condition": "used"}, "location"),
            ({"location": "", "condition": "used"}, "location"),
            ({"location": "Seattle, WA", "condition": "salvage"}, "condition"),
            ({**BASE, "maxPrice": 0}, "maxPrice"),
            ({**BASE, "maxPrice": -5}, "maxPrice"),
            ({**BASE, "maxPrice": "cheap"}, "maxPrice"),
            ({**BASE, "maxPrice": True}, "maxPrice"),
            ({**BASE, "radiusMiles": 501}, "radiusMiles"),
            ({**BASE, "radiusMiles": 0}, "radiusMiles"),
            ({**BASE, "make": 42}, "make"),
        ],
    )
    def test_invalid_inputs(self, raw, fragment):
        with pytest.raises(ValidationError, match=fragment) as exc_info:
            parse_search_params(raw)
        assert exc_info.value.code == "INVALID_PARAMS"

    def test_radius_upper_bound_inclusive(self):
        assert parse_search_params({**BASE, "radiusMiles": 500}).radius_miles == 500

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            parse_search_params(["Seattle"])

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_search_params({})

    def test_reports_every_problem(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_search_params({"location": "", "condition": "x"})
        assert len(exc_info.value.details["problems"]) == 2


class TestDeriveCacheKey:
    def test_deterministic(self):
        params = parse_search_params({**BASE, "maxPrice": 30000})
        assert derive_cache_key(params) == derive_cache_key(params)

    def test_attribute_order_irrelevant(self):
        a = {"location": "Seattle, WA", "condition": "used", "make": "Toyota"}
        b = {"make": "Toyota", "condition": "used", "location": "Seattle, WA"}
        assert derive_cache_key(a) == derive_cache_key(b)

    def test_keys_sorted_canonical_json(self):
        key = derive_cache_key({**BASE, "maxPrice": 30000})
        assert key == json.dumps(
            {"condition": "used", "location": "Seattle, WA", "maxPrice": 30000},
            sort_keys=True,
            separators=(",", ":"),
        )

    def test_absent_optional_excluded(self):
        key = derive_cache_key(BASE)
        assert "maxPrice" not in key
        assert derive_cache_key(BASE) != derive_cache_key({**BASE, "maxPrice": 30000})

    @pytest.mark.parametrize(
        "change",
        [
            {"location": "Portland, OR"},
            {"condition": "new"},
            {"maxPrice": 30001},
            {"make": "Honda"},
            {"model": "Civic"},
            {"radiusMiles": 25},
        ],
    )
    def test_any_difference_changes_key(self, change):
        full = {**BASE, "maxPrice": 30000, "make": "Toyota", "model": "Camry", "radiusMiles": 50}
        assert derive_cache_key(full) != derive_cache_key({**full, **change})

    def test_integral_float_matches_int(self):
        assert derive_cache_key({**BASE, "maxPrice": 30000.0}) == derive_cache_key(
            {**BASE, "maxPrice": 30000}
        )
