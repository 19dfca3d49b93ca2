"""Tests for effective TTL resolution."""

import pytest

from dashcache.constants import CACHE_TIMES
from dashcache.models.cache import WidgetCacheConfig
from dashcache.services.cache import infer_widget_type, resolve_ttl
from dashcache.services.widget_registry import WidgetDefinition, WidgetRegistry, create_widget_registry


class ExplodingRegistry:
    def lookup(self, widget_id):
        raise RuntimeError("registry offline")


class TestResolveTtl:

    def setup_method(self):
        self.registry = create_widget_registry()

    def test_explicit_config_wins(self):
        assert resolve_ttl({"cacheTimeMs": 1234}, "weather", self.registry) == 1234

    def test_snake_case_field(self):
        assert resolve_ttl({"cache_time_ms": 4321}, "weather", self.registry) == 4321

    def test_explicit_zero_disables(self):
        assert resolve_ttl({"cacheTimeMs": 0}, "weather", self.registry) == 0

    def test_pydantic_config(self):
        config = WidgetCacheConfig(cacheTimeMs=777)
        assert resolve_ttl(config, "weather", self.registry) == 777

    def test_registry_default(self):
        assert resolve_ttl({}, "weather", self.registry) == CACHE_TIMES["LONG"]

    def test_widget_without_external_apis(self):
        assert resolve_ttl({}, "notes", self.registry) is None

    def test_api_widget_without_default(self):
        registry = WidgetRegistry()
        registry.register(WidgetDefinition(id="feeds", title="Feeds", uses_external_apis=True))
        assert resolve_ttl({}, "feeds", registry) is None

    def test_structural_fallback(self):
        config = {"lat": 52.5, "lon": 13.4, "units": "kmh"}
        assert resolve_ttl(config, "unknown-type", self.registry) == CACHE_TIMES["MEDIUM"]

    def test_fallback_with_pydantic_extras(self):
        config = WidgetCacheConfig(lat=52.5, lon=13.4, scale="us")
        assert resolve_ttl(config, None, self.registry) == CACHE_TIMES["LONG"]

    def test_no_match(self):
        assert resolve_ttl({"lat": 1, "lon": 2}, "unknown-type", self.registry) is None

    def test_no_registry(self):
        assert resolve_ttl({"lat": 1, "lon": 2, "scale": "us"}, "weather", None) is None

    def test_registry_errors_are_swallowed(self):
        assert resolve_ttl({}, "weather", ExplodingRegistry()) is None

    def test_unsupported_config_type(self):
        assert resolve_ttl(["not", "a", "config"], "weather", self.registry) is None

    def test_none_config_uses_registry(self):
        assert resolve_ttl(None, "sun-phases", self.registry) == CACHE_TIMES["VERY_LONG"]

    @pytest.mark.parametrize("bad", ["abc", -5, 1.5, [60_000]])
    def test_invalid_explicit_value_falls_back_to_registry(self, bad):
        assert resolve_ttl({"cacheTimeMs": bad}, "weather", self.registry) == CACHE_TIMES["LONG"]

    def test_invalid_explicit_value_without_default(self):
        assert resolve_ttl({"cacheTimeMs": "abc"}, "notes", self.registry) is None

    def test_invalid_camel_case_defers_to_snake_case(self):
        config = {"cacheTimeMs": -1, "cache_time_ms": 2000}
        assert resolve_ttl(config, "weather", self.registry) == 2000



class TestInferWidgetType:

    def test_rules_in_order(self):
        assert infer_widget_type({"lat": 0, "lon": 0, "scale": "us"}) == "air-quality"
        assert infer_widget_type({"lat": 0, "lon": 0, "units": "kmh"}) == "wind-focus"
        assert infer_widget_type({"lat": 0, "lon": 0, "mode": "official"}) == "sun-phases"

    def test_first_match_wins(self):
        config = {"lat": 0, "lon": 0, "scale": "us", "units": "kmh"}
        assert infer_widget_type(config) == "air-quality"

    def test_requires_coordinates(self):
        assert infer_widget_type({"lat": 0, "scale": "us"}) is None
        assert infer_widget_type({"units": "kmh"}) is None
