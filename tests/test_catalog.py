"""
Tests for the static catalog tables and their JSON form.
"""

import json
import math

import pytest

from historygen.catalog import (
    DEFAULT_CATALOG,
    catalog_from_dict,
    catalog_to_dict,
    get_component_failure_rate,
    get_target_inventory_level,
    load_catalog,
)
from historygen.errors import ConfigValidationError, DataLoadError


class TestTables:
    def test_declaration_order(self):
        assert list(DEFAULT_CATALOG.locations) == ["west", "south", "heartland"]
        assert list(DEFAULT_CATALOG.models) == ["TX-100", "TX-300", "TX-500"]
        assert list(DEFAULT_CATALOG.suppliers) == ["Elite", "Crank", "Atlas", "Bolt", "Dynamo"]

    def test_every_location_can_build_every_model(self):
        for code in DEFAULT_CATALOG.locations:
            for model in DEFAULT_CATALOG.models.values():
                for component_id in model.components:
                    assert DEFAULT_CATALOG.suppliers_for_component(code, component_id)

    def test_failure_rates(self):
        assert get_component_failure_rate("ENGINE-A") == 0.03
        assert get_component_failure_rate("HYDRAULICS-SMALL") == 0.04
        with pytest.raises(ConfigValidationError):
            get_component_failure_rate("FLUX-CAPACITOR")

    def test_base_lead_times(self):
        assert [DEFAULT_CATALOG.base_lead_time(s) for s in DEFAULT_CATALOG.suppliers] == [5, 7, 8, 10, 9]


class TestTargetInventory:
    def test_known_value(self):
        # TX-100 only, preference 2.0 in the south
        scaled_min = 40 * math.sqrt(2.0)
        base = scaled_min + 0.7 * (150 * 2.0 - scaled_min)
        assert get_target_inventory_level("south", "ENGINE-A") == math.ceil(base * 1.5 * 30 * 1.2)

    def test_scales_with_days(self):
        assert get_target_inventory_level("west", "ENGINE-B", 60) > get_target_inventory_level("west", "ENGINE-B", 30)

    def test_floor_of_200(self):
        assert get_target_inventory_level("west", "ENGINE-A", 1) == 200

    def test_unused_component(self):
        assert get_target_inventory_level("west", "UNUSED") == 0


class TestCatalogJson:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog_to_dict()), encoding="utf-8")
        assert load_catalog(path) == DEFAULT_CATALOG

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError, match="not found"):
            load_catalog(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataLoadError, match="Invalid JSON"):
            load_catalog(path)

    def test_malformed_structure(self):
        with pytest.raises(DataLoadError, match="Malformed"):
            catalog_from_dict({"components": []})

    def test_bad_references(self):
        data = json.loads(json.dumps(catalog_to_dict()))
        data["locations"][0]["suppliers"].append("Ghost")
        data["models"][0]["components"].append("WARP-DRIVE")
        with pytest.raises(ConfigValidationError) as excinfo:
            catalog_from_dict(data)
        assert "Ghost" in str(excinfo.value)
        assert "WARP-DRIVE" in str(excinfo.value)

    def test_bad_story(self):
        data = json.loads(json.dumps(catalog_to_dict()))
        data["quality_configs"]["Elite"]["story"] = ["up", "sideways", "up", "up", "up", "up"]
        with pytest.raises(ConfigValidationError, match="unknown trend"):
            catalog_from_dict(data)
