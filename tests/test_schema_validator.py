"""
Tests for node config validation against plugin config schemas.
"""

from typing import Literal

import pytest
from pydantic import BaseModel, Field

from dappforge.errors import SchemaError
from dappforge.models.node_registry import get_default_registry
from dappforge.services.schema_validator import validate_blueprint_configs, validate_node_config

from helpers import make_blueprint, make_node, make_registry, mock_plugin


class FeatureConfig(BaseModel):
    name: str = Field(default="token", min_length=1)
    features: list[Literal["mint", "burn"]] = Field(default_factory=list)


@pytest.fixture
def registry():
    return make_registry(mock_plugin("featured", config_schema=FeatureConfig))


class TestValidateNodeConfig:
    """Tests for validate_node_config"""

    def test_returns_typed_config_with_defaults(self, registry):
        """An empty config is filled with schema defaults."""
        config = validate_node_config(make_node("a", "featured"), registry.get("featured"))

        assert isinstance(config, FeatureConfig)
        assert config.name == "token"
        assert config.features == []

    def test_names_node_field_and_constraint(self, registry):
        """A bad list item is reported by its dotted field path."""
        node = make_node("a", "featured", {"features": ["mint", "fly"]})

        with pytest.raises(SchemaError) as exc_info:
            validate_node_config(node, registry.get("featured"))

        err = exc_info.value
        assert err.node_id == "a"
        assert err.field == "features.1"
        assert err.constraint
        assert err.diagnostics[0].node_id == "a"
        assert err.diagnostics[0].field == "features.1"

    def test_camel_case_keys_are_accepted(self):
        """Built-in plugin configs take their camelCase wire names."""
        plugin = get_default_registry().get("frontend-scaffold")
        config = validate_node_config(
            make_node("fe", "frontend-scaffold", {"srcDirectory": False, "appName": "Shop"}),
            plugin,
        )

        assert config.src_directory is False
        assert config.app_name == "Shop"


class TestValidateBlueprintConfigs:
    """Tests for validate_blueprint_configs"""

    def test_valid_blueprint_returns_config_per_node(self, registry):
        """Every node with a known type gets a validated config."""
        blueprint = make_blueprint([make_node("a", "featured"), make_node("b", "featured", {"name": "nft"})])

        configs = validate_blueprint_configs(blueprint, registry)

        assert list(configs) == ["a", "b"]
        assert configs["b"].name == "nft"

    def test_unknown_types_are_skipped(self, registry):
        """Unknown node types are left for the graph builder to report."""
        blueprint = make_blueprint([make_node("a", "featured"), make_node("x", "not-registered")])

        configs = validate_blueprint_configs(blueprint, registry)

        assert list(configs) == ["a"]

    def test_first_invalid_node_is_named_and_all_issues_listed(self, registry):
        """The error names the first bad node but carries diagnostics for all of them."""
        blueprint = make_blueprint([
            make_node("ok", "featured"),
            make_node("first", "featured", {"name": ""}),
            make_node("second", "featured", {"features": ["nope"]}),
        ])

        with pytest.raises(SchemaError) as exc_info:
            validate_blueprint_configs(blueprint, registry)

        err = exc_info.value
        assert err.node_id == "first"
        assert err.field == "name"
        assert err.code == "schema_error"
        assert [d.node_id for d in err.diagnostics] == ["first", "second"]

    def test_builtin_pattern_constraint(self):
        """A lower-case NFT symbol violates the erc721 schema."""
        blueprint = make_blueprint([make_node("nft", "erc721-stylus", {"collectionSymbol": "nft"})])

        with pytest.raises(SchemaError) as exc_info:
            validate_blueprint_configs(blueprint, get_default_registry())

        assert exc_info.value.node_id == "nft"
        assert exc_info.value.field == "collectionSymbol"
