"""Tests for catalog and settings loading."""

import pytest

from oas_modularize.config import load_catalog, load_settings
from oas_modularize.exceptions import ConfigurationError


def test_default_catalog():
    """Test the bundled scaffoldings."""
    catalog = load_catalog()

    assert catalog.names() == ["conservative", "restful", "rpc", "google", "bian"]
    assert catalog.fallback == "conservative"

    conservative = catalog.get("conservative")
    assert conservative.schema_classification is False
    assert conservative.detection is None
    assert conservative.response_naming.enabled is False

    restful = catalog.get("restful")
    assert restful.detection.plural_resources.min_ratio == 0.5
    assert restful.detection.verbs_in_path.max_ratio == 0.2
    assert restful.folders["enum"] == "enums"
    assert restful.response_naming.status_names["404"] == "NotFound"
    assert restful.response_naming.status_names["default"] == "UnexpectedError"

    assert "promote" in catalog.get("rpc").detection.verbs_at_end.values
    assert catalog.get("google").detection.custom_methods.pattern == r":\w+"
    assert catalog.get("bian").detection.operation_id_patterns


def test_resolve_maps_unknown_styles_to_fallback():
    catalog = load_catalog()
    assert catalog.resolve("rpc") == "rpc"
    assert catalog.resolve("standard") == "conservative"


def test_custom_catalog(tmp_path):
    """Test loading scaffoldings from a user file."""
    config = tmp_path / "scaffoldings.yaml"
    config.write_text(
        "fallback: flat\n"
        "scaffoldings:\n"
        "  flat:\n"
        "    schemaClassification: false\n"
        "  actions:\n"
        "    detection:\n"
        "      verbsAtEnd:\n"
        "        values: [approve]\n"
        "        minRatio: 0.5\n"
        "      pluralResources: true\n"
    )
    catalog = load_catalog(config)

    assert catalog.names() == ["flat", "actions"]
    assert catalog.resolve("standard") == "flat"
    detection = catalog.get("actions").detection
    assert detection.verbs_at_end.values == ["approve"]
    assert detection.plural_resources.min_ratio == 0.0


def test_empty_catalog_file(tmp_path):
    config = tmp_path / "empty.yaml"
    config.write_text("")
    catalog = load_catalog(config)
    assert catalog.names() == []


@pytest.mark.parametrize(
    "content",
    [
        "scaffoldings: [unclosed\n",
        "- just\n- a list\n",
        "scaffoldings:\n  restful:\n    folders: not-a-mapping\n",
    ],
)
def test_invalid_catalog(tmp_path, content):
    """Test that broken catalogs raise ConfigurationError."""
    config = tmp_path / "broken.yaml"
    config.write_text(content)
    with pytest.raises(ConfigurationError):
        load_catalog(config)


def test_missing_catalog(tmp_path):
    with pytest.raises(ConfigurationError):
        load_catalog(tmp_path / "missing.yaml")


def test_unknown_scaffolding_message():
    """Test that lookup errors list the valid names."""
    with pytest.raises(ConfigurationError, match="Available: conservative, restful"):
        load_catalog().get("nope")


def test_default_settings():
    settings = load_settings()
    assert settings.output_dir == "./src"
    assert settings.main_file_name == "main"
    assert settings.file_extension == ".yaml"
    assert settings.naming.components == "PascalCase"
    assert settings.naming.paths == "kebab-case"
    assert settings.affixes.enabled is False
    assert settings.clean_output_dir is True


def test_settings_file(tmp_path):
    """Test all settings sections."""
    config = tmp_path / "modularize.yaml"
    config.write_text(
        "paths:\n"
        "  output: ./out\n"
        "  mainFileName: openapi\n"
        "advanced:\n"
        "  fileExtension: .yml\n"
        "  indent: 4\n"
        "naming:\n"
        "  components: snake_case\n"
        "affixes:\n"
        "  enabled: true\n"
        "  suffixes:\n"
        "    parameters: Param\n"
        "behavior:\n"
        "  cleanOutputDir: false\n"
    )
    settings = load_settings(config)

    assert settings.output_dir == "./out"
    assert settings.main_file_name == "openapi"
    assert settings.file_extension == ".yml"
    assert settings.indent == 4
    assert settings.naming.components == "snake_case"
    assert settings.naming.paths == "kebab-case"
    assert settings.affixes.suffixes == {"parameters": "Param"}
    assert settings.clean_output_dir is False


def test_invalid_settings(tmp_path):
    config = tmp_path / "modularize.yaml"
    config.write_text("naming: [1, 2]\n")
    with pytest.raises(ConfigurationError):
        load_settings(config)


def test_unknown_naming_convention(tmp_path):
    """Test that an unknown convention lists the valid ones."""
    config = tmp_path / "modularize.yaml"
    config.write_text("naming:\n  paths: Train-Case\n")
    with pytest.raises(ConfigurationError, match="Available: PascalCase, camelCase"):
        load_settings(config)
