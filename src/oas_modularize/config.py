"""
Loading of scaffolding catalogs and writer settings from YAML files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pydantic
import yaml

from .exceptions import ConfigurationError
from .models import (
    AffixesConfig,
    ModularizeSettings,
    NamingConfig,
    ScaffoldingCatalog,
)
from .naming import CONVENTIONS, is_valid_convention

logger = logging.getLogger(__name__)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML mapping from disk.

    Args:
        path: File to read

    Returns:
        The parsed mapping, empty for an empty file

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must contain a mapping")
    return data


def load_catalog(path: Optional[Union[str, Path]] = None) -> ScaffoldingCatalog:
    """Load the scaffolding catalog.

    Args:
        path: YAML file with a ``scaffoldings`` section and an optional
            ``fallback`` name. The bundled defaults are used when omitted.

    Returns:
        The ScaffoldingCatalog

    Raises:
        ConfigurationError: If the file cannot be read or a scaffolding is invalid
    """
    source = Path(path) if path else DEFAULTS_PATH
    data = _read_yaml(source)

    try:
        catalog = ScaffoldingCatalog(
            scaffoldings=data.get("scaffoldings") or {},
            fallback=data.get("fallback") or "conservative",
        )
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid scaffolding configuration in {source}: {e}")

    logger.debug("Loaded scaffoldings %s from %s", catalog.names(), source)
    return catalog


def load_settings(path: Optional[Union[str, Path]] = None) -> ModularizeSettings:
    """Load writer settings.

    The file follows the layout::

        paths:
          output: ./src
          mainFileName: main
        advanced:
          fileExtension: .yaml
          indent: 2
        naming:
          components: PascalCase
          paths: kebab-case
        affixes:
          enabled: false
        behavior:
          cleanOutputDir: true

    Every section is optional.

    Args:
        path: YAML settings file, or None for the defaults

    Returns:
        ModularizeSettings

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    if not path:
        return ModularizeSettings()

    data = _read_yaml(path)
    paths = data.get("paths") or {}
    advanced = data.get("advanced") or {}
    behavior = data.get("behavior") or {}
    defaults = ModularizeSettings()

    try:
        settings = ModularizeSettings(
            output_dir=paths.get("output") or defaults.output_dir,
            main_file_name=paths.get("mainFileName") or defaults.main_file_name,
            file_extension=advanced.get("fileExtension") or defaults.file_extension,
            indent=advanced.get("indent") or defaults.indent,
            naming=NamingConfig(**(data.get("naming") or {})),
            affixes=AffixesConfig(**(data.get("affixes") or {})),
            clean_output_dir=behavior.get("cleanOutputDir") is not False,
        )
    except (pydantic.ValidationError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}")

    for convention in (settings.naming.components, settings.naming.paths):
        if not is_valid_convention(convention):
            raise ConfigurationError(
                f'Unknown naming convention "{convention}" in {path}. '
                f"Available: {', '.join(CONVENTIONS)}"
            )

    logger.debug("Loaded settings from %s", path)
    return settings
