"""
Writes a transformed OpenAPI document as a tree of cross-referencing files.

Layout of the output directory::

    main.yaml
    paths/<route-slug>.yaml
    components/<folder>/<FileName>.yaml
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .config import load_catalog
from .detector import detect_api_style
from .exceptions import ValidationError
from .models import (
    MappingEntry,
    ModularizeReport,
    ModularizeSettings,
    RefRewriteConfig,
    ScaffoldingCatalog,
    TransformResult,
)
from .naming import (
    UsedNames,
    apply_naming_convention,
    generate_component_filename,
    slugify_path,
)
from .refs import fix_refs
from .transform import transform

logger = logging.getLogger(__name__)

# Component kinds written from the document itself rather than a mapping table
OTHER_COMPONENT_TYPES = (
    "requestBodies",
    "parameters",
    "headers",
    "securitySchemes",
    "examples",
    "links",
    "callbacks",
)

ENTRYPOINT_KEYS = ("openapi", "info", "servers", "tags", "security")


class _NoAliasDumper(yaml.SafeDumper):
    """SafeDumper that writes shared objects out in full instead of as aliases."""

    def ignore_aliases(self, data):
        return True


def dump_yaml(data: Any, path: Union[str, Path], indent: int = 2) -> None:
    """Write ``data`` as block-style YAML, keeping key order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(
            data,
            f,
            Dumper=_NoAliasDumper,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            indent=indent,
        )


class Modularizer:
    """Splits one OpenAPI document into a modular file tree."""

    def __init__(
        self,
        openapi_spec: Dict[str, Any],
        catalog: Optional[ScaffoldingCatalog] = None,
        settings: Optional[ModularizeSettings] = None,
    ):
        """Initialize the modularizer.

        Args:
            openapi_spec: Dictionary containing the OpenAPI specification
            catalog: Scaffoldings to choose from, the bundled ones by default
            settings: Output layout and naming settings
        """
        if not isinstance(openapi_spec, dict):
            raise ValidationError("OpenAPI document must be a mapping")
        self.spec = openapi_spec
        self.catalog = catalog if catalog is not None else load_catalog()
        self.settings = settings or ModularizeSettings()

    @classmethod
    def from_yaml(
        cls,
        yaml_path: Union[str, Path],
        catalog: Optional[ScaffoldingCatalog] = None,
        settings: Optional[ModularizeSettings] = None,
    ) -> "Modularizer":
        """Create a modularizer from an OpenAPI YAML (or JSON) file.

        Args:
            yaml_path: Path to the OpenAPI file

        Returns:
            An instance of Modularizer

        Raises:
            ValidationError: If the file cannot be read or parsed
        """
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                spec = yaml.safe_load(f)
        except OSError as e:
            raise ValidationError(f"Could not read {yaml_path}: {e}")
        except yaml.YAMLError as e:
            raise ValidationError(f"Could not parse {yaml_path}: {e}")
        return cls(spec, catalog=catalog, settings=settings)

    def choose_scaffolding(self) -> str:
        """Scaffolding matching the detected style, or the catalog fallback."""
        detection = detect_api_style(self.spec.get("paths"), self.catalog)
        name = self.catalog.resolve(detection.style)
        logger.info(
            "Detected style %s (%d%% confidence), using scaffolding %s",
            detection.style,
            detection.confidence,
            name,
        )
        return name

    def plan(
        self, scaffolding: Optional[str] = None, style: Optional[str] = None
    ) -> TransformResult:
        """Transform the document without writing anything.

        Args:
            scaffolding: Scaffolding to apply; detected when omitted
            style: Style used for response naming; the scaffolding name when omitted

        Returns:
            TransformResult
        """
        scaffolding = scaffolding or self.choose_scaffolding()
        return transform(
            self.spec,
            self.catalog,
            scaffolding=scaffolding,
            style=style or scaffolding,
            naming=self.settings.naming,
        )

    def _ref_config(self) -> RefRewriteConfig:
        return RefRewriteConfig(
            main_file_name=self.settings.main_file_name,
            naming=self.settings.naming,
            affixes=self.settings.affixes,
            extension=self.settings.file_extension,
        )

    def path_file_names(self, paths: Any) -> Dict[str, str]:
        """File name (without extension) of every route in ``paths``."""
        used_names = UsedNames()
        names = {}
        for route in paths if isinstance(paths, dict) else {}:
            slug = apply_naming_convention(
                slugify_path(str(route)), self.settings.naming.paths
            )
            names[route] = used_names.claim(slug or "root")
        return names

    def other_component_file_names(
        self, result: TransformResult
    ) -> Dict[str, Dict[str, MappingEntry]]:
        """Destination of every component that is not a schema or a response."""
        components = result.openapi.get("components")
        components = components if isinstance(components, dict) else {}
        destinations: Dict[str, Dict[str, MappingEntry]] = {}

        for kind in OTHER_COMPONENT_TYPES:
            items = components.get(kind)
            if not isinstance(items, dict) or not items:
                continue
            entries = {}
            for name in items:
                if kind == "requestBodies" and name in result.request_body_mapping:
                    entries[name] = result.request_body_mapping[name]
                    continue
                file_name = generate_component_filename(
                    str(name), kind, self.settings.naming, self.settings.affixes
                )
                entries[name] = MappingEntry(
                    folder=kind, file_name=file_name, original=str(name)
                )
            destinations[kind] = entries
        return destinations

    def _write_fragment(
        self,
        content: Any,
        component_type: str,
        path: Path,
        result: TransformResult,
    ) -> None:
        fixed = fix_refs(
            content,
            component_type,
            self._ref_config(),
            result.schema_mapping,
            result.response_mapping,
            result.request_body_mapping,
        )
        dump_yaml(fixed, path, self.settings.indent)

    def _write_mapped(
        self,
        items: Any,
        mapping: Dict[str, MappingEntry],
        components_dir: Path,
        result: TransformResult,
    ) -> int:
        count = 0
        if not isinstance(items, dict):
            return count
        extension = self.settings.file_extension
        for name, content in items.items():
            entry = mapping.get(name)
            if entry is None:
                logger.warning("No destination for component %s, skipping", name)
                continue
            path = components_dir / entry.folder / f"{entry.file_name}{extension}"
            self._write_fragment(content, entry.folder, path, result)
            count += 1
        return count

    def build_entrypoint(
        self,
        result: TransformResult,
        path_files: Optional[Dict[str, str]] = None,
        other_files: Optional[Dict[str, Dict[str, MappingEntry]]] = None,
    ) -> Dict[str, Any]:
        """Build the entrypoint document referencing every written file.

        Args:
            result: Transform result being written
            path_files: Route -> file name, computed when omitted
            other_files: Kind -> name -> destination, computed when omitted

        Returns:
            The entrypoint as a dictionary
        """
        openapi = result.openapi
        extension = self.settings.file_extension
        if path_files is None:
            path_files = self.path_file_names(openapi.get("paths"))
        if other_files is None:
            other_files = self.other_component_file_names(result)

        def component_ref(entry: MappingEntry) -> Dict[str, str]:
            return {"$ref": f"./components/{entry.folder}/{entry.file_name}{extension}"}

        entrypoint: Dict[str, Any] = {}
        for key in ENTRYPOINT_KEYS:
            if key in openapi:
                entrypoint[key] = openapi[key]
        if "externalDocs" in openapi:
            entrypoint["externalDocs"] = openapi["externalDocs"]
        for key, value in openapi.items():
            if isinstance(key, str) and key.startswith("x-"):
                entrypoint[key] = value

        entrypoint["paths"] = {
            route: {"$ref": f"./paths/{file_name}{extension}"}
            for route, file_name in path_files.items()
        }

        components: Dict[str, Any] = {}
        if result.schema_mapping:
            components["schemas"] = {
                name: component_ref(entry) for name, entry in result.schema_mapping.items()
            }
        if result.response_mapping:
            components["responses"] = {
                name: component_ref(entry) for name, entry in result.response_mapping.items()
            }
        for kind, entries in other_files.items():
            components[kind] = {name: component_ref(entry) for name, entry in entries.items()}
        if components:
            entrypoint["components"] = components

        return entrypoint

    def write(
        self, result: TransformResult, output_dir: Optional[Union[str, Path]] = None
    ) -> ModularizeReport:
        """Write a transform result to disk.

        Args:
            result: Output of ``plan`` (or ``transform``)
            output_dir: Target directory, ``settings.output_dir`` by default

        Returns:
            ModularizeReport describing what was written
        """
        output = Path(output_dir or self.settings.output_dir)
        extension = self.settings.file_extension

        if self.settings.clean_output_dir and output.exists():
            logger.info("Cleaning %s", output)
            shutil.rmtree(output)
        output.mkdir(parents=True, exist_ok=True)

        openapi = result.openapi
        components = openapi.get("components")
        components = components if isinstance(components, dict) else {}
        components_dir = output / "components"
        written: Dict[str, int] = {}

        written["schemas"] = self._write_mapped(
            components.get("schemas"), result.schema_mapping, components_dir, result
        )
        written["responses"] = self._write_mapped(
            components.get("responses"), result.response_mapping, components_dir, result
        )

        paths = openapi.get("paths")
        path_files = self.path_file_names(paths)
        for route, file_name in path_files.items():
            self._write_fragment(
                paths[route], "paths", output / "paths" / f"{file_name}{extension}", result
            )
        written["paths"] = len(path_files)

        other_files = self.other_component_file_names(result)
        for kind, entries in other_files.items():
            written[kind] = self._write_mapped(components[kind], entries, components_dir, result)

        main_file = output / f"{self.settings.main_file_name}{extension}"
        dump_yaml(
            self.build_entrypoint(result, path_files, other_files),
            main_file,
            self.settings.indent,
        )

        for kind, count in written.items():
            logger.info("Wrote %d %s", count, kind)
        logger.info("Entrypoint written to %s", main_file)

        return ModularizeReport(
            scaffolding=result.scaffolding or result.detected_style,
            style=result.detected_style,
            output_dir=str(output),
            main_file=str(main_file),
            written=written,
            stats=result.stats,
        )

    def modularize(
        self,
        scaffolding: Optional[str] = None,
        style: Optional[str] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> ModularizeReport:
        """Plan and write in one go."""
        scaffolding = scaffolding or self.choose_scaffolding()
        return self.write(self.plan(scaffolding, style), output_dir)

