"""
Schema classification and schema mapping tables.
"""

import enum
import logging
from typing import Any, Dict, Optional

from .models import MappingEntry, NamingConfig, ScaffoldingConfig
from .naming import UsedNames, apply_naming_convention

logger = logging.getLogger(__name__)

FLAT_SCHEMA_FOLDER = "schemas"

PRIMITIVE_TYPES = ("string", "number", "integer", "boolean")


class SchemaType(str, enum.Enum):
    """Structural category of a schema definition."""

    OBJECT = "object"
    PROPERTY = "property"
    ENUM = "enum"
    ARRAY = "array"
    COMPOSITE = "composite"

    def __str__(self):
        return self.value


def classify_schema(schema: Any) -> SchemaType:
    """Classify a schema definition.

    Priority order:
        1. enum      -> any schema with an ``enum`` field
        2. array     -> ``type: array``
        3. composite -> ``allOf``, ``oneOf`` or ``anyOf``
        4. object    -> ``type: object`` with properties (entities)
        5. property  -> primitive types
        6. object    -> anything else (free-form)

    Args:
        schema: Schema definition; non-dict input is tolerated

    Returns:
        The schema's SchemaType
    """
    if not isinstance(schema, dict):
        return SchemaType.OBJECT

    if schema.get("enum") is not None:
        return SchemaType.ENUM
    if schema.get("type") == "array":
        return SchemaType.ARRAY
    if any(schema.get(key) is not None for key in ("allOf", "oneOf", "anyOf")):
        return SchemaType.COMPOSITE
    if schema.get("type") == "object" and schema.get("properties") is not None:
        return SchemaType.OBJECT
    if schema.get("type") in PRIMITIVE_TYPES:
        return SchemaType.PROPERTY

    return SchemaType.OBJECT


def count_schema_types(schemas: Any) -> Dict[str, int]:
    counts = {schema_type.value: 0 for schema_type in SchemaType}
    if isinstance(schemas, dict):
        for schema in schemas.values():
            counts[classify_schema(schema).value] += 1
    return counts


def build_schema_mapping(
    schemas: Any,
    scaffolding: ScaffoldingConfig,
    naming: Optional[NamingConfig] = None,
    used_names: Optional[UsedNames] = None,
) -> Dict[str, MappingEntry]:
    """Work out the folder and file name of every schema.

    Args:
        schemas: ``components.schemas`` of the document
        scaffolding: Scaffolding supplying folders and suffixes per type
        naming: Naming conventions, PascalCase components by default
        used_names: File names already taken; a fresh registry if omitted

    Returns:
        Mapping from schema name to its MappingEntry, in input order
    """
    if not isinstance(schemas, dict):
        return {}

    naming = naming or NamingConfig()
    used_names = used_names if used_names is not None else UsedNames()
    use_classification = scaffolding.schema_classification
    folders = scaffolding.folders
    suffixes = scaffolding.suffixes

    mapping: Dict[str, MappingEntry] = {}
    for name, schema in schemas.items():
        schema_type = classify_schema(schema)

        if use_classification and folders.get(schema_type.value):
            folder = folders[schema_type.value]
            suffix = suffixes.get(schema_type.value, "")
        else:
            folder = FLAT_SCHEMA_FOLDER
            suffix = suffixes.get("schemas", "")

        file_name = apply_naming_convention(str(name), naming.components)
        if suffix and not file_name.endswith(suffix):
            file_name += suffix
        file_name = used_names.claim(file_name, suffix=suffix, scope=folder)

        mapping[name] = MappingEntry(
            folder=folder,
            file_name=file_name,
            type=schema_type.value,
            original=str(name),
        )
        logger.debug("Schema %s -> %s/%s", name, folder, file_name)

    return mapping
