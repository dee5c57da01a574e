"""
Reference rewriting for modularized OpenAPI documents.

Internal pointers of the form ``#/components/<kind>/<name>`` are turned into
relative file references once content is split across files:

- from a ``paths`` file, every pointer goes through the entrypoint:
  ``#/components/schemas/Pet`` -> ``../main.yaml#/components/schemas/Pet``
- from a component file, schemas and responses resolve through the mapping
  tables: ``#/components/schemas/Pet`` -> ``../objects/Pet.yaml``
- any other component kind points at its generic folder:
  ``#/components/parameters/limit`` -> ``../parameters/Limit.yaml``

Only string values that are entirely such a pointer are rewritten, which
covers ``$ref`` and ``discriminator.mapping`` values.
"""

import logging
import re
from typing import Any, Callable, Dict, Optional, Set

from .exceptions import ReferenceRewriteError
from .models import MappingEntry, RefRewriteConfig
from .naming import generate_component_filename

logger = logging.getLogger(__name__)

_COMPONENT_REF_RE = re.compile(r"^#/components/([a-zA-Z]+)/([^/]+)(/.*)?$")
_KEY_NOISE_RE = re.compile(r"[\s_-]+")


def normalize_key(value: Any) -> str:
    """Case and separator insensitive form of a component name."""
    return _KEY_NOISE_RE.sub("", str(value or "")).lower()


def build_case_insensitive_index(
    mapping: Optional[Dict[str, MappingEntry]],
) -> Dict[str, MappingEntry]:
    index: Dict[str, MappingEntry] = {}
    for name, entry in (mapping or {}).items():
        index.setdefault(normalize_key(name), entry)
    return index


def resolve_from_mapping(
    name: str,
    mapping: Optional[Dict[str, MappingEntry]],
    index: Optional[Dict[str, MappingEntry]] = None,
) -> Optional[MappingEntry]:
    """Find a mapping entry by exact name, then by normalized name."""
    if not mapping:
        return None
    if name in mapping:
        return mapping[name]
    if index is None:
        index = build_case_insensitive_index(mapping)
    return index.get(normalize_key(name))


def _walk(value: Any, rewrite: Callable[[str], str], active: Set[int]) -> Any:
    if isinstance(value, str):
        return rewrite(value)
    if isinstance(value, (dict, list)):
        marker = id(value)
        if marker in active:
            raise ReferenceRewriteError("Circular structure encountered")
        active.add(marker)
        try:
            if isinstance(value, dict):
                return {key: _walk(item, rewrite, active) for key, item in value.items()}
            return [_walk(item, rewrite, active) for item in value]
        finally:
            active.discard(marker)
    return value


def rewrite_strings(value: Any, rewrite: Callable[[str], str]) -> Any:
    """Return a copy of ``value`` with every string leaf passed through ``rewrite``.

    Raises:
        ReferenceRewriteError: If ``value`` contains itself
    """
    return _walk(value, rewrite, set())


def replace_refs(value: Any, ref_map: Dict[str, str]) -> Any:
    """Replace pointer strings that exactly match a key of ``ref_map``."""
    if not ref_map:
        return value
    return rewrite_strings(value, lambda text: ref_map.get(text, text))


def _component_ref_rewriter(
    config: RefRewriteConfig,
    schema_mapping: Optional[Dict[str, MappingEntry]],
    response_mapping: Optional[Dict[str, MappingEntry]],
    request_body_mapping: Optional[Dict[str, MappingEntry]] = None,
) -> Callable[[str], str]:
    schema_index = build_case_insensitive_index(schema_mapping)
    response_index = build_case_insensitive_index(response_mapping)
    extension = config.extension

    def target(folder: str, file_name: str, tail: Optional[str]) -> str:
        ref = f"../{folder}/{file_name}{extension}"
        return f"{ref}#{tail}" if tail else ref

    def rewrite(text: str) -> str:
        match = _COMPONENT_REF_RE.match(text)
        if not match:
            return text
        kind, name, tail = match.groups()

        if kind == "schemas":
            entry = resolve_from_mapping(name, schema_mapping, schema_index)
            if entry is not None:
                return target(entry.folder, entry.file_name, tail)
            file_name = generate_component_filename(
                name, "schemas", config.naming, config.affixes
            )
            logger.debug("No schema mapping for %s, using %s", name, file_name)
            return target("schemas", file_name, tail)

        if kind == "responses":
            entry = resolve_from_mapping(name, response_mapping, response_index)
            if entry is not None:
                return target(entry.folder or "responses", entry.file_name, tail)
            return target("responses", name, tail)

        if kind == "requestBodies" and request_body_mapping:
            entry = request_body_mapping.get(name)
            if entry is not None:
                return target(entry.folder, entry.file_name, tail)

        file_name = generate_component_filename(name, kind, config.naming, config.affixes)
        return target(kind, file_name, tail)

    return rewrite


def fix_refs(
    content: Any,
    component_type: str,
    config: Optional[RefRewriteConfig] = None,
    schema_mapping: Optional[Dict[str, MappingEntry]] = None,
    response_mapping: Optional[Dict[str, MappingEntry]] = None,
    request_body_mapping: Optional[Dict[str, MappingEntry]] = None,
) -> Any:
    """Rewrite the internal references of one fragment for its target file.

    Args:
        content: Fragment about to be written (path item, schema, response...)
        component_type: "paths", or the folder/kind the fragment is written to
        config: Entrypoint name, naming conventions, affixes and extension
        schema_mapping: Schema mapping table from the transform
        response_mapping: Response mapping table from the transform
        request_body_mapping: Request body mapping table from the transform

    Returns:
        A rewritten copy of the fragment, or the fragment itself if it could
        not be walked
    """
    config = config or RefRewriteConfig()

    if component_type == "paths":
        entrypoint = f"../{config.main_file_name}{config.extension}"

        def rewrite(text: str) -> str:
            if _COMPONENT_REF_RE.match(text):
                return entrypoint + text
            return text

    else:
        rewrite = _component_ref_rewriter(
            config, schema_mapping, response_mapping, request_body_mapping
        )

    try:
        return rewrite_strings(content, rewrite)
    except (ReferenceRewriteError, RecursionError) as e:
        logger.error("Could not rewrite references in %s fragment: %s", component_type, e)
        return content
