"""
Transform an OpenAPI document according to a scaffolding.

Produces, without touching the filesystem:

- the transformed document (in memory)
- the schema mapping (name -> folder + file name)
- the response mapping (name -> folder + file name)
- the request body mapping (name -> folder + file name)

Writing files and rewriting ``$ref`` values is left to the writer, which
consumes these mappings.
"""

import copy
import logging
from typing import Any, Dict, Optional

from .classifier import build_schema_mapping, count_schema_types
from .detector import detect_api_style, detect_api_style_name, iter_operations
from .exceptions import ValidationError
from .models import (
    AnalysisReport,
    MappingEntry,
    NamingConfig,
    ScaffoldingCatalog,
    TransformResult,
    TransformStats,
)
from .naming import UsedNames
from .refs import replace_refs
from .responses import extract_inline_responses, normalize_existing_responses

logger = logging.getLogger(__name__)

REQUEST_BODY_FOLDER = "requestBodies"
REQUEST_BODY_SUFFIX = "Request"


def _section(document: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    current: Any = document
    for key in keys:
        if not isinstance(current, dict):
            return {}
        current = current.get(key)
    return current if isinstance(current, dict) else {}


def build_request_body_mapping(
    request_bodies: Any, used_names: Optional[UsedNames] = None
) -> Dict[str, MappingEntry]:
    """Destination of every request body, unique within its folder."""
    mapping: Dict[str, MappingEntry] = {}
    if not isinstance(request_bodies, dict):
        return mapping
    used_names = used_names if used_names is not None else UsedNames()
    for name in request_bodies:
        name = str(name)
        file_name = name if name.endswith(REQUEST_BODY_SUFFIX) else name + REQUEST_BODY_SUFFIX
        file_name = used_names.claim(
            file_name, suffix=REQUEST_BODY_SUFFIX, scope=REQUEST_BODY_FOLDER
        )
        mapping[name] = MappingEntry(
            folder=REQUEST_BODY_FOLDER, file_name=file_name, original=name
        )
    return mapping


def transform(
    openapi: Any,
    catalog: ScaffoldingCatalog,
    scaffolding: str = "conservative",
    style: Optional[str] = None,
    naming: Optional[NamingConfig] = None,
) -> TransformResult:
    """Transform an OpenAPI document according to a scaffolding.

    Args:
        openapi: Parsed OpenAPI document (never modified)
        catalog: Available scaffoldings
        scaffolding: Name of the scaffolding to apply
        style: Force an API style instead of detecting it
        naming: Naming conventions, PascalCase components by default

    Returns:
        TransformResult with the transformed document, mapping tables,
        the style used and statistics

    Raises:
        ValidationError: If the document is not a mapping
        ConfigurationError: If the scaffolding is not in the catalog
    """
    if not isinstance(openapi, dict):
        raise ValidationError("OpenAPI document must be a mapping")

    scaffolding_config = catalog.get(scaffolding)
    naming = naming or NamingConfig()
    detected_style = style or detect_api_style_name(openapi.get("paths"), catalog)
    logger.info("Transforming with scaffolding %s (style %s)", scaffolding, detected_style)

    transformed = copy.deepcopy(openapi)
    used_names = UsedNames()
    stats = TransformStats()

    # 1. Classify and map schemas
    schema_mapping = build_schema_mapping(
        _section(transformed, "components", "schemas"),
        scaffolding_config,
        naming,
        used_names,
    )
    stats.schemas_classified = len(schema_mapping)

    # 2. Normalize existing responses
    normalized = normalize_existing_responses(
        _section(transformed, "components", "responses"),
        scaffolding_config,
        naming,
        used_names,
    )
    if normalized.ref_map:
        transformed = replace_refs(transformed, normalized.ref_map)

    # 3. Extract inline responses
    extracted = extract_inline_responses(
        transformed.get("paths"), scaffolding_config, detected_style, used_names
    )
    if isinstance(transformed.get("paths"), dict):
        transformed["paths"] = extracted.paths
    stats.responses_extracted = len(extracted.responses)
    stats.responses_normalized = len(normalized.mapping)

    # aliases between component responses must follow the renames too
    responses = {**replace_refs(normalized.responses, normalized.ref_map), **extracted.responses}
    if responses:
        if not isinstance(transformed.get("components"), dict):
            transformed["components"] = {}
        transformed["components"]["responses"] = responses

    response_mapping = {**normalized.mapping, **extracted.mapping}

    # 4. Request body mapping
    request_body_mapping = build_request_body_mapping(
        _section(transformed, "components", "requestBodies"), used_names
    )
    stats.request_bodies_normalized = len(request_body_mapping)

    return TransformResult(
        openapi=transformed,
        schema_mapping=schema_mapping,
        response_mapping=response_mapping,
        request_body_mapping=request_body_mapping,
        detected_style=detected_style,
        scaffolding=scaffolding,
        stats=stats,
    )


def analyze(openapi: Any, catalog: ScaffoldingCatalog) -> AnalysisReport:
    """Summarise a document without transforming it."""
    if not isinstance(openapi, dict):
        raise ValidationError("OpenAPI document must be a mapping")

    paths = openapi.get("paths")
    detection = detect_api_style(paths, catalog)
    schemas = _section(openapi, "components", "schemas")

    inline_responses = 0
    for _route, _method, operation in iter_operations(paths):
        responses = operation.get("responses")
        if not isinstance(responses, dict):
            continue
        for response in responses.values():
            if isinstance(response, dict) and "$ref" not in response:
                inline_responses += 1

    return AnalysisReport(
        detected_style=detection.style,
        confidence=detection.confidence,
        scores=detection.scores,
        paths_count=len(paths) if isinstance(paths, dict) else 0,
        schemas_count=len(schemas),
        schemas_by_type=count_schema_types(schemas),
        existing_responses_count=len(_section(openapi, "components", "responses")),
        inline_responses_count=inline_responses,
        request_bodies_count=len(_section(openapi, "components", "requestBodies")),
        parameters_count=len(_section(openapi, "components", "parameters")),
    )
