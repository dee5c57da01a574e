"""
Response normalization, extraction and naming.

Named responses under ``components.responses`` are renamed to a canonical
``<Name>Response`` form. Inline responses found in operations are pulled out
into shared components, deduplicated by status code and content, and given
names that follow the API style:

    POST /employees/{employeeId}/promote  200  rpc      -> PromoteEmployeeResponse
    GET  /employees/{id}                  200  restful  -> RetrieveEmployeeResponse
    any  any                              404  any      -> NotFoundResponse
"""

import copy
import hashlib
import json
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from .detector import iter_operations
from .models import MappingEntry, NamingConfig, ScaffoldingConfig
from .naming import UsedNames, apply_affixes, apply_convention, apply_naming_convention

logger = logging.getLogger(__name__)

RESPONSE_SUFFIX = "Response"

RESPONSE_REF_PREFIX = "#/components/responses/"

# Styles whose success responses are named after an explicit action
ACTION_STYLES = ("bian", "rpc", "google")

KNOWN_ACTIONS = (
    # BIAN
    "Register",
    "Retrieve",
    "Execute",
    "Exchange",
    "Control",
    "Request",
    "Initiate",
    "Create",
    "Evaluate",
    "Provide",
    "Notify",
    "Capture",
    # RPC
    "notify",
    "approve",
    "reject",
    "activate",
    "deactivate",
    "transfer",
    "promote",
    "calculate",
    "search",
    "generate",
    "archive",
    "delete",
)

_ACTION_WORDS = {action.lower() for action in KNOWN_ACTIONS}

# Leading operationId words that name what is done, not what it is done to
OPERATION_VERBS = _ACTION_WORDS | {
    "get",
    "list",
    "create",
    "update",
    "delete",
    "retrieve",
    "search",
}

METHOD_VERBS = {
    "get": "Retrieve",
    "post": "Create",
    "put": "Update",
    "patch": "Patch",
    "delete": "Delete",
}

_VERSION_RE = re.compile(r"^v\d+$", re.IGNORECASE)
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_OPERATION_ID_SPLIT_RE = re.compile(r"[\s_-]+")
_STATUS_CODE_RE = re.compile(r"(\d{3})")
_TRAILING_CODE_RE = re.compile(r"\d{3}$")
_TRAILING_RESPONSE_RE = re.compile(r"Response$", re.IGNORECASE)
_SENTENCE_END_RE = re.compile(r"[.\n]")
_ALNUM_WORD_RE = re.compile(r"[A-Za-z0-9]+")


class NormalizedResponses(NamedTuple):
    responses: Dict[str, Any]
    mapping: Dict[str, MappingEntry]
    ref_map: Dict[str, str]


class ExtractedResponses(NamedTuple):
    paths: Dict[str, Any]
    responses: Dict[str, Any]
    mapping: Dict[str, MappingEntry]


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def hash_content(content: Any) -> str:
    """Short, stable digest of a JSON-compatible value."""
    return hashlib.md5(_canonical_json(content).encode("utf-8")).hexdigest()[:8]


def is_simple_response(response: Any) -> bool:
    """A response without a body: no keys at all, or only a description."""
    if not isinstance(response, dict):
        return False
    keys = list(response)
    return not keys or keys == ["description"]


def get_content_signature(response: Any) -> Optional[str]:
    """Canonical media-type -> schema signature of a response body.

    Examples and descriptions are ignored so structurally identical bodies
    produce the same signature.
    """
    if not isinstance(response, dict) or not isinstance(response.get("content"), dict):
        return None

    signature = {}
    for media_type, media in response["content"].items():
        schema = media.get("schema") if isinstance(media, dict) else None
        signature[str(media_type)] = {"schema": schema}
    return _canonical_json(signature)


def response_dedupe_key(status_code: str, response: Dict[str, Any]) -> Tuple[str, ...]:
    """Bucket key under which equivalent inline responses share one component."""
    if is_simple_response(response):
        return ("simple", status_code)

    signature = get_content_signature(response)
    if signature is not None and set(response) <= {"description", "content"}:
        return ("content", status_code, signature)

    return ("hash", status_code, hash_content(response))


def is_2xx_status(status_code: Any) -> bool:
    code = str(status_code).strip()
    if code.isdigit():
        return 200 <= int(code) < 300
    return code.upper() == "2XX"


def naive_singularize(name: str) -> str:
    if not name:
        return name
    lower = name.lower()
    if lower.endswith("ies"):
        return name[:-3] + "y"
    if lower.endswith("ses"):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return name[:-1]
    return name


def _route_parts(route: str) -> Tuple[List[str], Optional[str]]:
    """Static segments of a route and its Google custom method, if any.

    ``/v1/employees/{id}:promote`` -> (["employees"], "promote")
    """
    raw_segments = [segment for segment in route.split("/") if segment]
    segments = []
    custom_method = None
    for index, raw in enumerate(raw_segments):
        base, separator, custom = raw.partition(":")
        if separator and custom and index == len(raw_segments) - 1:
            custom_method = custom
        if not base or base.startswith("{") or _VERSION_RE.match(base) or base == "api":
            continue
        segments.append(base)
    return segments, custom_method


def _entity_from_operation_id(operation_id: str) -> Optional[str]:
    words = _OPERATION_ID_SPLIT_RE.split(_CAMEL_RE.sub(r"\1 \2", operation_id.strip()))
    for word in words:
        if word and word.lower() not in OPERATION_VERBS:
            return apply_naming_convention(word, "PascalCase")
    return None


def infer_entity(route: Any, operation: Optional[Dict[str, Any]] = None) -> str:
    """Infer the entity a response is about.

    The operationId wins when it names one (``getEmployeeById`` -> Employee);
    otherwise the last static path segment is singularized
    (``/employees/{id}/promote`` -> Employee).
    """
    operation_id = operation.get("operationId") if isinstance(operation, dict) else None
    if isinstance(operation_id, str) and operation_id.strip():
        entity = _entity_from_operation_id(operation_id)
        if entity:
            return entity

    if not isinstance(route, str):
        return "Resource"

    segments, custom_method = _route_parts(route)
    if not segments:
        return "Resource"

    last = segments[-1]
    if custom_method is None and len(segments) > 1 and last.lower() in _ACTION_WORDS:
        last = segments[-2]

    entity = naive_singularize(apply_naming_convention(last, "PascalCase"))
    return entity or "Resource"


def infer_action(route: Any, method: Optional[str] = None) -> Optional[str]:
    """Infer an explicit action from a route, for RPC, BIAN and Google styles.

    ``/employees/{id}/notify`` -> Notify, ``/employees/{id}:promote`` -> Promote.
    Returns None for plain resource routes.
    """
    if not isinstance(route, str):
        return None

    segments, custom_method = _route_parts(route)
    if custom_method:
        return apply_naming_convention(custom_method, "PascalCase")
    if not segments:
        return None

    last = segments[-1]
    if last.lower() in _ACTION_WORDS:
        return apply_naming_convention(last, "PascalCase")
    return None


def verb_for_method(method: Optional[str]) -> str:
    return METHOD_VERBS.get((method or "").lower(), "Operation")


def status_response_name(
    status_code: Any, status_names: Optional[Dict[str, str]] = None
) -> str:
    """Semantic name for a non-success status, e.g. 404 -> NotFoundResponse."""
    code = str(status_code).strip()
    base = (status_names or {}).get(code)
    if not base:
        if code[:1].isdigit():
            base = f"Status{code.upper()}"
        else:
            base = apply_naming_convention(code, "PascalCase") or "Status"
    return apply_affixes(base, "", RESPONSE_SUFFIX)


def build_response_name(
    status_code: Any,
    route: Any,
    method: Optional[str],
    operation: Optional[Dict[str, Any]],
    style: Optional[str],
    status_names: Optional[Dict[str, str]] = None,
) -> str:
    """Generate a response name for one operation response.

    Error responses get status driven names whatever the style. Success
    responses are ``{Action}{Entity}Response`` for bian, rpc and google
    styles and ``{MethodVerb}{Entity}Response`` otherwise.
    """
    if not is_2xx_status(status_code):
        return status_response_name(status_code, status_names)

    entity = infer_entity(route, operation)
    verb = verb_for_method(method)

    if style in ACTION_STYLES:
        action = infer_action(route, method)
        return f"{action or verb}{entity}{RESPONSE_SUFFIX}"

    return f"{verb}{entity}{RESPONSE_SUFFIX}"


def _description_name(description: Any) -> str:
    if not isinstance(description, str) or not description.strip():
        return ""
    sentence = _SENTENCE_END_RE.split(description.strip(), maxsplit=1)[0]
    words = [word.lower() for word in _ALNUM_WORD_RE.findall(sentence) if not word.isdigit()]
    return apply_convention(words, "PascalCase")


def normalize_existing_responses(
    responses: Any,
    scaffolding: Optional[ScaffoldingConfig] = None,
    naming: Optional[NamingConfig] = None,
    used_names: Optional[UsedNames] = None,
) -> NormalizedResponses:
    """Rename the responses already defined under ``components.responses``.

    Args:
        responses: ``components.responses`` of the document
        scaffolding: Scaffolding whose ``responseNaming`` drives the renaming
        naming: Naming conventions for the new names
        used_names: Names taken so far in this transform

    Returns:
        NormalizedResponses with the renamed responses, their mapping entries
        and an old-ref -> new-ref table for every name that changed
    """
    if not isinstance(responses, dict):
        return NormalizedResponses({}, {}, {})

    scaffolding = scaffolding or ScaffoldingConfig()
    naming = naming or NamingConfig()
    used_names = used_names if used_names is not None else UsedNames()
    config = scaffolding.response_naming
    folder = scaffolding.responses_folder

    normalized: Dict[str, Any] = {}
    mapping: Dict[str, MappingEntry] = {}
    ref_map: Dict[str, str] = {}

    for original_name, content in responses.items():
        original_name = str(original_name)
        code_match = _STATUS_CODE_RE.search(original_name)
        status_code = code_match.group(1) if code_match else "default"

        if config.enabled:
            base = None
            if code_match:
                base = config.status_names.get(status_code)
                if not base and config.use_description and isinstance(content, dict):
                    base = _description_name(content.get("description"))
            base = _TRAILING_RESPONSE_RE.sub("", _TRAILING_CODE_RE.sub("", base or original_name))
            stem = apply_naming_convention(base, naming.components) if base else ""
            new_name = stem if stem.endswith(RESPONSE_SUFFIX) else stem + RESPONSE_SUFFIX
        else:
            new_name = original_name
            if config.strip_status_code and code_match:
                new_name = _STATUS_CODE_RE.sub("", original_name, count=1) or original_name

        unique_name = used_names.claim(new_name, suffix=RESPONSE_SUFFIX, scope=folder)
        normalized[unique_name] = content
        mapping[unique_name] = MappingEntry(
            folder=folder,
            file_name=unique_name,
            status_code=status_code,
            original=original_name,
        )
        if unique_name != original_name:
            ref_map[RESPONSE_REF_PREFIX + original_name] = RESPONSE_REF_PREFIX + unique_name
            logger.debug("Response %s renamed to %s", original_name, unique_name)

    return NormalizedResponses(normalized, mapping, ref_map)


def extract_inline_responses(
    paths: Any,
    scaffolding: Optional[ScaffoldingConfig] = None,
    style: Optional[str] = None,
    used_names: Optional[UsedNames] = None,
) -> ExtractedResponses:
    """Move inline operation responses into named, shared components.

    Responses are bucketed by status code plus either nothing (no body), their
    content signature, or a hash of the whole response. The first response of
    a bucket, in document order, names it; later ones reuse that name.

    Args:
        paths: ``paths`` section of the document (not modified)
        scaffolding: Scaffolding whose ``responseNaming`` drives naming
        style: API style used to build success response names
        used_names: Names taken so far in this transform

    Returns:
        ExtractedResponses with the rewritten paths, the extracted responses
        and their mapping entries
    """
    if not isinstance(paths, dict):
        return ExtractedResponses({}, {}, {})

    scaffolding = scaffolding or ScaffoldingConfig()
    used_names = used_names if used_names is not None else UsedNames()
    config = scaffolding.response_naming
    folder = scaffolding.responses_folder

    transformed = copy.deepcopy(paths)
    extracted: Dict[str, Any] = {}
    mapping: Dict[str, MappingEntry] = {}
    buckets: Dict[Tuple[str, ...], str] = {}

    for route, method, operation in iter_operations(transformed):
        responses = operation.get("responses")
        if not isinstance(responses, dict):
            continue

        for status_code, response in list(responses.items()):
            if not isinstance(response, dict) or "$ref" in response:
                continue

            code = str(status_code)
            key = response_dedupe_key(code, response) if config.dedupe else None
            if key is not None and key in buckets:
                responses[status_code] = {"$ref": RESPONSE_REF_PREFIX + buckets[key]}
                continue

            if config.enabled:
                name = build_response_name(
                    code, route, method, operation, style, config.status_names
                )
            else:
                name = status_response_name(code)

            unique_name = used_names.claim(name, suffix=RESPONSE_SUFFIX, scope=folder)
            if key is not None:
                buckets[key] = unique_name

            extracted[unique_name] = response
            mapping[unique_name] = MappingEntry(
                folder=folder,
                file_name=unique_name,
                status_code=code,
                route=route,
                method=method,
            )
            responses[status_code] = {"$ref": RESPONSE_REF_PREFIX + unique_name}

    logger.debug("Extracted %d inline responses", len(extracted))
    return ExtractedResponses(transformed, extracted, mapping)
