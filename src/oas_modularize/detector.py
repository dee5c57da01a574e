"""
Heuristic API style detection.

Each scaffolding in a catalog may carry a ``detection`` block listing the
heuristics that recognise its style. Every heuristic yields a ratio over the
document's routes; the ratios are accumulated into a per-style score and the
best scoring style wins:

- restful: plural resources, few verbs embedded in the path
- rpc: action verbs at the end of the path (notify, approve, reject)
- google: custom methods with ``:action``
- bian: BIAN actions (Register, Retrieve, Execute, Exchange)
"""

import logging
import math
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .models import DetectionConfig, DetectionResult, ScaffoldingCatalog

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head", "trace")

DEFAULT_STYLE = "standard"

CUSTOM_METHOD_WEIGHT = 1.5

_VERSION_RE = re.compile(r"^v\d+$", re.IGNORECASE)


def iter_operations(paths: Any) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
    """Yield ``(route, method, operation)`` for every HTTP operation."""
    if not isinstance(paths, dict):
        return
    for route, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if not isinstance(method, str) or method.lower() not in HTTP_METHODS:
                continue
            if not isinstance(operation, dict):
                continue
            yield route, method.lower(), operation


def get_static_segments(route: str) -> List[str]:
    """Static segments of a route: ``/v1/users/{id}/notify`` -> users, notify."""
    segments = []
    for segment in route.split("/"):
        segment = segment.strip()
        if not segment or segment.startswith("{") or segment.endswith("}"):
            continue
        if _VERSION_RE.match(segment) or segment == "api":
            continue
        segments.append(segment)
    return segments


def _routes(paths: Any) -> List[str]:
    if not isinstance(paths, dict):
        return []
    return [route for route in paths if isinstance(route, str)]


def compute_verbs_at_end_ratio(paths: Any, verbs: Optional[List[str]]) -> float:
    """Share of routes whose last static segment is one of ``verbs``."""
    routes = _routes(paths)
    if not routes or not verbs:
        return 0.0

    verb_set = {verb.lower() for verb in verbs}
    total = 0
    matched = 0
    for route in routes:
        segments = get_static_segments(route)
        if not segments:
            continue
        total += 1
        last = segments[-1].lower()
        if last.startswith(":"):
            last = last[1:]
        if last in verb_set:
            matched += 1

    return matched / total if total else 0.0


def compute_plural_resources_ratio(paths: Any) -> float:
    """Share of routes whose first static segment looks like a plural noun."""
    total = 0
    plural = 0
    for route in _routes(paths):
        segments = get_static_segments(route)
        if not segments:
            continue
        total += 1
        resource = segments[0].lower()
        if resource.endswith("s") and not resource.endswith("ss"):
            plural += 1

    return plural / total if total else 0.0


def compute_custom_methods_ratio(paths: Any, pattern: str = r":\w+") -> float:
    """Share of routes containing a Google style custom method."""
    routes = _routes(paths)
    if not routes:
        return 0.0
    regex = re.compile(pattern)
    matched = sum(1 for route in routes if regex.search(route))
    return matched / len(routes)


def compute_verbs_in_path_ratio(
    paths: Any, verb_prefixes: Optional[List[str]] = None
) -> float:
    """Share of all static segments that start with a CRUD verb."""
    if verb_prefixes is None:
        verb_prefixes = ["get", "create", "update", "delete", "patch"]
    verbs = [verb.lower() for verb in verb_prefixes]

    total = 0
    with_verb = 0
    for route in _routes(paths):
        for segment in get_static_segments(route):
            total += 1
            lower = segment.lower().lstrip(":")
            if any(lower.startswith(verb) for verb in verbs):
                with_verb += 1

    return with_verb / total if total else 0.0


def compute_operation_id_pattern_ratio(
    paths: Any, patterns: Optional[List[str]]
) -> float:
    """Share of operationIds matching any of ``patterns``."""
    if not patterns:
        return 0.0

    regexes = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
    total = 0
    matched = 0
    for _route, _method, operation in iter_operations(paths):
        operation_id = operation.get("operationId")
        if not operation_id or not isinstance(operation_id, str):
            continue
        total += 1
        if any(regex.search(operation_id) for regex in regexes):
            matched += 1

    return matched / total if total else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_style(paths: Any, detection: DetectionConfig) -> Tuple[float, int]:
    """Score ``paths`` against one detection block.

    Returns:
        Tuple of (normalized score, number of checks performed)
    """
    score = 0.0
    checks = 0

    if detection.verbs_at_end is not None:
        checks += 1
        rule = detection.verbs_at_end
        ratio = compute_verbs_at_end_ratio(paths, rule.values)
        if ratio >= rule.min_ratio:
            score += ratio

    if detection.plural_resources is not None:
        checks += 1
        ratio = compute_plural_resources_ratio(paths)
        if ratio >= detection.plural_resources.min_ratio:
            score += ratio

    if detection.custom_methods is not None:
        checks += 1
        rule = detection.custom_methods
        ratio = compute_custom_methods_ratio(paths, rule.pattern or r":\w+")
        if ratio >= rule.min_ratio:
            score += ratio * CUSTOM_METHOD_WEIGHT

    if detection.verbs_in_path is not None:
        checks += 1
        rule = detection.verbs_in_path
        ratio = compute_verbs_in_path_ratio(paths, rule.verb_prefixes)
        if ratio <= rule.max_ratio:
            score += 1 - ratio

    if detection.operation_id_patterns is not None:
        checks += 1
        ratio = compute_operation_id_pattern_ratio(paths, detection.operation_id_patterns)
        if ratio >= detection.operation_id_patterns_min_ratio:
            score += ratio

    return (score / checks if checks else 0.0), checks


def detect_api_style(paths: Any, catalog: ScaffoldingCatalog) -> DetectionResult:
    """Guess which scaffolding style ``paths`` follows.

    Args:
        paths: The ``paths`` section of an OpenAPI document
        catalog: Scaffoldings whose ``detection`` blocks are scored

    Returns:
        DetectionResult with the winning style, a confidence between 0 and
        100 and the per-style scores rescaled to 0-100
    """
    results: List[Tuple[str, float]] = []
    for name, scaffolding in catalog.scaffoldings.items():
        detection = scaffolding.detection
        if detection is None or not detection.enabled:
            continue
        score, checks = score_style(paths, detection)
        logger.debug("Style %s scored %.3f over %d checks", name, score, checks)
        results.append((name, score))

    if not results:
        return DetectionResult(style=DEFAULT_STYLE, confidence=0, scores={})

    results.sort(key=lambda result: result[1], reverse=True)
    top_style, top_score = results[0]

    if len(results) > 1:
        confidence = min(100, _round_half_up((top_score - results[1][1]) * 100 + 50))
    else:
        confidence = 100

    scores = {name: min(100, _round_half_up(score * 100)) for name, score in results}

    return DetectionResult(
        style=top_style if top_score > 0 else DEFAULT_STYLE,
        confidence=confidence,
        scores=scores,
    )


def detect_api_style_name(paths: Any, catalog: ScaffoldingCatalog) -> str:
    return detect_api_style(paths, catalog).style
