"""
Naming conventions for generated file names and component identifiers.

Every generated name goes through this module: schema and response file
names, path file slugs and the names synthesized for unmapped references.
"""

import logging
import re
from typing import Dict, List, Optional, Set

from .models import AffixesConfig, NamingConfig

logger = logging.getLogger(__name__)

CONVENTIONS = (
    "PascalCase",
    "camelCase",
    "snake_case",
    "kebab-case",
    "lowercase",
    "UPPERCASE",
)

_WORD_BOUNDARY_RE = re.compile(r"(?<=[A-Za-z0-9])(?=[A-Z])")
_SEPARATOR_RE = re.compile(r"[_\-\s]+")
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")
_DASHES_RE = re.compile(r"-+")


def to_words(name: Optional[str]) -> List[str]:
    """Split an identifier into lowercase word tokens.

    Handles CamelCase, snake_case, kebab-case and space separated input.
    Every uppercase letter that follows a letter or digit starts a new word,
    so acronyms split letter by letter ("HTTPCode" -> h, t, t, p, code).

    Args:
        name: Identifier to split

    Returns:
        List of lowercase words, empty for empty or non-string input
    """
    if not name or not isinstance(name, str):
        return []
    spaced = _WORD_BOUNDARY_RE.sub(" ", name)
    return [word.lower() for word in _SEPARATOR_RE.split(spaced) if word]


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def apply_convention(words: List[str], convention: str = "PascalCase") -> str:
    """Join word tokens according to a naming convention.

    Unknown conventions fall back to PascalCase.
    """
    if not words:
        return ""

    if convention == "PascalCase":
        return "".join(_capitalize(w) for w in words)
    if convention == "camelCase":
        return words[0].lower() + "".join(_capitalize(w) for w in words[1:])
    if convention == "snake_case":
        return "_".join(words)
    if convention == "kebab-case":
        return "-".join(words)
    if convention == "lowercase":
        return "".join(words)
    if convention == "UPPERCASE":
        return "_".join(words).upper()

    logger.warning("Unknown naming convention %r, using PascalCase", convention)
    return apply_convention(words, "PascalCase")


def apply_naming_convention(name: Optional[str], convention: str = "PascalCase") -> str:
    """Re-case an identifier, e.g. ``user_profile`` -> ``UserProfile``."""
    if not name or not isinstance(name, str):
        return ""
    words = to_words(name)
    if not words:
        return name
    return apply_convention(words, convention)


def apply_affixes(name: Optional[str], prefix: str = "", suffix: str = "") -> str:
    """Add a prefix and suffix unless the name already carries them."""
    if not name or not isinstance(name, str):
        return ""

    result = name
    if prefix and not result.startswith(prefix):
        result = prefix + result
    if suffix and not result.endswith(suffix):
        result = result + suffix
    return result


def apply_full_naming(
    name: Optional[str],
    convention: str = "PascalCase",
    prefix: str = "",
    suffix: str = "",
) -> str:
    if not name or not isinstance(name, str):
        return ""
    return apply_affixes(apply_naming_convention(name, convention), prefix, suffix)


def is_valid_convention(convention: str) -> bool:
    return convention in CONVENTIONS


def sanitize_component_name(name: Optional[str]) -> str:
    """Replace characters that are unsafe in file names with dashes."""
    if not name or not isinstance(name, str):
        return ""
    cleaned = _UNSAFE_CHARS_RE.sub("-", name.strip())
    return _DASHES_RE.sub("-", cleaned).strip("-")


def generate_component_filename(
    name: str,
    kind: str,
    naming: Optional[NamingConfig] = None,
    affixes: Optional[AffixesConfig] = None,
) -> str:
    """Build the file name (without extension) for a component.

    Response names are produced by the response normalizer and are returned
    untouched so file names and refs stay aligned.

    Args:
        name: Component key (e.g. the key under ``components.parameters``)
        kind: Component kind (schemas, responses, parameters, ...)
        naming: Naming conventions, PascalCase components by default
        affixes: Per-kind prefixes and suffixes, applied only when enabled

    Returns:
        File name without extension, e.g. "UserSchema"
    """
    if not name or not isinstance(name, str):
        return ""
    if kind == "responses":
        return name

    naming = naming or NamingConfig()
    prefix = suffix = ""
    if affixes is not None and affixes.enabled:
        prefix = affixes.prefixes.get(kind, "")
        suffix = affixes.suffixes.get(kind, "")
    return apply_full_naming(sanitize_component_name(name), naming.components, prefix, suffix)


def slugify_path(route: str) -> str:
    """Turn a route template into a file slug: ``/users/{id}`` -> ``users-id``."""
    slug = route.replace("{", "").replace("}", "")
    slug = re.sub(r"[/:]+", "-", slug)
    slug = sanitize_component_name(slug)
    return slug or "root"


class UsedNames:
    """Names already handed out during one transform call.

    Names are tracked per scope (typically the destination folder). A taken
    name gets a counter inserted before its terminal suffix:
    ``RetrieveEmployeeResponse`` -> ``RetrieveEmployee1Response``.
    """

    def __init__(self) -> None:
        self._taken: Dict[str, Set[str]] = {}

    def claim(self, name: str, suffix: str = "", scope: str = "") -> str:
        """Reserve ``name`` (or the first free numbered variant) in ``scope``."""
        taken = self._taken.setdefault(scope, set())
        unique = name
        if unique in taken:
            if suffix and name.endswith(suffix) and len(name) > len(suffix):
                base, tail = name[: -len(suffix)], suffix
            else:
                base, tail = name, ""
            separator = "_" if base[-1:].isdigit() else ""
            counter = 1
            unique = f"{base}{separator}{counter}{tail}"
            while unique in taken:
                counter += 1
                unique = f"{base}{separator}{counter}{tail}"
        taken.add(unique)
        return unique
