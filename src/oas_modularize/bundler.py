"""
Bundler for modular OpenAPI trees.

This module is the inverse of the writer. It resolves the relative file
references of a modular tree back into one document:

- Component files listed in the entrypoint become internal pointers
  (e.g. "../objects/Pet.yaml" -> "#/components/schemas/Pet")
- References into the entrypoint become internal pointers
  (e.g. "../main.yaml#/components/schemas/Pet" -> "#/components/schemas/Pet")
- Any other file reference is loaded and inlined
  (e.g. "./common.yaml#/Health")
- Remote references (http, https) are left as they are
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

import yaml

from .exceptions import DereferenceError
from .writer import dump_yaml

logger = logging.getLogger(__name__)

COMPONENTS_PREFIX = "#/components/"

REMOTE_PREFIXES = ("http://", "https://")

# Kept by remove_unused even when nothing references them
ALWAYS_KEPT_COMPONENTS = ("securitySchemes",)


def _escape_pointer_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _unescape_pointer_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def resolve_json_pointer(obj: Any, pointer: str) -> Any:
    """Resolve a JSON pointer within an object.

    Args:
        obj: The object to traverse
        pointer: JSON pointer (e.g. "/properties/id"), "" for the whole object

    Returns:
        The referenced value

    Raises:
        DereferenceError: If the pointer cannot be resolved
    """
    if not pointer:
        return obj
    if not pointer.startswith("/"):
        raise DereferenceError(f"Invalid JSON pointer: {pointer}")

    current = obj
    for part in pointer[1:].split("/"):
        part = _unescape_pointer_token(part)
        try:
            if isinstance(current, list):
                current = current[int(part)]
            else:
                current = current[part]
        except (KeyError, TypeError, IndexError, ValueError):
            raise DereferenceError(f"Could not resolve pointer {pointer}")

    return current


def _split_ref(ref: str) -> Tuple[str, str]:
    if "#" in ref:
        file_part, pointer = ref.split("#", 1)
        return file_part, pointer
    return ref, ""


def _is_file_ref(ref: Any) -> bool:
    return (
        isinstance(ref, str)
        and bool(ref)
        and not ref.startswith("#")
        and not ref.startswith(REMOTE_PREFIXES)
    )


class Bundler:
    """Aggregates a modular OpenAPI tree into a single document."""

    def __init__(self, entrypoint_path: Union[str, Path]):
        """Initialize the bundler.

        Args:
            entrypoint_path: Path of the entrypoint file (e.g. "src/main.yaml")
        """
        self.entrypoint_path = Path(entrypoint_path).resolve()
        self._cache: Dict[Path, Any] = {}
        self._ref_stack: List[Tuple[Path, str]] = []
        self._index: Dict[Tuple[Path, str], str] = {}

    def _load_file(self, file_path: Path) -> Any:
        """Load a YAML or JSON file, caching the result.

        Raises:
            DereferenceError: If the file cannot be read or parsed
        """
        if file_path in self._cache:
            return self._cache[file_path]

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                if file_path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise DereferenceError(f"Failed to load {file_path}: {e}")

        self._cache[file_path] = data
        return data

    def _build_index(self, entrypoint: Dict[str, Any]) -> None:
        """Map every component file listed in the entrypoint to its pointer."""
        self._index.clear()
        components = entrypoint.get("components")
        if not isinstance(components, dict):
            return

        base_dir = self.entrypoint_path.parent
        for kind, items in components.items():
            if not isinstance(items, dict):
                continue
            for name, value in items.items():
                if not isinstance(value, dict) or not _is_file_ref(value.get("$ref")):
                    continue
                file_part, pointer = _split_ref(value["$ref"])
                target = (base_dir / file_part).resolve()
                internal = (
                    f"{COMPONENTS_PREFIX}{_escape_pointer_token(str(kind))}/"
                    f"{_escape_pointer_token(str(name))}"
                )
                self._index[(target, pointer)] = internal

    def _internal_pointer(self, file_path: Path, pointer: str) -> Optional[str]:
        """Internal pointer for a file reference, if it stays inside the bundle."""
        if file_path == self.entrypoint_path:
            return f"#{pointer}"
        if (file_path, pointer) in self._index:
            return self._index[(file_path, pointer)]
        if pointer and (file_path, "") in self._index:
            return self._index[(file_path, "")] + pointer
        return None

    def _rewrite_mapping_ref(self, ref: Any, base_dir: Path) -> Any:
        """Rewrite a discriminator mapping value that points at a bundled file."""
        if not _is_file_ref(ref):
            return ref
        file_part, pointer = _split_ref(ref)
        internal = self._internal_pointer((base_dir / file_part).resolve(), pointer)
        return internal if internal is not None else ref

    def _resolve_ref(self, ref: str, base_dir: Path, current_file: Path) -> Any:
        """Resolve a $ref string found in ``current_file``.

        Returns:
            Either a new ``$ref`` string (internal pointer or remote reference)
            or the inlined, resolved content

        Raises:
            DereferenceError: If the reference cannot be resolved
        """
        if ref.startswith(REMOTE_PREFIXES):
            return ref

        if ref.startswith("#"):
            if current_file == self.entrypoint_path:
                return ref
            file_path, pointer = current_file, ref[1:]
        else:
            file_part, pointer = _split_ref(ref)
            file_path = (base_dir / file_part).resolve()

        internal = self._internal_pointer(file_path, pointer)
        if internal is not None:
            return internal

        key = (file_path, pointer)
        if key in self._ref_stack:
            raise DereferenceError(f"Circular reference through {file_path}#{pointer}")

        self._ref_stack.append(key)
        try:
            target = resolve_json_pointer(self._load_file(file_path), pointer)
            return self._resolve_value(target, file_path.parent, file_path)
        finally:
            self._ref_stack.pop()

    def _resolve_value(self, value: Any, base_dir: Path, current_file: Path) -> Any:
        """Recursively resolve references inside a value.

        Args:
            value: Content loaded from ``current_file``
            base_dir: Directory relative references are resolved against
            current_file: File the content came from

        Returns:
            The resolved value
        """
        if isinstance(value, list):
            return [self._resolve_value(item, base_dir, current_file) for item in value]
        if not isinstance(value, dict):
            return value

        ref = value.get("$ref")
        if isinstance(ref, str):
            resolved = self._resolve_ref(ref, base_dir, current_file)
            # Preserve any additional properties
            siblings = {
                key: self._resolve_value(item, base_dir, current_file)
                for key, item in value.items()
                if key != "$ref"
            }
            if isinstance(resolved, str):
                return {"$ref": resolved, **siblings}
            if isinstance(resolved, dict):
                result = dict(siblings)
                result.update(resolved)
                return result
            return resolved

        result = {}
        for key, item in value.items():
            if key == "discriminator" and isinstance(item, dict):
                item = dict(item)
                mapping = item.get("mapping")
                if isinstance(mapping, dict):
                    item["mapping"] = {
                        name: self._rewrite_mapping_ref(target, base_dir)
                        for name, target in mapping.items()
                    }
            result[key] = self._resolve_value(item, base_dir, current_file)
        return result

    def _inline_entry(self, value: Any) -> Any:
        """Replace an entrypoint entry that points at a file by its content."""
        base_dir = self.entrypoint_path.parent
        if isinstance(value, dict) and _is_file_ref(value.get("$ref")):
            file_part, pointer = _split_ref(value["$ref"])
            file_path = (base_dir / file_part).resolve()
            key = (file_path, pointer)
            self._ref_stack.append(key)
            try:
                target = resolve_json_pointer(self._load_file(file_path), pointer)
                resolved = self._resolve_value(target, file_path.parent, file_path)
            finally:
                self._ref_stack.pop()
            siblings = {k: v for k, v in value.items() if k != "$ref"}
            if isinstance(resolved, dict):
                siblings.update(resolved)
                return siblings
            return resolved
        return self._resolve_value(value, base_dir, self.entrypoint_path)

    def bundle(self, remove_unused: bool = False) -> Dict[str, Any]:
        """Bundle the tree into one document.

        Args:
            remove_unused: Drop components nothing references

        Returns:
            The bundled OpenAPI document

        Raises:
            DereferenceError: If any reference cannot be resolved
        """
        self._ref_stack.clear()
        entrypoint = self._load_file(self.entrypoint_path)
        if not isinstance(entrypoint, dict):
            raise DereferenceError(f"Entrypoint {self.entrypoint_path} is not a mapping")

        entrypoint = copy.deepcopy(entrypoint)
        self._build_index(entrypoint)
        logger.info(
            "Bundling %s (%d component files)", self.entrypoint_path, len(self._index)
        )

        result: Dict[str, Any] = {}
        for key, value in entrypoint.items():
            if key == "paths" and isinstance(value, dict):
                result[key] = {
                    route: self._inline_entry(item) for route, item in value.items()
                }
            elif key == "components" and isinstance(value, dict):
                result[key] = {
                    kind: (
                        {name: self._inline_entry(item) for name, item in items.items()}
                        if isinstance(items, dict)
                        else items
                    )
                    for kind, items in value.items()
                }
            else:
                result[key] = self._resolve_value(
                    value, self.entrypoint_path.parent, self.entrypoint_path
                )

        if remove_unused:
            result = remove_unused_components(result)
        return result


def _collect_component_refs(value: Any, found: Set[str]) -> None:
    if isinstance(value, list):
        for item in value:
            _collect_component_refs(item, found)
    elif isinstance(value, dict):
        for key, item in value.items():
            if key == "$ref" and isinstance(item, str):
                found.add(item)
            elif key == "discriminator" and isinstance(item, dict):
                mapping = item.get("mapping")
                if isinstance(mapping, dict):
                    found.update(v for v in mapping.values() if isinstance(v, str))
                _collect_component_refs(item, found)
            else:
                _collect_component_refs(item, found)


def _component_key(ref: str) -> Optional[Tuple[str, str]]:
    if not ref.startswith(COMPONENTS_PREFIX):
        return None
    parts = ref[len(COMPONENTS_PREFIX):].split("/")
    if len(parts) < 2:
        return None
    return _unescape_pointer_token(parts[0]), _unescape_pointer_token(parts[1])


def remove_unused_components(document: Dict[str, Any]) -> Dict[str, Any]:
    """Drop components not reachable from the rest of the document.

    Security schemes are always kept since they are referenced by name.
    """
    components = document.get("components")
    if not isinstance(components, dict):
        return document

    pending: Set[str] = set()
    _collect_component_refs(
        {key: value for key, value in document.items() if key != "components"}, pending
    )

    reachable: Set[Tuple[str, str]] = set()
    while pending:
        key = _component_key(pending.pop())
        if key is None or key in reachable:
            continue
        reachable.add(key)
        kind, name = key
        items = components.get(kind)
        if isinstance(items, dict) and name in items:
            found: Set[str] = set()
            _collect_component_refs(items[name], found)
            pending.update(found)

    pruned: Dict[str, Any] = {}
    removed = 0
    for kind, items in components.items():
        if kind in ALWAYS_KEPT_COMPONENTS or not isinstance(items, dict):
            pruned[kind] = items
            continue
        kept = {name: item for name, item in items.items() if (kind, str(name)) in reachable}
        removed += len(items) - len(kept)
        if kept:
            pruned[kind] = kept

    logger.info("Removed %d unused components", removed)
    result = dict(document)
    if pruned:
        result["components"] = pruned
    else:
        result.pop("components", None)
    return result


def save_bundle(document: Dict[str, Any], path: Union[str, Path]) -> None:
    """Save a bundled document as JSON or YAML depending on the extension."""
    path = Path(path)
    if path.suffix == ".json":
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")
    else:
        dump_yaml(document, path)
    logger.info("Bundle written to %s", path)
