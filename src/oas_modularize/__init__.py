"""Modularize monolithic OpenAPI 3 documents into cross-referencing files."""

from .bundler import Bundler, save_bundle
from .classifier import SchemaType, build_schema_mapping, classify_schema
from .config import load_catalog, load_settings
from .detector import detect_api_style
from .exceptions import (
    ConfigurationError,
    DereferenceError,
    ModularizeError,
    ReferenceRewriteError,
    ValidationError,
)
from .models import (
    AnalysisReport,
    DetectionResult,
    MappingEntry,
    ModularizeSettings,
    ScaffoldingCatalog,
    ScaffoldingConfig,
    TransformResult,
)
from .refs import fix_refs
from .transform import analyze, transform
from .writer import Modularizer

__version__ = "0.1.0"
__all__ = [
    "AnalysisReport",
    "Bundler",
    "ConfigurationError",
    "DereferenceError",
    "DetectionResult",
    "MappingEntry",
    "ModularizeError",
    "ModularizeSettings",
    "Modularizer",
    "ReferenceRewriteError",
    "ScaffoldingCatalog",
    "ScaffoldingConfig",
    "SchemaType",
    "TransformResult",
    "ValidationError",
    "analyze",
    "build_schema_mapping",
    "classify_schema",
    "detect_api_style",
    "fix_refs",
    "load_catalog",
    "load_settings",
    "save_bundle",
    "transform",
]
