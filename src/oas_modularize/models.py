"""
Data models for scaffolding configuration and transform results.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigurationError


def _rule_switch(value: Any) -> Any:
    # "rule: true" enables a heuristic with its defaults, "rule: false" drops it
    if value is True:
        return {}
    if value is False:
        return None
    return value


class NamingConfig(BaseModel):
    """Naming conventions for component files and path files."""

    components: str = "PascalCase"
    paths: str = "kebab-case"


class AffixesConfig(BaseModel):
    """Prefixes and suffixes applied per component kind."""

    enabled: bool = False
    prefixes: Dict[str, str] = Field(default_factory=dict)
    suffixes: Dict[str, str] = Field(default_factory=dict)


class VerbsAtEndRule(BaseModel):
    """Trailing action verb heuristic (RPC, BIAN)."""

    model_config = ConfigDict(populate_by_name=True)

    values: List[str] = Field(default_factory=list)
    min_ratio: float = Field(default=0.0, alias="minRatio")


class PluralResourcesRule(BaseModel):
    """Plural first segment heuristic (RESTful)."""

    model_config = ConfigDict(populate_by_name=True)

    min_ratio: float = Field(default=0.0, alias="minRatio")


class CustomMethodsRule(BaseModel):
    """Google custom method heuristic (``/things/{id}:action``)."""

    model_config = ConfigDict(populate_by_name=True)

    pattern: str = r":\w+"
    min_ratio: float = Field(default=0.0, alias="minRatio")


class VerbsInPathRule(BaseModel):
    """Embedded CRUD verb heuristic, scored inversely."""

    model_config = ConfigDict(populate_by_name=True)

    max_ratio: float = Field(default=1.0, alias="maxRatio")
    verb_prefixes: List[str] = Field(
        default_factory=lambda: ["get", "create", "update", "delete", "patch"],
        alias="verbPrefixes",
    )


class DetectionConfig(BaseModel):
    """Heuristics used to recognise one API style."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    verbs_at_end: Optional[VerbsAtEndRule] = Field(default=None, alias="verbsAtEnd")
    plural_resources: Optional[PluralResourcesRule] = Field(
        default=None, alias="pluralResources"
    )
    custom_methods: Optional[CustomMethodsRule] = Field(
        default=None, alias="customMethods"
    )
    verbs_in_path: Optional[VerbsInPathRule] = Field(default=None, alias="verbsInPath")
    operation_id_patterns: Optional[List[str]] = Field(
        default=None, alias="operationIdPatterns"
    )
    operation_id_patterns_min_ratio: float = Field(
        default=0.2, alias="operationIdPatternsMinRatio"
    )

    @field_validator(
        "verbs_at_end",
        "plural_resources",
        "custom_methods",
        "verbs_in_path",
        mode="before",
    )
    @classmethod
    def _accept_switches(cls, value: Any) -> Any:
        return _rule_switch(value)


class ResponseNamingConfig(BaseModel):
    """How responses are renamed, deduplicated and extracted."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    dedupe: bool = True
    status_names: Dict[str, str] = Field(default_factory=dict, alias="statusNames")
    use_description: bool = Field(default=True, alias="useDescription")
    strip_status_code: bool = Field(default=False, alias="stripStatusCode")

    @field_validator("status_names", mode="before")
    @classmethod
    def _stringify_status_codes(cls, value: Any) -> Any:
        # YAML reads unquoted status codes as integers
        if isinstance(value, dict):
            return {str(code): name for code, name in value.items()}
        return value


class ScaffoldingConfig(BaseModel):
    """A named ruleset describing one API organisational style."""

    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    detection: Optional[DetectionConfig] = None
    schema_classification: bool = Field(default=True, alias="schemaClassification")
    folders: Dict[str, str] = Field(default_factory=dict)
    suffixes: Dict[str, str] = Field(default_factory=dict)
    response_naming: ResponseNamingConfig = Field(
        default_factory=ResponseNamingConfig, alias="responseNaming"
    )

    @property
    def responses_folder(self) -> str:
        return self.folders.get("responses") or "responses"


class ScaffoldingCatalog(BaseModel):
    """All scaffoldings available to a detection or transform call."""

    scaffoldings: Dict[str, ScaffoldingConfig] = Field(default_factory=dict)
    fallback: str = "conservative"

    def names(self) -> List[str]:
        return list(self.scaffoldings)

    def get(self, name: str) -> ScaffoldingConfig:
        """Look up a scaffolding by name.

        Args:
            name: Scaffolding name (e.g. "restful")

        Returns:
            The scaffolding configuration

        Raises:
            ConfigurationError: If no scaffolding has that name
        """
        try:
            return self.scaffoldings[name]
        except KeyError:
            available = ", ".join(self.names()) or "(none)"
            raise ConfigurationError(
                f'Scaffolding "{name}" not found. Available: {available}'
            )

    def resolve(self, style: str) -> str:
        """Map a detected style onto a scaffolding name in this catalog."""
        if style in self.scaffoldings:
            return style
        return self.fallback


class MappingEntry(BaseModel):
    """Physical destination of one named component."""

    model_config = ConfigDict(populate_by_name=True)

    folder: str
    file_name: str = Field(alias="fileName")
    type: Optional[str] = None
    original: Optional[str] = None
    status_code: Optional[str] = Field(default=None, alias="statusCode")
    route: Optional[str] = None
    method: Optional[str] = None


class DetectionResult(BaseModel):
    """Outcome of style detection."""

    style: str
    confidence: int
    scores: Dict[str, int] = Field(default_factory=dict)


class TransformStats(BaseModel):
    schemas_classified: int = 0
    responses_extracted: int = 0
    responses_normalized: int = 0
    request_bodies_normalized: int = 0


class TransformResult(BaseModel):
    """Transformed document plus the mapping tables for the file writer."""

    openapi: Dict[str, Any]
    schema_mapping: Dict[str, MappingEntry] = Field(default_factory=dict)
    response_mapping: Dict[str, MappingEntry] = Field(default_factory=dict)
    request_body_mapping: Dict[str, MappingEntry] = Field(default_factory=dict)
    detected_style: str
    scaffolding: str = ""
    stats: TransformStats = Field(default_factory=TransformStats)


class AnalysisReport(BaseModel):
    """Read-only summary of a document, for previews."""

    detected_style: str
    confidence: int
    scores: Dict[str, int] = Field(default_factory=dict)
    paths_count: int = 0
    schemas_count: int = 0
    schemas_by_type: Dict[str, int] = Field(default_factory=dict)
    existing_responses_count: int = 0
    inline_responses_count: int = 0
    request_bodies_count: int = 0
    parameters_count: int = 0


class ModularizeSettings(BaseModel):
    """Writer settings (output layout, naming, affixes)."""

    output_dir: str = "./src"
    main_file_name: str = "main"
    file_extension: str = ".yaml"
    indent: int = 2
    naming: NamingConfig = Field(default_factory=NamingConfig)
    affixes: AffixesConfig = Field(default_factory=AffixesConfig)
    clean_output_dir: bool = True


class ModularizeReport(BaseModel):
    """What a modularize run wrote to disk."""

    scaffolding: str
    style: str
    output_dir: str
    main_file: str
    written: Dict[str, int] = Field(default_factory=dict)
    stats: TransformStats = Field(default_factory=TransformStats)


class RefRewriteConfig(BaseModel):
    """Settings the reference rewriter needs to build relative file refs."""

    main_file_name: str = "main"
    naming: NamingConfig = Field(default_factory=NamingConfig)
    affixes: AffixesConfig = Field(default_factory=AffixesConfig)
    extension: str = ".yaml"
