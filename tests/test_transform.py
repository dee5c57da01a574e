"""Tests for the transform orchestrator."""

import copy
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from oas_modularize.config import load_catalog
from oas_modularize.exceptions import ConfigurationError, ValidationError
from oas_modularize.models import NamingConfig, ScaffoldingCatalog
from oas_modularize.transform import analyze, transform


def load_fixture(name: str) -> Dict[str, Any]:
    """Load the input document of a test fixture.

    Args:
        name: Name of the fixture directory

    Returns:
        The parsed input document
    """
    fixture_dir = Path(__file__).parent / "fixtures" / name
    with open(fixture_dir / "input.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture
def catalog():
    return load_catalog()


def test_restful_transform(catalog):
    """Test the restful scaffolding on the employees document."""
    spec = load_fixture("employees")
    result = transform(spec, catalog, "restful")

    assert result.detected_style == "restful"
    assert result.scaffolding == "restful"
    assert {name: (e.folder, e.file_name) for name, e in result.schema_mapping.items()} == {
        "Employee": ("objects", "Employee"),
        "EmployeeStatus": ("enums", "EmployeeStatusEnum"),
        "EmployeeList": ("arrays", "EmployeeList"),
        "Address": ("objects", "Address"),
        "EmployeeId": ("properties", "EmployeeId"),
        "LegacyRecord": ("objects", "LegacyRecord"),
    }
    assert list(result.response_mapping) == [
        "BadRequestResponse",
        "RetrieveEmployeesResponse",
        "NotFoundResponse",
        "CreateEmployeeResponse",
        "RetrieveEmployeeResponse",
    ]
    assert list(result.openapi["components"]["responses"]) == list(result.response_mapping)
    assert result.request_body_mapping["NewEmployee"].folder == "requestBodies"
    assert result.request_body_mapping["NewEmployee"].file_name == "NewEmployeeRequest"

    assert result.stats.schemas_classified == 6
    assert result.stats.responses_normalized == 1
    assert result.stats.responses_extracted == 4
    assert result.stats.request_bodies_normalized == 1


def test_transform_rewrites_operation_responses(catalog):
    """Test that operations reference the renamed and extracted responses."""
    result = transform(load_fixture("employees"), catalog, "restful")
    paths = result.openapi["paths"]

    def ref(name):
        return {"$ref": f"#/components/responses/{name}"}

    assert paths["/employees"]["post"]["responses"]["400"] == ref("BadRequestResponse")
    assert paths["/employees"]["get"]["responses"]["404"] == ref("NotFoundResponse")
    assert paths["/employees/{employeeId}"]["get"]["responses"]["404"] == ref(
        "NotFoundResponse"
    )
    # same status and content as the GET by id, so the component is shared
    assert paths["/employees/{employeeId}/promote"]["post"]["responses"]["200"] == ref(
        "RetrieveEmployeeResponse"
    )


def test_transform_does_not_modify_input(catalog):
    spec = load_fixture("employees")
    original = copy.deepcopy(spec)
    transform(spec, catalog, "restful")
    assert spec == original


def test_file_names_are_unique_per_folder(catalog):
    """Test that no two mapping entries share a file within a folder."""
    spec = load_fixture("employees")
    spec["components"]["schemas"]["employee"] = {"type": "object", "properties": {}}
    spec["components"]["responses"]["NotFound"] = {"description": "Missing"}

    for scaffolding in catalog.names():
        result = transform(spec, catalog, scaffolding)
        for mapping in (result.schema_mapping, result.response_mapping):
            destinations = [(e.folder, e.file_name) for e in mapping.values()]
            assert len(destinations) == len(set(destinations))


def test_rpc_transform_names_actions(catalog):
    """Test action based response names with an explicit style."""
    spec = {
        "openapi": "3.0.3",
        "paths": {
            "/employees/{employeeId}/promote": {
                "post": {
                    "responses": {
                        "200": {
                            "description": "Promoted",
                            "content": {"application/json": {"schema": {"type": "object"}}},
                        }
                    }
                }
            }
        },
    }
    result = transform(spec, catalog, "rpc", style="rpc")

    assert list(result.response_mapping) == ["PromoteEmployeeResponse"]
    assert result.detected_style == "rpc"


def test_conservative_transform(catalog):
    """Test the flat scaffolding keeps original response names."""
    result = transform(load_fixture("employees"), catalog)

    assert result.scaffolding == "conservative"
    assert {e.folder for e in result.schema_mapping.values()} == {"schemas"}
    assert result.schema_mapping["Address"].file_name == "AddressSchema"
    assert "Error400" in result.response_mapping
    assert "Status404Response" in result.response_mapping


def test_transform_with_naming_convention(catalog):
    result = transform(
        load_fixture("employees"), catalog, "restful", naming=NamingConfig(components="snake_case")
    )
    assert result.schema_mapping["EmployeeStatus"].file_name == "employee_statusEnum"


def test_unknown_scaffolding_fails_fast(catalog):
    """Test that an unknown scaffolding lists the available ones."""
    with pytest.raises(ConfigurationError) as exc_info:
        transform(load_fixture("employees"), catalog, "hexagonal")

    message = str(exc_info.value)
    assert "hexagonal" in message
    assert "restful" in message


def test_invalid_document():
    with pytest.raises(ValidationError):
        transform(["not", "a", "document"], load_catalog())
    with pytest.raises(ValidationError):
        analyze(None, load_catalog())


def test_transform_tolerates_missing_sections(catalog):
    """Test documents without paths or components."""
    result = transform({"openapi": "3.0.3", "info": {}}, catalog, "restful", style="restful")

    assert result.schema_mapping == {}
    assert result.response_mapping == {}
    assert "components" not in result.openapi


def test_empty_catalog_detection_still_transforms():
    """Test that an unknown detected style does not break a transform."""
    catalog = ScaffoldingCatalog(scaffoldings={"flat": {"schemaClassification": False}})
    result = transform(load_fixture("employees"), catalog, "flat")

    assert result.detected_style == "standard"
    assert result.schema_mapping["Employee"].folder == "schemas"


def test_analyze(catalog):
    """Test the read-only analysis report."""
    spec = load_fixture("employees")
    original = copy.deepcopy(spec)
    report = analyze(spec, catalog)

    assert spec == original
    assert report.detected_style == "restful"
    assert report.confidence == 67
    # the promote route counts against restful
    assert report.scores == {"restful": 50, "rpc": 33, "google": 0, "bian": 0}
    assert report.paths_count == 3
    assert report.schemas_count == 6
    assert report.schemas_by_type == {
        "object": 3,
        "property": 1,
        "enum": 1,
        "array": 1,
        "composite": 0,
    }
    assert report.existing_responses_count == 1
    assert report.inline_responses_count == 7
    assert report.request_bodies_count == 1
    assert report.parameters_count == 2


def test_response_aliases_follow_renames(catalog):
    """Test that a response referencing a renamed response is rewritten."""
    spec = {
        "openapi": "3.0.3",
        "paths": {
            "/pets": {"get": {"responses": {"404": {"$ref": "#/components/responses/Missing"}}}}
        },
        "components": {
            "responses": {
                "NotFound404": {"description": "Not found"},
                "Missing": {"$ref": "#/components/responses/NotFound404"},
            }
        },
    }
    result = transform(spec, catalog, "restful", style="restful")
    responses = result.openapi["components"]["responses"]

    assert responses["MissingResponse"] == {"$ref": "#/components/responses/NotFoundResponse"}
    assert result.openapi["paths"]["/pets"]["get"]["responses"]["404"] == {
        "$ref": "#/components/responses/MissingResponse"
    }
    for response in responses.values():
        ref = response.get("$ref")
        if ref:
            assert ref.rsplit("/", 1)[-1] in responses


def test_request_body_file_names_are_unique(catalog):
    """Test request bodies whose names collide once suffixed."""
    spec = {
        "openapi": "3.0.3",
        "components": {
            "requestBodies": {
                "Pet": {"description": "New pet"},
                "PetRequest": {"description": "Pet request"},
            }
        },
    }
    result = transform(spec, catalog, "restful", style="restful")
    mapping = result.request_body_mapping

    assert mapping["Pet"].file_name == "PetRequest"
    assert mapping["PetRequest"].file_name == "Pet1Request"
