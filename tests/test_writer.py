"""Tests for writing modular trees."""

from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from oas_modularize.config import load_catalog
from oas_modularize.exceptions import ValidationError
from oas_modularize.models import ModularizeSettings, NamingConfig
from oas_modularize.writer import Modularizer

FIXTURES = Path(__file__).parent / "fixtures"


def read_yaml(path: Path) -> Dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f)


@pytest.fixture
def modularizer():
    return Modularizer.from_yaml(FIXTURES / "employees" / "input.yaml", catalog=load_catalog())


def test_write_layout(modularizer, tmp_path):
    """Test the files written for the restful scaffolding."""
    output = tmp_path / "src"
    report = modularizer.write(modularizer.plan("restful"), output)

    written = sorted(p.relative_to(output).as_posix() for p in output.rglob("*") if p.is_file())
    assert written == [
        "components/arrays/EmployeeList.yaml",
        "components/enums/EmployeeStatusEnum.yaml",
        "components/objects/Address.yaml",
        "components/objects/Employee.yaml",
        "components/objects/LegacyRecord.yaml",
        "components/parameters/EmployeeId.yaml",
        "components/parameters/Limit.yaml",
        "components/properties/EmployeeId.yaml",
        "components/requestBodies/NewEmployeeRequest.yaml",
        "components/responses/BadRequestResponse.yaml",
        "components/responses/CreateEmployeeResponse.yaml",
        "components/responses/NotFoundResponse.yaml",
        "components/responses/RetrieveEmployeeResponse.yaml",
        "components/responses/RetrieveEmployeesResponse.yaml",
        "components/securitySchemes/BearerAuth.yaml",
        "main.yaml",
        "paths/employees-employee-id-promote.yaml",
        "paths/employees-employee-id.yaml",
        "paths/employees.yaml",
    ]

    assert report.scaffolding == "restful"
    assert report.style == "restful"
    assert report.main_file == str(output / "main.yaml")
    assert report.written == {
        "schemas": 6,
        "responses": 5,
        "paths": 3,
        "requestBodies": 1,
        "parameters": 2,
        "securitySchemes": 1,
    }


def test_component_refs_are_relative(modularizer, tmp_path):
    """Test refs between component files."""
    modularizer.write(modularizer.plan("restful"), tmp_path)
    components = tmp_path / "components"

    employee = read_yaml(components / "objects" / "Employee.yaml")
    assert employee["properties"]["status"] == {"$ref": "../enums/EmployeeStatusEnum.yaml"}
    assert employee["properties"]["address"] == {"$ref": "../objects/Address.yaml"}

    response = read_yaml(components / "responses" / "RetrieveEmployeesResponse.yaml")
    assert response["content"]["application/json"]["schema"] == {
        "$ref": "../arrays/EmployeeList.yaml"
    }

    parameter = read_yaml(components / "parameters" / "EmployeeId.yaml")
    assert parameter["schema"] == {"$ref": "../properties/EmployeeId.yaml"}


def test_path_refs_go_through_entrypoint(modularizer, tmp_path):
    modularizer.write(modularizer.plan("restful"), tmp_path)
    path_item = read_yaml(tmp_path / "paths" / "employees.yaml")

    assert path_item["get"]["parameters"] == [
        {"$ref": "../main.yaml#/components/parameters/limit"}
    ]
    assert path_item["post"]["requestBody"] == {
        "$ref": "../main.yaml#/components/requestBodies/NewEmployee"
    }
    assert path_item["post"]["responses"]["400"] == {
        "$ref": "../main.yaml#/components/responses/BadRequestResponse"
    }


def test_entrypoint(modularizer, tmp_path):
    """Test the entrypoint document."""
    modularizer.write(modularizer.plan("restful"), tmp_path)
    main = read_yaml(tmp_path / "main.yaml")

    assert list(main) == [
        "openapi",
        "info",
        "servers",
        "tags",
        "security",
        "x-owner",
        "paths",
        "components",
    ]
    assert main["x-owner"] == "hr-platform"
    assert main["paths"]["/employees/{employeeId}"] == {
        "$ref": "./paths/employees-employee-id.yaml"
    }
    assert main["components"]["schemas"]["EmployeeStatus"] == {
        "$ref": "./components/enums/EmployeeStatusEnum.yaml"
    }
    assert main["components"]["responses"]["NotFoundResponse"] == {
        "$ref": "./components/responses/NotFoundResponse.yaml"
    }
    assert main["components"]["requestBodies"]["NewEmployee"] == {
        "$ref": "./components/requestBodies/NewEmployeeRequest.yaml"
    }
    assert main["components"]["securitySchemes"]["bearerAuth"] == {
        "$ref": "./components/securitySchemes/BearerAuth.yaml"
    }


def test_build_entrypoint_copies_external_docs(modularizer):
    modularizer.spec["externalDocs"] = {"url": "https://example.com/docs"}
    entrypoint = modularizer.build_entrypoint(modularizer.plan("restful"))
    assert entrypoint["externalDocs"] == {"url": "https://example.com/docs"}


def test_clean_output_dir(modularizer, tmp_path):
    """Test that stale files are removed only when cleaning is on."""
    stale = tmp_path / "paths" / "stale.yaml"
    stale.parent.mkdir(parents=True)
    stale.write_text("old: true\n")

    modularizer.settings.clean_output_dir = False
    modularizer.write(modularizer.plan("restful"), tmp_path)
    assert stale.exists()

    modularizer.settings.clean_output_dir = True
    modularizer.write(modularizer.plan("restful"), tmp_path)
    assert not stale.exists()


def test_settings_change_layout(tmp_path):
    """Test a custom entrypoint name, extension and path naming."""
    settings = ModularizeSettings(
        output_dir=str(tmp_path / "out"),
        main_file_name="openapi",
        file_extension=".yml",
        naming=NamingConfig(paths="snake_case"),
    )
    modularizer = Modularizer.from_yaml(
        FIXTURES / "employees" / "input.yaml", catalog=load_catalog(), settings=settings
    )
    report = modularizer.write(modularizer.plan("conservative"))

    output = tmp_path / "out"
    assert report.main_file == str(output / "openapi.yml")
    assert (output / "paths" / "employees_employee_id.yml").exists()
    assert (output / "components" / "schemas" / "AddressSchema.yml").exists()

    path_item = read_yaml(output / "paths" / "employees.yml")
    assert path_item["get"]["parameters"] == [
        {"$ref": "../openapi.yml#/components/parameters/limit"}
    ]


def test_plan_detects_scaffolding(modularizer):
    """Test that plan falls back to the detected style."""
    result = modularizer.plan()
    assert result.scaffolding == "restful"
    assert result.detected_style == "restful"


def test_plan_uses_fallback_for_unknown_style():
    """Test the catalog fallback when nothing is detected."""
    modularizer = Modularizer({"openapi": "3.0.3", "paths": {}}, catalog=load_catalog())
    modularizer.catalog.scaffoldings.pop("restful")

    assert modularizer.choose_scaffolding() == "conservative"


def test_colliding_path_slugs(tmp_path):
    """Test that routes slugging to one name get distinct files."""
    spec = {
        "openapi": "3.0.3",
        "info": {"title": "t", "version": "1"},
        "paths": {"/a/{b}": {"get": {}}, "/a/b": {"get": {}}},
    }
    modularizer = Modularizer(spec, catalog=load_catalog())
    modularizer.write(modularizer.plan("conservative"), tmp_path)

    main = read_yaml(tmp_path / "main.yaml")
    assert main["paths"] == {
        "/a/{b}": {"$ref": "./paths/a-b.yaml"},
        "/a/b": {"$ref": "./paths/a-b1.yaml"},
    }


def test_invalid_input(tmp_path):
    with pytest.raises(ValidationError):
        Modularizer(["not", "a", "mapping"])

    broken = tmp_path / "broken.yaml"
    broken.write_text("paths: [unclosed\n")
    with pytest.raises(ValidationError):
        Modularizer.from_yaml(broken)

    with pytest.raises(ValidationError):
        Modularizer.from_yaml(tmp_path / "missing.yaml")


def test_colliding_request_bodies_are_all_written(tmp_path):
    """Test that request bodies sharing a file name do not overwrite each other."""
    spec = {
        "openapi": "3.0.3",
        "info": {"title": "t", "version": "1"},
        "paths": {},
        "components": {
            "requestBodies": {
                "Pet": {"description": "New pet"},
                "PetRequest": {"description": "Pet request"},
            }
        },
    }
    modularizer = Modularizer(spec, catalog=load_catalog())
    report = modularizer.write(modularizer.plan("conservative"), tmp_path)

    folder = tmp_path / "components" / "requestBodies"
    assert report.written["requestBodies"] == 2
    assert read_yaml(folder / "PetRequest.yaml") == {"description": "New pet"}
    assert read_yaml(folder / "Pet1Request.yaml") == {"description": "Pet request"}
