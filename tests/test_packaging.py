"""Tests for the package metadata in pyproject.toml."""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


@pytest.fixture
def project():
    with open(PYPROJECT, "rb") as f:
        return tomllib.load(f)["project"]


def test_files_referenced_by_metadata_exist(project):
    readme = project.get("readme")
    if readme is not None:
        name = readme if isinstance(readme, str) else readme.get("file")
        assert (PYPROJECT.parent / name).exists()
        assert name.lower().startswith("readme")


def test_runtime_dependencies_cover_the_imported_stack(project):
    declared = {dep.split(">")[0].split("=")[0].strip().lower() for dep in project["dependencies"]}
    assert {"httpx", "pydantic", "python-dotenv", "pyyaml", "fastapi"} <= declared
    assert {"pytest", "pytest-asyncio"} <= {
        dep.split(">")[0].strip().lower() for dep in project["optional-dependencies"]["test"]
    }
