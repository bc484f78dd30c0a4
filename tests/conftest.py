"""
Shared test fixtures and configuration.
"""

import json
import textwrap
from pathlib import Path

import pytest

SDK_CATALOG_YAML = textwrap.dedent("""\
    components:
      - id: sdk
        version: 1.0.0
        requires:
          - namespace: component.identity
            name: sdk.part
            range: "[1.0.0,1.0.0]"
      - id: sdk.part
        version: 1.0.0
      - id: sdk.part
        version: 2.0.0
      - id: cdt
        version: 1.0.0
        requires:
          - namespace: java.package
            name: org.missing.cdt
            optional: true
      - id: emf
        version: 1.0.0
        singleton: true
        requires:
          - namespace: java.package
            name: org.missing.emf
      - id: gtk.native
        version: 1.0.0
        filter: "(ws=gtk)"
""")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def catalog_yml(tmp_path: Path) -> Path:
    """The SDK catalog as a YAML file."""
    path = tmp_path / "catalog.yml"
    path.write_text(SDK_CATALOG_YAML)
    return path


@pytest.fixture
def sdk_profile_json(tmp_path: Path) -> Path:
    """A profile with sdk installed as a root, next to the catalog."""
    data = {
        "profile_id": "default",
        "installed": [
            {"id": "sdk", "version": "1.0.0", "requires": [
                {"namespace": "component.identity", "name": "sdk.part", "range": "[1.0.0]"},
            ]},
            {"id": "sdk.part", "version": "1.0.0"},
        ],
        "roots": ["sdk@1.0.0"],
        "properties": {"ws": "cocoa"},
    }
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def tmp_profile_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for profile files."""
    profile_dir = tmp_path / "profiles"
    profile_dir.mkdir()
    return profile_dir
