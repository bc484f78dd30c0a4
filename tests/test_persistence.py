"""
Tests for persistence — profile files.
"""

import json
from pathlib import Path

from src.core.models import Component, Profile, Requirement
from src.core.persistence.profile_file import default_profile_path, load_profile, save_profile


class TestProfileFile:
    """Tests for profile file persistence."""

    def _profile(self) -> Profile:
        sdk = Component(
            id="sdk",
            version="1.0.0",
            requires=(Requirement.on_component("sdk.part", "[1.0.0]"),),
        )
        part = Component(id="sdk.part", version="1.0.0", singleton=True)
        return Profile(
            profile_id="laptop",
            installed=(sdk, part),
            roots=(sdk.ref,),
            properties={"os": "linux"},
        )

    def test_save_and_load(self, tmp_profile_dir: Path):
        """Profile roundtrips through save/load."""
        path = tmp_profile_dir / "profile.json"
        profile = self._profile()

        save_profile(profile, path)
        loaded = load_profile(path)

        assert loaded == profile
        assert loaded.installed[1].singleton is True
        assert loaded.installed[0].requires[0].range == profile.installed[0].requires[0].range

    def test_load_missing_returns_empty(self, tmp_path: Path):
        """Missing profile file returns an empty profile."""
        profile = load_profile(tmp_path / "nonexistent.json", profile_id="fresh")
        assert profile.profile_id == "fresh"
        assert profile.installed == ()

    def test_load_corrupt_returns_empty(self, tmp_path: Path):
        """Corrupt JSON returns an empty profile."""
        path = tmp_path / "corrupt.json"
        path.write_text("not json at all {{{")
        assert load_profile(path).installed == ()

    def test_load_invalid_returns_empty(self, tmp_path: Path):
        """Valid JSON that is not a profile returns an empty profile."""
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps({"roots": ["ghost@1.0.0"]}))
        assert load_profile(path).roots == ()

    def test_save_creates_directories(self, tmp_path: Path):
        """Save creates parent directories automatically."""
        path = default_profile_path(tmp_path)
        save_profile(self._profile(), path)
        assert path.is_file()
        assert path.parent.name == ".planner"

    def test_save_is_sorted_json(self, tmp_path: Path):
        """Saved file is stable, human-readable JSON."""
        path = tmp_path / "profile.json"
        save_profile(self._profile(), path)

        data = json.loads(path.read_text())
        assert data["profile_id"] == "laptop"
        assert data["roots"] == ["sdk@1.0.0"]
        assert list(data) == sorted(data)

    def test_save_atomic_no_partial(self, tmp_path: Path):
        """No temp files are left behind."""
        path = tmp_path / "profile.json"
        save_profile(self._profile(), path)
        save_profile(self._profile(), path)

        assert list(tmp_path.glob(".profile_*.tmp")) == []
