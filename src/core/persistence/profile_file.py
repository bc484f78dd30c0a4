"""
Profile file persistence — atomic read/write for Profile.

A profile is stored as JSON.  Writes are atomic (write to temp file,
then rename) so a crash mid-write never leaves a truncated profile.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from src.core.models.profile import Profile

logger = logging.getLogger(__name__)

# Default profile file path (relative to the working directory)
DEFAULT_PROFILE_DIR = ".planner"
DEFAULT_PROFILE_FILE = "profile.json"


def default_profile_path(root: Path) -> Path:
    """Get the default profile file path under *root*."""
    return root / DEFAULT_PROFILE_DIR / DEFAULT_PROFILE_FILE


def load_profile(path: Path, profile_id: str = "default") -> Profile:
    """Load a profile from a JSON file.

    Args:
        path: Path to the profile JSON file.
        profile_id: Id given to the fresh profile when none can be read.

    Returns:
        Profile model. If the file is missing or unreadable, an empty
        profile is returned.
    """
    if not path.is_file():
        logger.info("No profile at %s — starting empty", path)
        return Profile(profile_id=profile_id)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        profile = Profile.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt profile file %s: %s — starting empty", path, e)
        return Profile(profile_id=profile_id)
    except (OSError, ValidationError) as e:
        logger.warning("Cannot load profile from %s: %s — starting empty", path, e)
        return Profile(profile_id=profile_id)

    logger.debug(
        "Loaded profile '%s' from %s (%d installed, %d roots)",
        profile.profile_id, path, len(profile.installed), len(profile.roots),
    )
    return profile


def save_profile(profile: Profile, path: Path) -> None:
    """Save a profile to a JSON file (atomic write).

    Args:
        profile: The profile to save.
        path: Target path for the profile file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    data = profile.model_dump(mode="json")
    content = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    _fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".profile_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
        logger.debug("Profile '%s' saved to %s", profile.profile_id, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save profile to %s: %s", path, e)
        raise
