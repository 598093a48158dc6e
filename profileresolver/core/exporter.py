"""Export utilities for resolved profiles."""

from pathlib import Path

from profileresolver.models.profile import StandardizedProfile

DEFAULT_FILENAME = "{platform}_{username}.json"


def to_json(profile: StandardizedProfile, indent: int | None = 2) -> str:
    """Serialize a profile; ``indent=None`` gives compact output."""
    return profile.model_dump_json(indent=indent)


def to_dict(profile: StandardizedProfile, include_contacts: bool = True) -> dict:
    """
    JSON-compatible dictionary (enums as values, datetimes as ISO strings).

    Args:
        profile: Profile to convert
        include_contacts: Set False to leave contact points out of shared output
    """
    exclude = None if include_contacts else {"contact_points"}
    return profile.model_dump(mode="json", exclude=exclude)


def save_json(
    profile: StandardizedProfile,
    filepath: str | Path,
    indent: int = 2,
) -> Path:
    """
    Write a profile to disk.

    Args:
        profile: Profile to save
        filepath: Output file, or an existing directory to write
            ``{platform}_{username}.json`` into
        indent: JSON indentation level

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    if path.is_dir():
        path = path / DEFAULT_FILENAME.format(platform=profile.platform.value, username=profile.username)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_json(profile, indent=indent), encoding="utf-8")
    return path


def load_json(filepath: str | Path) -> StandardizedProfile:
    """
    Load a profile saved with save_json.

    Raises:
        pydantic.ValidationError: If the file is not a valid profile
    """
    return StandardizedProfile.model_validate_json(Path(filepath).read_text(encoding="utf-8"))
