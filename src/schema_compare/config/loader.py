"""Load ``schema-compare.toml``: connection profiles and comparison options."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from schema_compare.config.models import CompareConfig, DatabaseProfile, ToolConfig
from schema_compare.errors import CompareUsageError

CONFIG_FILE_NAME = "schema-compare.toml"


def load_config(config_path: Path | None = None) -> ToolConfig:
    """Load profiles and comparison settings from a TOML file.

    Args:
        config_path: Path to the config file (default:
            ``schema-compare.toml`` in the current working directory)

    Returns:
        ToolConfig with all profiles and the ``[compare]`` settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        CompareUsageError: If a profile or the ``[compare]`` table is invalid,
            e.g. an ignore rule with an unknown type name

    Example:
        >>> config = load_config(Path("schema-compare.toml"))
        >>> config.compare.dialect
        'postgresql'
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {CONFIG_FILE_NAME} with a [compare] table or [profiles.<name>] entries."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    try:
        # Parse profiles
        profiles = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)

        # Parse compare settings; [[compare.ignore]] holds the ignore rules
        compare_settings = dict(data.get("compare", {}))
        compare_settings["ignore_rules"] = compare_settings.pop("ignore", [])
        compare = CompareConfig(**compare_settings)
    except ValidationError as e:
        raise CompareUsageError(f"Invalid config in {config_path}:\n{e}") from e

    compare.validate_options()
    return ToolConfig(profiles=profiles, compare=compare)
