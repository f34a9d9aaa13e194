"""Pydantic models for comparison settings and connection profiles."""

from pydantic import BaseModel, Field

from schema_compare.compare.ignore import IgnorePattern
from schema_compare.compare.log import CompareState
from schema_compare.compare.types import supported_dialects
from schema_compare.errors import CompareUsageError


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from schema-compare.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class CompareConfig(BaseModel):
    """Options for one comparison run.

    ``tables_to_ignore`` and ``tables_to_include`` are comma-delimited lists
    of ``table`` or ``schema.table`` names. ``None`` means "not set": every
    table is compared and unmapped tables are reported as extra.

    Example:
        >>> config = CompareConfig()
        >>> config.add_ignore_rule(
        ...     IgnorePattern(type=CompareType.TABLE, state=CompareState.EXTRA_IN_DATABASE)
        ... )
        >>> len(config.ignore_rules)
        1
    """

    ignore_rules: list[IgnorePattern] = Field(default_factory=list)
    tables_to_ignore: str | None = None
    tables_to_include: str | None = None
    always_run_stage2: bool = False
    dialect: str = "postgresql"

    def add_ignore_rule(self, pattern: IgnorePattern) -> None:
        """Accept a class of differences.

        Raises:
            CompareUsageError: If the pattern would suppress Ok entries.
        """
        if pattern.state == CompareState.OK:
            raise CompareUsageError(
                f"Ignore pattern for {pattern.type.value} has state Ok; "
                f"only NotInDatabase, ExtraInDatabase or DifferentInDatabase can be ignored"
            )
        self.ignore_rules.append(pattern)

    def validate_options(self) -> None:
        """Check settings that cannot be checked field by field.

        Raises:
            CompareUsageError: On an unknown dialect or an Ok ignore pattern.
        """
        if self.dialect not in supported_dialects():
            raise CompareUsageError(
                f"Unknown dialect '{self.dialect}'. "
                f"Supported: {', '.join(supported_dialects())}"
            )
        for pattern in self.ignore_rules:
            if pattern.state == CompareState.OK:
                raise CompareUsageError(
                    f"Ignore pattern for {pattern.type.value} has state Ok"
                )


class ToolConfig(BaseModel):
    """Complete configuration from schema-compare.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    compare: CompareConfig = Field(default_factory=CompareConfig)
