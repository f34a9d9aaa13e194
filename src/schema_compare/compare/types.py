"""Dialect type-equivalence tables and default-value normalization.

Databases accept several spellings for one type (``int``, ``integer``,
``int4``) and report defaults with decoration the application never wrote
(``((0))``, ``'abc'::character varying``). The semantic pass compares the
canonical forms produced here.
"""

import re

# Aliases map a base type name (lower case, no modifiers) to its canonical
# spelling for the dialect.
TYPE_ALIASES: dict[str, dict[str, str]] = {
    "postgresql": {
        "int": "integer",
        "int4": "integer",
        "serial": "integer",
        "serial4": "integer",
        "int2": "smallint",
        "smallserial": "smallint",
        "int8": "bigint",
        "bigserial": "bigint",
        "serial8": "bigint",
        "bool": "boolean",
        "varchar": "character varying",
        "char": "character",
        "bpchar": "character",
        "float": "double precision",
        "float8": "double precision",
        "double": "double precision",
        "float4": "real",
        "decimal": "numeric",
        "timestamp": "timestamp without time zone",
        "timestamptz": "timestamp with time zone",
        "time": "time without time zone",
        "timetz": "time with time zone",
        "varbit": "bit varying",
    },
    "mssql": {
        "integer": "int",
        "dec": "decimal",
        "numeric": "decimal",
        "double precision": "float",
        "rowversion": "timestamp",
        "character": "char",
        "character varying": "varchar",
        "national character": "nchar",
        "national character varying": "nvarchar",
        "national char varying": "nvarchar",
    },
    "sqlite": {
        "int": "integer",
        "bigint": "integer",
        "smallint": "integer",
        "tinyint": "integer",
        "boolean": "integer",
        "varchar": "text",
        "character varying": "text",
        "char": "text",
        "clob": "text",
        "double": "real",
        "double precision": "real",
        "float": "real",
    },
}

# Types whose length modifier is meaningless once canonicalized.
_UNSIZED_IN = {
    "sqlite": {"integer", "text", "real"},
}

# Modifiers that are the dialect's implicit default and may be omitted.
_DEFAULT_MODIFIERS: dict[str, dict[str, str]] = {
    "postgresql": {"character": "1"},
    "mssql": {"char": "1", "nchar": "1", "varchar": "1", "nvarchar": "1"},
}

_TYPE_RE = re.compile(r"^(?P<base>[^(\[]+?)\s*(?:\((?P<mods>[^)]*)\))?\s*(?P<array>(\[\s*\])*)\s*$")
_CAST_RE = re.compile(r"::[\w\s\"]+(\(\d+(,\s*\d+)?\))?(\[\])?$")
_NUMERIC_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")


def supported_dialects() -> list[str]:
    return sorted(TYPE_ALIASES)


def canonical_type(type_name: str, dialect: str = "postgresql") -> str:
    """Return the canonical spelling of ``type_name`` for ``dialect``.

    Example:
        >>> canonical_type("INT4")
        'integer'
        >>> canonical_type("varchar(100)")
        'character varying(100)'
    """
    text = " ".join(type_name.strip().lower().split())
    match = _TYPE_RE.match(text)
    if match is None:
        return text

    base = match.group("base").strip()
    aliases = TYPE_ALIASES.get(dialect, {})
    base = aliases.get(base, base)

    mods = match.group("mods")
    if mods is not None:
        mods = ",".join(part.strip() for part in mods.split(","))
        if mods == _DEFAULT_MODIFIERS.get(dialect, {}).get(base):
            mods = None
    if base in _UNSIZED_IN.get(dialect, set()):
        mods = None

    result = base if mods is None else f"{base}({mods})"
    if match.group("array"):
        result += "[]"
    return result


def types_equivalent(expected: str | None, found: str | None, dialect: str = "postgresql") -> bool:
    """True if both spellings denote the same type in ``dialect``."""
    if expected is None or found is None:
        return expected is found
    return canonical_type(expected, dialect) == canonical_type(found, dialect)


def normalize_default(value: str | None) -> str | None:
    """Strip decoration a database adds to a default expression.

    Example:
        >>> normalize_default("((0))")
        '0'
        >>> normalize_default("'draft'::character varying")
        "'draft'"
    """
    if value is None:
        return None
    text = value.strip()
    while True:
        previous = text
        text = _strip_outer_parentheses(text)
        text = _CAST_RE.sub("", text).strip()
        if text == previous:
            break

    # a quoted number is the number
    if len(text) >= 2 and text[0] == text[-1] == "'" and _NUMERIC_RE.match(text[1:-1]):
        text = text[1:-1]

    lowered = text.lower()
    if lowered == "null" or text == "":
        return None
    # sequence-backed identity, not a declared default
    if lowered.startswith("nextval("):
        return None
    if lowered in ("true", "false", "current_timestamp", "now()", "getdate()"):
        return "current_timestamp" if lowered in ("now()", "getdate()") else lowered
    return text


def defaults_equivalent(expected: str | None, found: str | None) -> bool:
    return normalize_default(expected) == normalize_default(found)


def _strip_outer_parentheses(text: str) -> str:
    if not (text.startswith("(") and text.endswith(")")):
        return text
    depth = 0
    for i, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and i != len(text) - 1:
                # the first "(" closes before the end: not a wrapping pair
                return text
    return text[1:-1].strip()
