"""Canonical job folder names."""

import re

# Applied in order: &amp; first so "&amp;lt;" ends up as "<"
HTML_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)")
WHITESPACE_RE = re.compile(r"\s+")

NAME_SEPARATOR = " - "


def format_name(identifier: str, title: str) -> str:
    """
    Build the folder name for a job.

    Decodes the five supported HTML entities, drops parenthesized notes,
    turns underscores into " - ", uppercases and normalizes whitespace,
    then prefixes the untouched identifier.

    Example:
        >>> format_name("9000549_1", "Smith &amp; Sons (Lot 4) Survey_Job")
        '9000549_1 - SMITH & SONS SURVEY - JOB'
    """
    name = title or ""
    for entity, char in HTML_ENTITIES:
        name = name.replace(entity, char)

    name = PARENTHETICAL_RE.sub("", name)
    name = name.replace("_", NAME_SEPARATOR)
    name = name.upper()
    name = WHITESPACE_RE.sub(" ", name).strip()

    return f"{identifier}{NAME_SEPARATOR}{name}"
