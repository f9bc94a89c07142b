"""
Canonical permission identifiers.

Every permission name in the catalog has the form ``resource:action``.
Multi-word resources are joined with an underscore: ``business_units:read``.
Hyphenated or space separated variants ("business-units", "business units")
are rewritten to the same canonical string so the catalog cannot hold two
permissions that differ only by delimiter style.
"""
import re

from core.exceptions import InvalidIdentifier

DELIMITER = ":"
WORD_JOINER = "_"

_JOINER_VARIANTS = re.compile(r"[\s\-_]+")


def _canonical_part(value: str, kind: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidIdentifier(f"Permission {kind} must not be empty")

    text = str(value).strip().lower()
    if DELIMITER in text:
        raise InvalidIdentifier(f"Permission {kind} must not contain '{DELIMITER}': {value!r}")

    canonical = _JOINER_VARIANTS.sub(WORD_JOINER, text).strip(WORD_JOINER)
    if not canonical:
        raise InvalidIdentifier(f"Permission {kind} has no usable characters: {value!r}")
    return canonical


def canonical_resource(resource: str) -> str:
    return _canonical_part(resource, "resource")


def canonical_action(action: str) -> str:
    return _canonical_part(action, "action")


def normalize(resource: str, action: str) -> str:
    """Build the canonical ``resource:action`` identifier.

    Raises:
        InvalidIdentifier: if either part is empty or contains the delimiter.
    """
    return f"{canonical_resource(resource)}{DELIMITER}{canonical_action(action)}"


def split_identifier(name: str) -> tuple[str, str]:
    """Split a stored ``resource:action`` name into its raw parts."""
    if not name or name.count(DELIMITER) != 1:
        raise InvalidIdentifier(f"Not a resource:action identifier: {name!r}")
    resource, action = name.split(DELIMITER)
    return resource, action


def is_canonical(resource: str, action: str, name: str) -> bool:
    """True when a stored permission row already uses the canonical form."""
    try:
        expected = normalize(resource, action)
    except InvalidIdentifier:
        return False
    return name == expected and resource == canonical_resource(resource) and action == canonical_action(action)
