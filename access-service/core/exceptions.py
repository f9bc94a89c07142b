"""
Error kinds raised by the access-control engine.

Decision paths (can_perform, visible_menu) catch these and fail closed.
Administrative paths (grant, migrations, provisioning) let them propagate.
"""


class AccessControlError(Exception):
    pass


class InvalidIdentifier(AccessControlError, ValueError):
    """Empty or malformed resource/action passed to normalization."""


class NotFoundError(AccessControlError):
    pass


class UnknownRole(NotFoundError):
    """A role literal that maps to no Role value."""

    def __init__(self, literal):
        super().__init__(f"Unknown role: {literal!r}")
        self.literal = literal


class ConflictError(AccessControlError):
    pass


class MigrationFailed(AccessControlError):
    """A catalog migration step failed and the whole unit was rolled back."""
