"""Error types for the revision subsystem.

Lookup and validation failures surfaced to callers. Encoding and persistence
failures of the revision log itself are logged, not raised.
"""


class RevisionNotFoundError(LookupError):
    """Raised when a requested revision (or any revision for an entity) does not exist."""


class RevisionValidationError(ValueError):
    """Raised when a revision request carries an unknown type or unusable filter."""
