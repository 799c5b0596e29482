"""Revision subsystem constants."""

from enum import StrEnum


class RevisionType(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Substrings that mark a field as sensitive regardless of configuration (case-sensitive)
SENSITIVE_FIELD_TOKENS = ("password", "secret", "token")

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

EMPTY_CHANGES_TEXT = "{}"

LOG_PREFIX = "[REVISION]"

ENTITY_NAME_MAX_LENGTH = 255
USERNAME_MAX_LENGTH = 50
IP_ADDRESS_MAX_LENGTH = 45
USER_AGENT_MAX_LENGTH = 512
REASON_MAX_LENGTH = 1000

REASON_CREATED = "Entity created"
REASON_UPDATED = "Entity updated"
REASON_DELETED = "Entity deleted"
REASON_RESTORED = "Entity restored"
