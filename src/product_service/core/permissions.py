"""Permission catalogue and seed permission groups.

These tables are loaded once at import and never mutated.
"""

from enum import StrEnum
from types import MappingProxyType

FULL_ACCESS = "FULL_ACCESS"

PRODUCT_ALL = "PRODUCT_ALL"
PRODUCT_CREATE = "PRODUCT_CREATE"
PRODUCT_READ = "PRODUCT_READ"
PRODUCT_READ_OTHER = "PRODUCT_READ_OTHER"
PRODUCT_READ_DELETED = "PRODUCT_READ_DELETED"
PRODUCT_UPDATE = "PRODUCT_UPDATE"
PRODUCT_DELETE = "PRODUCT_DELETE"
PRODUCT_MODIFY_OTHER = "PRODUCT_MODIFY_OTHER"

ALL_PERMISSIONS: tuple[str, ...] = (
    FULL_ACCESS,
    PRODUCT_ALL,
    PRODUCT_CREATE,
    PRODUCT_READ,
    PRODUCT_READ_OTHER,
    PRODUCT_READ_DELETED,
    PRODUCT_UPDATE,
    PRODUCT_DELETE,
    PRODUCT_MODIFY_OTHER,
)

GROUP_DEFAULT = "DEFAULT"
GROUP_SUPER_USER = "SUPER_USER"

SEED_GROUPS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType(
    {
        GROUP_DEFAULT: (
            PRODUCT_CREATE,
            PRODUCT_READ,
            PRODUCT_UPDATE,
            PRODUCT_DELETE,
        ),
        GROUP_SUPER_USER: ALL_PERMISSIONS,
    }
)

# Caller identities that are not real users
GUEST_ID = "GUEST"
SYSTEM_ID = "SYSTEM"


class Action(StrEnum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
