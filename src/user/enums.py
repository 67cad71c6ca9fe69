from enum import StrEnum


class UserRole(StrEnum):
    """Carried in the access token's `role` claim and checked by role guards."""

    ADMIN = "admin"
    USER = "user"
