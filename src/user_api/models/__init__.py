"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from user_api.models.audit_log import AuditLog
from user_api.models.user import Role, User

__all__ = [
    "AuditLog",
    "Role",
    "User",
]
