"""User management API with role-based access control and request auditing."""

__version__ = "0.1.0"
