"""Unit tests for role-based access decisions."""

from loguru import logger

from user_api.core.permissions import ADMIN_ONLY, ALLOW, ANY_USER, DenyReason, Identity, authorize
from user_api.models.user import Role

ADMIN = Identity(user_id="admin-id", email="admin@example.com", role=Role.ADMIN)
USER = Identity(user_id="user-id", email="user@example.com", role=Role.USER)


class TestAuthorize:
    """Tests for the authorize decision function."""

    def test_anonymous_is_unauthenticated(self) -> None:
        decision = authorize(None, ANY_USER)
        assert decision.allowed is False
        assert decision.reason is DenyReason.UNAUTHENTICATED

    def test_user_denied_admin_only(self) -> None:
        decision = authorize(USER, ADMIN_ONLY)
        assert decision.allowed is False
        assert decision.reason is DenyReason.FORBIDDEN

    def test_admin_allowed_admin_only(self) -> None:
        assert authorize(ADMIN, ADMIN_ONLY) == ALLOW

    def test_any_user_allows_both_roles(self) -> None:
        assert authorize(USER, ANY_USER).allowed
        assert authorize(ADMIN, ANY_USER).allowed

    def test_empty_role_set_denies_everyone(self) -> None:
        assert authorize(ADMIN, frozenset()).reason is DenyReason.FORBIDDEN

    def test_forbidden_attempt_is_logged(self) -> None:
        messages: list[str] = []
        sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
        try:
            authorize(USER, ADMIN_ONLY, endpoint="/api/v1/users", method="GET")
        finally:
            logger.remove(sink_id)
        assert len(messages) == 1
        assert "user-id" in messages[0]
        assert "GET /api/v1/users" in messages[0]

    def test_identity_is_admin(self) -> None:
        assert ADMIN.is_admin is True
        assert USER.is_admin is False
