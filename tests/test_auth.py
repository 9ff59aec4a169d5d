# tests/test_auth.py
"""Unit tests for sign-in, sessions and user administration."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from unittest.mock import patch
import pytest
from conftest import PASSWORD
from intake.exceptions import ConflictError, NotAuthenticatedError, PermissionDeniedError, ValidationError
from intake.models.auth import AuthSession
from intake.schemas.user import BootstrapRequest, RoleUpdate, UserCreate
from intake.services import auth_service, user_service
from intake.utils.constants import AppRole


class TestSignIn:
    def test_username_maps_to_email(self, db, manager):
        assert auth_service.get_email_for_login(db, "  Manager ") == "manager@shop.test"
        assert auth_service.get_email_for_login(db, "nobody") is None
        assert auth_service.get_email_for_login(db, "") is None

    def test_sign_in_and_resolve(self, db, manager):
        session = auth_service.sign_in(db, "manager", PASSWORD)
        ctx = auth_service.resolve_session(db, session.token)
        assert ctx.user_id == manager.user_id
        assert ctx.permissions.can_checkout and not ctx.is_admin

    @pytest.mark.parametrize("username,password", [("manager", "wrong"), ("ghost", PASSWORD)])
    def test_bad_credentials_share_one_message(self, db, manager, username, password):
        with pytest.raises(NotAuthenticatedError) as exc:
            auth_service.sign_in(db, username, password)
        assert exc.value.message == auth_service.INVALID_CREDENTIALS

    @pytest.mark.parametrize("username", ["ghost", ""])
    def test_unknown_username_still_checks_a_hash(self, db, manager, username):
        with patch.object(auth_service, "check_password", wraps=auth_service.check_password) as checked:
            with pytest.raises(NotAuthenticatedError):
                auth_service.sign_in(db, username, PASSWORD)
        checked.assert_called_once_with(PASSWORD, auth_service._DUMMY_HASH)

    def test_sign_out(self, db, manager):
        session = auth_service.sign_in(db, "manager", PASSWORD)
        auth_service.sign_out(db, session.token)
        with pytest.raises(NotAuthenticatedError):
            auth_service.resolve_session(db, session.token)

    def test_refresh_rotates_token(self, db, manager):
        old = auth_service.sign_in(db, "manager", PASSWORD).token
        new = auth_service.refresh(db, old)
        assert new.token != old
        assert auth_service.resolve_session(db, new.token).user_id == manager.user_id
        with pytest.raises(NotAuthenticatedError):
            auth_service.resolve_session(db, old)

    def test_expired_session_removed(self, db, manager):
        session = auth_service.sign_in(db, "manager", PASSWORD)
        session.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()
        with pytest.raises(NotAuthenticatedError):
            auth_service.resolve_session(db, session.token)
        assert db.query(AuthSession).count() == 0

    def test_missing_token(self, db):
        with pytest.raises(NotAuthenticatedError):
            auth_service.resolve_session(db, None)


class TestUsers:
    def bootstrap(self):
        return BootstrapRequest(email="Owner@Shop.test", password="pw", full_name="Owner", username="Owner")

    def test_bootstrap_once(self, db):
        profile = user_service.bootstrap_admin(db, self.bootstrap())
        assert profile.email == "owner@shop.test" and profile.username == "owner"
        ctx = auth_service.load_context(db, profile.id)
        assert ctx.is_admin
        with pytest.raises(ConflictError):
            user_service.bootstrap_admin(db, self.bootstrap())

    def test_only_admin_creates_users(self, db, admin, manager):
        body = UserCreate(email="new@shop.test", password="pw", full_name="New", username="new",
                          role=AppRole.VIEWER, can_checkin=True)
        with pytest.raises(PermissionDeniedError):
            user_service.create_user(db, manager, body)
        profile = user_service.create_user(db, admin, body)
        ctx = auth_service.load_context(db, profile.id)
        assert ctx.permissions.can_checkin and not ctx.permissions.can_edit

        with pytest.raises(ConflictError):
            user_service.create_user(db, admin, body)

    def test_required_fields(self, db, admin):
        with pytest.raises(ValidationError):
            user_service.create_user(db, admin, UserCreate(email="x@shop.test", password="", full_name="X",
                                                           username="x"))

    def test_role_update_and_listing(self, db, admin, viewer):
        user_service.update_role(db, admin, viewer.user_id, RoleUpdate(role=AppRole.MANAGER, can_checkout=True))
        assert auth_service.load_context(db, viewer.user_id).permissions.can_checkout
        listed = {u.username: u for u in user_service.list_users(db)}
        assert listed["viewer"].user_role.role == AppRole.MANAGER

    def test_profile_edit_rules(self, db, admin, manager, viewer):
        assert user_service.update_profile(db, viewer, viewer.user_id, full_name="Vera").full_name == "Vera"
        with pytest.raises(PermissionDeniedError):
            user_service.update_profile(db, viewer, manager.user_id, full_name="Nope")
        with pytest.raises(ConflictError):
            user_service.update_profile(db, admin, viewer.user_id, username="manager")
        assert user_service.update_profile(db, admin, viewer.user_id, username="Vera").username == "vera"
