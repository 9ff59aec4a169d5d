# tests/test_permissions.py
"""Unit tests for permission derivation and the SQL capability predicates."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import itertools
import pytest
from intake.services.permissions import (
    NO_PERMISSIONS,
    Capability,
    derive_permissions,
    permissions_for,
    user_can,
    user_can_checkin,
    user_can_checkout,
    user_can_edit,
)
from intake.utils.constants import AppRole

FLAG_COMBOS = list(itertools.product([False, True], repeat=3))


class TestDerivePermissions:
    @pytest.mark.parametrize("can_edit,can_checkin,can_checkout", FLAG_COMBOS)
    def test_admin_gets_everything(self, can_edit, can_checkin, can_checkout):
        perms = derive_permissions(AppRole.ADMIN, can_edit, can_checkin, can_checkout)
        assert perms.is_admin
        assert perms.can_edit and perms.can_checkin and perms.can_checkout

    @pytest.mark.parametrize("role", [AppRole.MANAGER, AppRole.VIEWER])
    @pytest.mark.parametrize("can_edit,can_checkin,can_checkout", FLAG_COMBOS)
    def test_non_admin_follows_flags(self, role, can_edit, can_checkin, can_checkout):
        perms = derive_permissions(role, can_edit, can_checkin, can_checkout)
        assert not perms.is_admin
        assert (perms.can_edit, perms.can_checkin, perms.can_checkout) == (can_edit, can_checkin, can_checkout)

    def test_missing_values_are_least_privileged(self):
        perms = derive_permissions(None, None, None, None)
        assert perms == NO_PERMISSIONS
        assert perms.role == AppRole.VIEWER

    def test_unknown_role_is_viewer(self):
        assert derive_permissions("superuser", True).role == AppRole.VIEWER

    def test_string_role_accepted(self):
        assert derive_permissions("admin").is_admin

    def test_no_role_row(self):
        assert permissions_for(None) == NO_PERMISSIONS

    def test_as_dict(self):
        d = derive_permissions(AppRole.MANAGER, can_checkin=True).as_dict()
        assert d == {"role": "manager", "is_admin": False, "can_edit": False,
                     "can_checkin": True, "can_checkout": False}


class TestSqlPredicates:
    @pytest.mark.parametrize("role", list(AppRole))
    @pytest.mark.parametrize("can_edit,can_checkin,can_checkout", FLAG_COMBOS)
    def test_predicates_match_derivation(self, db, make_user, role, can_edit, can_checkin, can_checkout):
        ctx = make_user(f"u-{role.value}", role, can_edit, can_checkin, can_checkout)
        assert user_can_edit(db, ctx.user_id) == ctx.permissions.can_edit
        assert user_can_checkin(db, ctx.user_id) == ctx.permissions.can_checkin
        assert user_can_checkout(db, ctx.user_id) == ctx.permissions.can_checkout

    def test_unknown_user_has_nothing(self, db):
        assert not user_can(db, "no-such-user", Capability.EDIT)
