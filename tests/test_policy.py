"""Tests for the access policy table"""

import pytest

from hms_api.errors import AuthorizationDenied
from hms_api.models.user import User, UserType
from hms_api.services.policy import Action, enforce, is_allowed, restricted_fields_for

HOTEL = 1
RESTAURANT = 2


def make(user_id, user_type, property_id=None) -> User:
    return User(id=user_id, user_type=user_type, property_id=property_id)


MASTER = make(1, UserType.MASTER_ADMIN)
HOTEL_ADMIN = make(2, UserType.PROPERTY_ADMIN, HOTEL)
HOTEL_STAFF = make(3, UserType.STAFF, HOTEL)
OTHER_HOTEL_STAFF = make(4, UserType.STAFF, HOTEL)
RESTAURANT_STAFF = make(5, UserType.STAFF, RESTAURANT)


@pytest.mark.parametrize("action", [
    Action.PROPERTY_CREATE,
    Action.PROPERTY_DELETE,
    Action.PROPERTY_TOGGLE,
    Action.PROPERTY_STATS,
    Action.USER_STATS,
    Action.USER_ASSIGN_ROLES,
    Action.ROLE_WRITE,
    Action.PERMISSION_WRITE,
])
def test_master_only_actions(action):
    assert is_allowed(MASTER, action, HOTEL)
    assert not is_allowed(HOTEL_ADMIN, action, HOTEL)
    assert not is_allowed(HOTEL_STAFF, action, HOTEL)


def test_property_read_is_tenant_scoped():
    assert is_allowed(HOTEL_ADMIN, Action.PROPERTY_READ, HOTEL)
    assert is_allowed(HOTEL_STAFF, Action.PROPERTY_READ, HOTEL)
    assert not is_allowed(HOTEL_ADMIN, Action.PROPERTY_READ, RESTAURANT)
    assert not is_allowed(RESTAURANT_STAFF, Action.PROPERTY_READ, HOTEL)


def test_property_update_needs_property_admin():
    assert is_allowed(HOTEL_ADMIN, Action.PROPERTY_UPDATE, HOTEL)
    assert not is_allowed(HOTEL_ADMIN, Action.PROPERTY_UPDATE, RESTAURANT)
    assert not is_allowed(HOTEL_STAFF, Action.PROPERTY_UPDATE, HOTEL)


def test_staff_reads_and_updates_only_self():
    for action in (Action.USER_READ, Action.USER_UPDATE):
        assert is_allowed(HOTEL_STAFF, action, HOTEL, target=HOTEL_STAFF)
        assert not is_allowed(HOTEL_STAFF, action, HOTEL, target=OTHER_HOTEL_STAFF)


def test_property_admin_reaches_own_property_users():
    assert is_allowed(HOTEL_ADMIN, Action.USER_READ, HOTEL, target=HOTEL_STAFF)
    assert is_allowed(HOTEL_ADMIN, Action.USER_UPDATE, HOTEL, target=HOTEL_STAFF)
    assert is_allowed(HOTEL_ADMIN, Action.USER_TOGGLE, HOTEL, target=HOTEL_STAFF)
    assert not is_allowed(HOTEL_ADMIN, Action.USER_READ, RESTAURANT, target=RESTAURANT_STAFF)
    assert not is_allowed(HOTEL_ADMIN, Action.USER_TOGGLE, RESTAURANT, target=RESTAURANT_STAFF)


def test_property_admin_creates_and_deletes_only_staff():
    new_staff = User(user_type=UserType.STAFF, property_id=HOTEL)
    new_admin = User(user_type=UserType.PROPERTY_ADMIN, property_id=HOTEL)
    other_admin = make(6, UserType.PROPERTY_ADMIN, HOTEL)

    assert is_allowed(HOTEL_ADMIN, Action.USER_CREATE, HOTEL, target=new_staff)
    assert not is_allowed(HOTEL_ADMIN, Action.USER_CREATE, HOTEL, target=new_admin)
    assert not is_allowed(HOTEL_ADMIN, Action.USER_CREATE, RESTAURANT, target=new_staff)
    assert not is_allowed(HOTEL_STAFF, Action.USER_CREATE, HOTEL, target=new_staff)

    assert is_allowed(HOTEL_ADMIN, Action.USER_DELETE, HOTEL, target=HOTEL_STAFF)
    assert not is_allowed(HOTEL_ADMIN, Action.USER_DELETE, HOTEL, target=other_admin)


def test_actor_without_property_has_no_tenant():
    floating_admin = make(7, UserType.PROPERTY_ADMIN)
    assert not is_allowed(floating_admin, Action.PROPERTY_READ, None)
    assert not is_allowed(floating_admin, Action.USER_TOGGLE, None, target=MASTER)


def test_enforce_raises_with_message():
    with pytest.raises(AuthorizationDenied) as exc_info:
        enforce(HOTEL_STAFF, Action.PROPERTY_UPDATE, HOTEL, message="Access denied to this property")
    assert exc_info.value.message == "Access denied to this property"
    assert exc_info.value.status_code == 403


def test_restricted_fields():
    assert restricted_fields_for(MASTER) == set()
    assert restricted_fields_for(HOTEL_STAFF) == {"user_type", "property_id", "is_active", "role_ids"}
