from __future__ import annotations

import uuid

from service_center.core.auth import (
    AppRole,
    EffectiveRoleAssignment,
    RequestUserContext,
    dashboards_for,
    has_role,
    has_showroom_access,
)


def _context(*assignments: tuple[AppRole, uuid.UUID | None]) -> RequestUserContext:
    return RequestUserContext(
        user_id=uuid.uuid4(),
        external_id="ext-1",
        email="user@test.local",
        display_name="User",
        status="active",
        roles=tuple(
            EffectiveRoleAssignment(role=role, showroom_id=showroom_id, assignment_id=uuid.uuid4())
            for role, showroom_id in assignments
        ),
    )


def test_has_role_is_set_membership() -> None:
    context = _context((AppRole.SERVICE_MANAGER, uuid.uuid4()))

    assert has_role(context, {AppRole.SERVICE_MANAGER}) is True
    assert has_role(context, {AppRole.GENERAL_MANAGER, AppRole.OWNER}) is False


def test_has_showroom_access_for_scoped_role() -> None:
    showroom_id = uuid.uuid4()
    context = _context((AppRole.GENERAL_MANAGER, showroom_id))

    assert has_showroom_access(context, showroom_id=showroom_id) is True
    assert has_showroom_access(context, showroom_id=showroom_id, allowed_roles={AppRole.GENERAL_MANAGER}) is True
    assert has_showroom_access(context, showroom_id=showroom_id, allowed_roles={AppRole.SERVICE_ADVISOR}) is False
    assert has_showroom_access(context, showroom_id=uuid.uuid4()) is False


def test_owner_access_depends_on_allowed_roles() -> None:
    context = _context((AppRole.OWNER, None))
    showroom_id = uuid.uuid4()

    assert context.is_owner is True
    assert has_showroom_access(context, showroom_id=showroom_id) is True
    assert has_showroom_access(context, showroom_id=showroom_id, allowed_roles={AppRole.OWNER}) is True
    assert has_showroom_access(context, showroom_id=showroom_id, allowed_roles={AppRole.SERVICE_MANAGER}) is False


def test_service_advisor_only_sees_own_bookings() -> None:
    showroom_id = uuid.uuid4()
    advisor = _context((AppRole.SERVICE_ADVISOR, showroom_id))
    advisor_and_manager = _context(
        (AppRole.SERVICE_ADVISOR, showroom_id),
        (AppRole.SERVICE_MANAGER, showroom_id),
    )

    assert advisor.sees_only_own_bookings(showroom_id) is True
    assert advisor_and_manager.sees_only_own_bookings(showroom_id) is False


def test_dashboards_follow_priority_order() -> None:
    showroom_id = uuid.uuid4()
    context = _context(
        (AppRole.SERVICE_ADVISOR, showroom_id),
        (AppRole.BODY_SHOP_MANAGER, showroom_id),
        (AppRole.GENERAL_MANAGER, showroom_id),
    )

    assert dashboards_for(context) == ["gm_dashboard", "bdm_dashboard", "sa_dashboard"]
    assert dashboards_for(_context()) == []
