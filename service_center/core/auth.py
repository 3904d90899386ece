"""Caller identity, role grants and showroom-scoped permission checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from service_center.core.config import get_settings
from service_center.db.dependencies import get_db_session
from service_center.models.entities import RoleAssignment, RoleType, Showroom, User


class AppRole(str, Enum):
    """Application roles. ``owner`` is organization-wide, the rest are showroom scoped."""

    OWNER = "owner"
    GENERAL_MANAGER = "general_manager"
    SERVICE_MANAGER = "service_manager"
    SERVICE_ADVISOR = "service_advisor"
    BODY_SHOP_MANAGER = "body_shop_manager"


ROLE_TYPE_TO_APP_ROLE: dict[RoleType, AppRole] = {
    RoleType.OWNER: AppRole.OWNER,
    RoleType.GENERAL_MANAGER: AppRole.GENERAL_MANAGER,
    RoleType.SERVICE_MANAGER: AppRole.SERVICE_MANAGER,
    RoleType.SERVICE_ADVISOR: AppRole.SERVICE_ADVISOR,
    RoleType.BODY_SHOP_MANAGER: AppRole.BODY_SHOP_MANAGER,
}


APP_ROLE_TO_DB_ROLE: dict[AppRole, RoleType] = {value: key for key, value in ROLE_TYPE_TO_APP_ROLE.items()}


VIEW_ROLES: frozenset[AppRole] = frozenset(AppRole)
UPLOAD_ROLES: frozenset[AppRole] = frozenset(
    {AppRole.OWNER, AppRole.GENERAL_MANAGER, AppRole.SERVICE_MANAGER, AppRole.BODY_SHOP_MANAGER}
)
CITY_TARGET_ROLES: frozenset[AppRole] = frozenset({AppRole.OWNER, AppRole.GENERAL_MANAGER})
DISTRIBUTE_ROLES: frozenset[AppRole] = frozenset(
    {AppRole.OWNER, AppRole.GENERAL_MANAGER, AppRole.SERVICE_MANAGER}
)
ADMIN_ROLES: frozenset[AppRole] = frozenset({AppRole.OWNER, AppRole.GENERAL_MANAGER})


# Ordered by priority; first entry is the default landing dashboard.
DASHBOARD_ROLE_MAP: tuple[tuple[str, frozenset[AppRole]], ...] = (
    ("gm_dashboard", frozenset({AppRole.OWNER, AppRole.GENERAL_MANAGER})),
    ("sm_dashboard", frozenset({AppRole.SERVICE_MANAGER})),
    ("bdm_dashboard", frozenset({AppRole.BODY_SHOP_MANAGER})),
    ("sa_dashboard", frozenset({AppRole.SERVICE_ADVISOR})),
)


@dataclass(frozen=True)
class EffectiveRoleAssignment:
    """An active role grant; ``showroom_id`` is None only for owners."""

    role: AppRole
    showroom_id: UUID | None
    assignment_id: UUID


@dataclass(frozen=True)
class RequestUserContext:
    """Caller identity plus the role grants that apply to this request."""

    user_id: UUID
    external_id: str
    email: str
    display_name: str
    status: str
    roles: tuple[EffectiveRoleAssignment, ...]

    @property
    def role_names(self) -> tuple[AppRole, ...]:
        """Distinct roles held in any showroom, in grant order."""

        return tuple(dict.fromkeys(grant.role for grant in self.roles))

    @property
    def showroom_ids(self) -> tuple[UUID, ...]:
        """Showrooms where the user has an explicit assignment."""

        return tuple(dict.fromkeys(grant.showroom_id for grant in self.roles if grant.showroom_id is not None))

    @property
    def is_owner(self) -> bool:
        return AppRole.OWNER in self.role_names

    def roles_in_showroom(self, showroom_id: UUID) -> set[AppRole]:
        """Roles effective in one showroom, owner included when held."""

        scoped = {assignment.role for assignment in self.roles if assignment.showroom_id == showroom_id}
        if self.is_owner:
            scoped.add(AppRole.OWNER)
        return scoped

    def sees_only_own_bookings(self, showroom_id: UUID) -> bool:
        """True when the caller is a plain service advisor in this showroom."""

        return self.roles_in_showroom(showroom_id) == {AppRole.SERVICE_ADVISOR}


def _resolve_identity(
    x_user_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
) -> tuple[str, str, str]:
    """(external_id, email, display_name) from proxy headers or the dev principal."""

    if x_user_id and x_user_email:
        email = x_user_email.strip().lower()
        return x_user_id.strip(), email, (x_user_name or email).strip()

    settings = get_settings()
    if not settings.auth_allow_dev_principal:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-USER-ID and X-USER-EMAIL headers are required.",
        )
    return (
        settings.auth_dev_external_id.strip(),
        settings.auth_dev_email.strip().lower(),
        settings.auth_dev_display_name.strip(),
    )


def _upsert_user(db: Session, *, external_id: str, email: str, display_name: str) -> User:
    now = datetime.utcnow()
    user = db.scalar(select(User).where(User.external_id == external_id))
    if user is None:
        user = User(external_id=external_id, status="active", created_at=now)
        db.add(user)

    if user.email != email or user.display_name != display_name:
        user.email = email
        user.display_name = display_name
        user.updated_at = now
    user.last_login_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    external_id: str,
    email: str,
    display_name: str,
) -> User:
    """Create or refresh a user outside a request and commit it (tests, seeding)."""

    normalized_email = email.strip().lower()
    user = _upsert_user(
        db,
        external_id=external_id.strip(),
        email=normalized_email,
        display_name=display_name.strip() or normalized_email,
    )
    db.commit()
    db.refresh(user)
    return user


def _active_grants(db: Session, user_id: UUID) -> tuple[EffectiveRoleAssignment, ...]:
    rows = db.scalars(
        select(RoleAssignment).where(RoleAssignment.user_id == user_id, RoleAssignment.active.is_(True))
    ).all()
    return tuple(
        EffectiveRoleAssignment(
            role=ROLE_TYPE_TO_APP_ROLE[row.role],
            showroom_id=row.showroom_id,
            assignment_id=row.id,
        )
        for row in rows
    )


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-USER-ID"),
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    x_user_name: str | None = Header(default=None, alias="X-USER-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Build the caller context for a request.

    The upstream auth proxy has already verified the caller and forwards
    the identity in ``X-USER-*`` headers.
    """

    external_id, email, display_name = _resolve_identity(x_user_id, x_user_email, x_user_name)
    user = _upsert_user(db, external_id=external_id, email=email, display_name=display_name)
    grants = _active_grants(db, user.id)
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        external_id=user.external_id,
        email=user.email,
        display_name=user.display_name,
        status=user.status,
        roles=grants,
    )


def has_role(context: RequestUserContext, allowed_roles: set[AppRole] | frozenset[AppRole]) -> bool:
    """Role check in any scope; showroom checks go through ``has_showroom_access``."""

    return not allowed_roles.isdisjoint(context.role_names)


def has_showroom_access(
    context: RequestUserContext,
    *,
    showroom_id: UUID,
    allowed_roles: set[AppRole] | frozenset[AppRole] | None = None,
) -> bool:
    """True when the caller holds any role in the showroom, or one of ``allowed_roles`` if given."""

    held = context.roles_in_showroom(showroom_id)
    if allowed_roles is None:
        return bool(held)
    return not held.isdisjoint(allowed_roles)


def dashboards_for(context: RequestUserContext) -> list[str]:
    """Dashboard identifiers the caller may open, highest priority first."""

    held = set(context.role_names)
    return [dashboard for dashboard, roles in DASHBOARD_ROLE_MAP if held & roles]


def require_roles(*roles: AppRole):
    """FastAPI dependency admitting callers that hold any of ``roles`` somewhere."""

    allowed = frozenset(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your roles do not allow this operation.",
            )
        return context

    return dependency


def ensure_showroom_access(
    context: RequestUserContext,
    showroom_id: UUID,
    allowed_roles: set[AppRole] | frozenset[AppRole] | None = None,
) -> None:
    """Raise 403 unless the caller holds one of ``allowed_roles`` in the showroom."""

    if not has_showroom_access(context, showroom_id=showroom_id, allowed_roles=allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient showroom scope permissions for this operation.",
        )


def ensure_showroom_exists(db: Session, showroom_id: UUID) -> Showroom:
    """Resolve showroom or raise 404."""

    showroom = db.scalar(select(Showroom).where(Showroom.id == showroom_id))
    if showroom is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Showroom not found.",
        )
    return showroom
