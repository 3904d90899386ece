"""Administration endpoints for showrooms and role assignments."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from service_center.core.auth import (
    APP_ROLE_TO_DB_ROLE,
    ROLE_TYPE_TO_APP_ROLE,
    AppRole,
    RequestUserContext,
    ensure_showroom_exists,
    has_showroom_access,
    require_roles,
)
from service_center.db.dependencies import get_db_session
from service_center.models.entities import RoleAssignment, Showroom, User

router = APIRouter(tags=["admin"])


class ShowroomCreate(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=128)
    active: bool = True


class ShowroomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    city: str | None = Field(default=None, min_length=1, max_length=128)
    active: bool | None = None


class RoleAssignmentCreate(BaseModel):
    user_email: str = Field(min_length=3, max_length=320)
    user_display_name: str | None = Field(default=None, min_length=1, max_length=255)
    user_external_id: str = Field(min_length=1, max_length=128)
    role: AppRole
    showroom_id: UUID | None = None
    active: bool = True


class RoleAssignmentUpdate(BaseModel):
    role: AppRole | None = None
    showroom_id: UUID | None = None
    active: bool | None = None


def serialize_showroom(showroom: Showroom) -> dict[str, object]:
    return {
        "id": str(showroom.id),
        "code": showroom.code,
        "name": showroom.name,
        "city": showroom.city,
        "active": showroom.active,
        "created_at": showroom.created_at.isoformat(),
        "updated_at": showroom.updated_at.isoformat(),
    }


def _serialize_user(user: User) -> dict[str, object]:
    return {
        "id": str(user.id),
        "external_id": user.external_id,
        "email": user.email,
        "display_name": user.display_name,
        "status": user.status,
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


def _serialize_role_assignment(assignment: RoleAssignment) -> dict[str, object]:
    return {
        "id": str(assignment.id),
        "user_id": str(assignment.user_id),
        "showroom_id": str(assignment.showroom_id) if assignment.showroom_id else None,
        "role": ROLE_TYPE_TO_APP_ROLE[assignment.role].value,
        "active": assignment.active,
        "created_at": assignment.created_at.isoformat(),
        "updated_at": assignment.updated_at.isoformat(),
    }


def _ensure_assignment_scope_valid(role: AppRole, showroom_id: UUID | None) -> None:
    if role is AppRole.OWNER and showroom_id is not None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="owner role must not include showroom_id.",
        )
    if role is not AppRole.OWNER and showroom_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Showroom roles require showroom_id.",
        )


def _ensure_actor_can_assign(
    actor: RequestUserContext,
    *,
    role: AppRole,
    showroom_id: UUID | None,
) -> None:
    if actor.is_owner:
        return

    if role is AppRole.OWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only owner can assign owner role.",
        )

    if showroom_id is None or not has_showroom_access(
        actor,
        showroom_id=showroom_id,
        allowed_roles={AppRole.GENERAL_MANAGER},
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient scope permissions for this role assignment.",
        )


def _resolve_or_create_user(
    db: Session,
    *,
    email: str,
    external_id: str,
    display_name: str,
) -> User:
    normalized_id = external_id.strip()
    now = datetime.utcnow()

    user = db.scalar(select(User).where(and_(User.email == email, User.external_id == normalized_id)))
    if user is not None:
        if user.display_name != display_name:
            user.display_name = display_name
            user.updated_at = now
            db.flush()
        return user

    user_by_email = db.scalar(select(User).where(User.email == email))
    user_by_id = db.scalar(select(User).where(User.external_id == normalized_id))
    if user_by_email is not None or user_by_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User email and external_id belong to different existing accounts.",
        )

    user = User(
        email=email,
        external_id=normalized_id,
        display_name=display_name,
        status="active",
        last_login_at=None,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.flush()
    return user


def _validate_email(value: str) -> str:
    normalized = value.strip().lower()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="user_email must be a valid email address.",
        )
    return normalized


@router.get("/showrooms")
def list_showrooms(
    context: RequestUserContext = Depends(require_roles(*AppRole)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    """List showrooms visible to the caller."""

    showrooms = db.scalars(select(Showroom).order_by(Showroom.city.asc(), Showroom.code.asc())).all()
    if not context.is_owner:
        showrooms = [showroom for showroom in showrooms if showroom.id in context.showroom_ids]
    return {"items": [serialize_showroom(showroom) for showroom in showrooms]}


@router.post("/showrooms", status_code=status.HTTP_201_CREATED)
def create_showroom(
    payload: ShowroomCreate,
    _: RequestUserContext = Depends(require_roles(AppRole.OWNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Create a showroom (owner only)."""

    now = datetime.utcnow()
    showroom = Showroom(
        code=payload.code.strip(),
        name=payload.name.strip(),
        city=payload.city.strip(),
        active=payload.active,
        created_at=now,
        updated_at=now,
    )
    db.add(showroom)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Showroom code already exists.",
        ) from exc

    db.refresh(showroom)
    return serialize_showroom(showroom)


@router.patch("/showrooms/{showroom_id}")
def update_showroom(
    showroom_id: UUID,
    payload: ShowroomUpdate,
    _: RequestUserContext = Depends(require_roles(AppRole.OWNER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    showroom = ensure_showroom_exists(db, showroom_id)
    if payload.name is not None:
        showroom.name = payload.name.strip()
    if payload.city is not None:
        showroom.city = payload.city.strip()
    if payload.active is not None:
        showroom.active = payload.active
    showroom.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(showroom)
    return serialize_showroom(showroom)


@router.get("/users")
def list_users(
    showroom_id: UUID | None = None,
    context: RequestUserContext = Depends(require_roles(AppRole.OWNER, AppRole.GENERAL_MANAGER)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    """List users with role assignments (global for owner, scoped for general managers)."""

    if showroom_id is not None and not has_showroom_access(
        context,
        showroom_id=showroom_id,
        allowed_roles={AppRole.OWNER, AppRole.GENERAL_MANAGER},
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient scope permissions to list users for this showroom.",
        )

    assignments = db.scalars(
        select(RoleAssignment).where(RoleAssignment.active.is_(True)).order_by(RoleAssignment.created_at.asc())
    ).all()

    visible: list[RoleAssignment] = []
    for assignment in assignments:
        if showroom_id is not None and assignment.showroom_id != showroom_id:
            continue
        if context.is_owner or (
            assignment.showroom_id is not None and assignment.showroom_id in context.showroom_ids
        ):
            visible.append(assignment)

    if not visible:
        return {"items": []}

    user_ids = sorted({assignment.user_id for assignment in visible}, key=str)
    users_by_id = {user.id: user for user in db.scalars(select(User).where(User.id.in_(user_ids))).all()}

    assignments_by_user: dict[UUID, list[dict[str, object]]] = {}
    for assignment in visible:
        assignments_by_user.setdefault(assignment.user_id, []).append(_serialize_role_assignment(assignment))

    items = []
    for user_id in user_ids:
        user = users_by_id.get(user_id)
        if user is None:
            continue
        user_payload = _serialize_user(user)
        user_payload["role_assignments"] = assignments_by_user.get(user_id, [])
        items.append(user_payload)
    return {"items": items}


@router.post("/users/role-assignments", status_code=status.HTTP_201_CREATED)
def create_role_assignment(
    payload: RoleAssignmentCreate,
    context: RequestUserContext = Depends(require_roles(AppRole.OWNER, AppRole.GENERAL_MANAGER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Create role assignment and upsert user account for first-time assignment."""

    user_email = _validate_email(payload.user_email)
    _ensure_assignment_scope_valid(payload.role, payload.showroom_id)
    _ensure_actor_can_assign(context, role=payload.role, showroom_id=payload.showroom_id)
    if payload.showroom_id is not None:
        ensure_showroom_exists(db, payload.showroom_id)

    display_name = payload.user_display_name.strip() if payload.user_display_name else user_email
    user = _resolve_or_create_user(
        db,
        email=user_email,
        external_id=payload.user_external_id,
        display_name=display_name,
    )

    now = datetime.utcnow()
    assignment = RoleAssignment(
        user_id=user.id,
        showroom_id=payload.showroom_id,
        role=APP_ROLE_TO_DB_ROLE[payload.role],
        active=payload.active,
        created_at=now,
        updated_at=now,
    )
    db.add(assignment)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role assignment already exists or violates assignment constraints.",
        ) from exc

    db.refresh(assignment)
    return _serialize_role_assignment(assignment)


@router.patch("/users/role-assignments/{assignment_id}")
def update_role_assignment(
    assignment_id: UUID,
    payload: RoleAssignmentUpdate,
    context: RequestUserContext = Depends(require_roles(AppRole.OWNER, AppRole.GENERAL_MANAGER)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    assignment = db.scalar(select(RoleAssignment).where(RoleAssignment.id == assignment_id))
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role assignment not found.")

    current_role = ROLE_TYPE_TO_APP_ROLE[assignment.role]
    target_role = payload.role or current_role
    target_showroom_id = payload.showroom_id
    if "showroom_id" not in payload.model_fields_set:
        target_showroom_id = assignment.showroom_id

    _ensure_assignment_scope_valid(target_role, target_showroom_id)
    # Actor must manage both the current and the target scope.
    _ensure_actor_can_assign(context, role=current_role, showroom_id=assignment.showroom_id)
    _ensure_actor_can_assign(context, role=target_role, showroom_id=target_showroom_id)
    if target_showroom_id is not None:
        ensure_showroom_exists(db, target_showroom_id)

    assignment.role = APP_ROLE_TO_DB_ROLE[target_role]
    assignment.showroom_id = target_showroom_id
    if payload.active is not None:
        assignment.active = payload.active
    assignment.updated_at = datetime.utcnow()

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role assignment already exists or violates assignment constraints.",
        ) from exc

    db.refresh(assignment)
    return _serialize_role_assignment(assignment)
