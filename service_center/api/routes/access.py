"""Access and session context endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from service_center.api.routes.admin import serialize_showroom
from service_center.core.auth import RequestUserContext, dashboards_for, get_current_user_context
from service_center.db.dependencies import get_db_session
from service_center.models.entities import Showroom

router = APIRouter(prefix="/access", tags=["access"])


@router.get("/context")
def get_access_context(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Return roles, reachable showrooms and the dashboards the caller may open."""

    stmt = select(Showroom).order_by(Showroom.city.asc(), Showroom.code.asc())
    if not context.is_owner:
        stmt = stmt.where(Showroom.id.in_(list(context.showroom_ids)))
    showrooms = db.scalars(stmt).all()
    dashboards = dashboards_for(context)

    return {
        "user": {
            "id": str(context.user_id),
            "email": context.email,
            "display_name": context.display_name,
            "status": context.status,
            "external_id": context.external_id,
        },
        "roles": [role.value for role in context.role_names],
        "assignments": [
            {
                "role": assignment.role.value,
                "showroom_id": str(assignment.showroom_id) if assignment.showroom_id is not None else None,
            }
            for assignment in context.roles
        ],
        "showrooms": [serialize_showroom(showroom) for showroom in showrooms],
        "dashboards": dashboards,
        "default_dashboard": dashboards[0] if dashboards else None,
        "has_access": bool(context.roles),
    }
