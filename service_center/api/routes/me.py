"""Current user endpoint."""

from fastapi import APIRouter, Depends

from service_center.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and roles."""

    return {
        "id": str(context.user_id),
        "external_id": context.external_id,
        "email": context.email,
        "display_name": context.display_name,
        "status": context.status,
        "roles": [
            {
                "role": assignment.role.value,
                "showroom_id": str(assignment.showroom_id) if assignment.showroom_id is not None else None,
            }
            for assignment in context.roles
        ],
    }
