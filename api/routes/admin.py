"""
api/routes/admin.py -- Moderator-only aggregation and deletion endpoints.

Routes:
  GET    /admin/data             -- every event, job, news item, and user
  DELETE /admin/{category}/{id}  -- delete one record by category and id

Both require an admin or moderator session. The router-level dependency
enforces it; handlers do not repeat the check.
"""

from fastapi import APIRouter, Depends, Request

from admin.service import AdminService
from api.models import AdminDataResponse, SuccessResponse
from auth.dependencies import require_moderator

router = APIRouter(prefix="/admin", dependencies=[Depends(require_moderator)])


def _admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


@router.get("/data", response_model=AdminDataResponse)
def get_admin_data(request: Request) -> AdminDataResponse:
    """Return all records grouped by category, with credential fields removed."""
    return AdminDataResponse(**_admin_service(request).get_admin_data())


@router.delete("/{category}/{item_id}", response_model=SuccessResponse)
def delete_item(request: Request, category: str, item_id: str) -> SuccessResponse:
    """Delete a record. Deleting an id that does not exist still succeeds.

    category must be one of the configured ADMIN_CATEGORIES (404 otherwise).
    """
    _admin_service(request).delete_by_category(category, item_id)
    return SuccessResponse()
