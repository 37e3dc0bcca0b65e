from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_company_or_admin
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.dashboard import DashboardStats
from realestate_api.services.dashboard import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=ApiResponse[DashboardStats])
def get_stats(db: Session = Depends(get_db), current_user: User = Depends(require_company_or_admin)):
    return ApiResponse(data=dashboard_stats(db, current_user))
