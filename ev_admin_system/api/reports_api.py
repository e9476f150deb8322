# ev_admin_system/api/reports_api.py

import logging

from fastapi import APIRouter, Depends

from ev_admin_system.api.dependencies import admin_access, get_reports_service
from ev_admin_system.api.schemas import success
from ev_admin_system.business_logic.reports_service import ReportsService
from ev_admin_system.core.security import AdminContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reports"])


@router.get("/dashboard", name="GET_DASHBOARD_DATA")
async def get_dashboard_data(admin: AdminContext = Depends(admin_access),
                             service: ReportsService = Depends(get_reports_service)):
    logger.info("GET_DASHBOARD_DATA_REQUEST")
    result = await service.get_dashboard_data()
    logger.info("GET_DASHBOARD_DATA_RESPONSE: SUCCESS")
    return success(result)
