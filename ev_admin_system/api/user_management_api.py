# ev_admin_system/api/user_management_api.py

import logging

from fastapi import APIRouter, Depends

from ev_admin_system.api.dependencies import get_user_management_service
from ev_admin_system.api.schemas import SubUserCreate, success
from ev_admin_system.business_logic.user_management_service import UserManagementService
from ev_admin_system.core.security import AdminContext, get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["User Management"])


@router.post("/management", name="ADD_SUB_USER")
async def add_sub_user(payload: SubUserCreate, admin: AdminContext = Depends(get_current_admin),
                       service: UserManagementService = Depends(get_user_management_service)):
    logger.info(f"ADD_SUB_USER_REQUEST: username={payload.username} role={payload.role}")
    result = await service.add_sub_user(payload.username, payload.password, payload.role, payload.privileges,
                                        admin.id)
    logger.info(f"ADD_SUB_USER_RESPONSE: {result}")
    return success(result)
