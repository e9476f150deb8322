# ev_admin_system/api/evses_api.py

import logging

from fastapi import APIRouter, Depends

from ev_admin_system.api.dependencies import admin_access, get_evse_service
from ev_admin_system.api.schemas import EVSECreate, success
from ev_admin_system.business_logic.errors import BusinessRuleError
from ev_admin_system.business_logic.evse_service import EVSEService
from ev_admin_system.core.security import AdminContext, verify_basic_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evses", tags=["EVSEs"])


@router.get("", name="GET_EVSES")
async def get_evses(limit: int = 10, offset: int = 0, admin: AdminContext = Depends(admin_access),
                    service: EVSEService = Depends(get_evse_service)):
    logger.info(f"GET_EVSES_REQUEST: limit={limit} offset={offset}")
    result = await service.get_evses(limit, offset)
    logger.info("GET_EVSES_RESPONSE: SUCCESS")
    return success(result)


@router.post("", name="REGISTER_EVSE")
async def register_evse(payload: EVSECreate, admin: AdminContext = Depends(admin_access),
                        service: EVSEService = Depends(get_evse_service)):
    logger.info(f"REGISTER_EVSE_REQUEST: serial_number={payload.serial_number} kwh={payload.kwh}")
    result = await service.register_evse(
        attributes=payload.evse_attributes(),
        connectors=[connector.model_dump() for connector in payload.connectors],
        kwh=payload.kwh,
        payment_types=payload.payment_types,
        capabilities=payload.capabilities,
        admin_id=admin.id,
        location_id=payload.location_id,
    )
    logger.info(f"REGISTER_EVSE_RESPONSE: {result}")
    return success(result)


@router.patch("/{action}/{location_id}/{evse_uid}", name="BIND_OR_UNBIND_EVSE")
async def bind_or_unbind_evse(action: str, location_id: int, evse_uid: str,
                              admin: AdminContext = Depends(admin_access),
                              service: EVSEService = Depends(get_evse_service)):
    logger.info(f"BIND_OR_UNBIND_EVSE_REQUEST: action={action} location_id={location_id} evse_uid={evse_uid}")

    if action == "bind":
        result = await service.bind_evse(location_id, evse_uid, admin.id)
    elif action == "unbind":
        result = await service.unbind_evse(location_id, evse_uid, admin.id)
    else:
        raise BusinessRuleError("INVALID_ACTION")

    logger.info(f"BIND_OR_UNBIND_EVSE_RESPONSE: {result}")
    return success(result)


@router.get("/data/defaults", name="GET_DEFAULT_DATA", dependencies=[Depends(verify_basic_token)])
async def get_default_data(service: EVSEService = Depends(get_evse_service)):
    logger.info("GET_DEFAULT_DATA_REQUEST")
    result = await service.get_default_data()
    logger.info("GET_DEFAULT_DATA_RESPONSE: SUCCESS")
    return success(result)


@router.get("/search/{serial_number}/{limit}/{offset}", name="SEARCH_EVSE_BY_SERIAL_NUMBER")
async def search_evse_by_serial_number(serial_number: str, limit: int, offset: int,
                                       admin: AdminContext = Depends(admin_access),
                                       service: EVSEService = Depends(get_evse_service)):
    logger.info(f"SEARCH_EVSE_BY_SERIAL_NUMBER_REQUEST: serial_number={serial_number}")
    result = await service.search_evse_by_serial_number(serial_number, limit, offset)
    logger.info("SEARCH_EVSE_BY_SERIAL_NUMBER_RESPONSE: SUCCESS")
    return success(result)
