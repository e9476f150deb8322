# ev_admin_system/api/locations_api.py

import logging
import os
import shutil
import uuid
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from ev_admin_system.api.dependencies import admin_access, get_location_service
from ev_admin_system.api.schemas import LocationCreate, success
from ev_admin_system.business_logic.errors import BusinessRuleError
from ev_admin_system.business_logic.location_service import LocationService
from ev_admin_system.core.config import get_settings
from ev_admin_system.core.security import (AdminContext, get_current_admin, require_roles,
                                           verify_basic_token)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["Locations"])

ALLOWED_IMAGE_EXTENSIONS = {".png", ".svg", ".jpg", ".jpeg"}

search_access = require_roles("ADMIN_NOC", "ADMIN_MARKETING")


@router.get("", name="GET_LOCATIONS")
async def get_locations(limit: int = 10, offset: int = 0, admin: AdminContext = Depends(admin_access),
                        service: LocationService = Depends(get_location_service)):
    logger.info(f"GET_LOCATIONS_REQUEST: limit={limit} offset={offset}")
    result = await service.get_locations(limit, offset)
    logger.info("GET_LOCATIONS_RESPONSE: SUCCESS")
    return success(result)


@router.get("/unbinded", name="GET_UNBINDED_LOCATIONS")
async def get_unbinded_locations(admin: AdminContext = Depends(admin_access),
                                 service: LocationService = Depends(get_location_service)):
    logger.info("GET_UNBINDED_LOCATIONS_REQUEST")
    result = await service.get_unbinded_locations()
    logger.info("GET_UNBINDED_LOCATIONS_RESPONSE: SUCCESS")
    return success(result)


@router.post("", name="REGISTER_LOCATION")
async def register_location(payload: LocationCreate, admin: AdminContext = Depends(admin_access),
                            service: LocationService = Depends(get_location_service)):
    logger.info(f"REGISTER_LOCATION_REQUEST: name={payload.name} address={payload.address}")
    result = await service.register_location(
        name=payload.name,
        address=payload.address,
        facilities=payload.facilities,
        parking_types=payload.parking_types,
        parking_restrictions=payload.parking_restrictions,
        images=payload.images,
        admin_id=admin.id,
        cpo_owner_id=payload.cpo_owner_id,
    )
    logger.info(f"REGISTER_LOCATION_RESPONSE: {result}")
    return success(result)


@router.get("/data/defaults", name="GET_DEFAULT_DATA", dependencies=[Depends(verify_basic_token)])
async def get_default_data(service: LocationService = Depends(get_location_service)):
    logger.info("GET_DEFAULT_DATA_REQUEST")
    result = await service.get_default_data()
    logger.info("GET_DEFAULT_DATA_RESPONSE: SUCCESS")
    return success(result)


@router.post("/upload", name="UPLOAD_LOCATION_IMAGES")
async def upload_location_images(images: List[UploadFile] = File(...),
                                 admin: AdminContext = Depends(get_current_admin)):
    """Stores location images and returns the names they were saved under."""
    settings = get_settings()
    logger.info(f"UPLOAD_LOCATION_IMAGES_REQUEST: {len(images)} file(s)")

    if len(images) > settings.max_upload_files:
        raise BusinessRuleError(f"Maximum of {settings.max_upload_files} images only")

    for image in images:
        extension = os.path.splitext(image.filename or "")[1].lower()
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise BusinessRuleError("Only .png, .svg, .jpg and .jpeg format allowed!")

    os.makedirs(settings.upload_dir, exist_ok=True)
    saved = []
    for image in images:
        extension = os.path.splitext(image.filename)[1].lower()
        filename = f"{uuid.uuid4().hex}{extension}"
        with open(os.path.join(settings.upload_dir, filename), "wb") as destination:
            shutil.copyfileobj(image.file, destination)
        saved.append(filename)

    logger.info(f"UPLOAD_LOCATION_IMAGES_RESPONSE: {saved}")
    return success(saved)


@router.get("/{cpo_owner_id}", name="GET_LOCATIONS_BINDED_TO_CPO")
async def get_binded_locations(cpo_owner_id: int, admin: AdminContext = Depends(admin_access),
                               service: LocationService = Depends(get_location_service)):
    logger.info(f"GET_LOCATIONS_BINDED_TO_CPO_REQUEST: cpo_owner_id={cpo_owner_id}")
    result = await service.get_binded_locations(cpo_owner_id)
    logger.info("GET_LOCATIONS_BINDED_TO_CPO_RESPONSE: SUCCESS")
    return success(result)


@router.patch("/{action}/{location_id}/{cpo_owner_id}", name="BIND_LOCATION_TO_CPO")
async def bind_or_unbind_location(action: str, location_id: int, cpo_owner_id: int,
                                  admin: AdminContext = Depends(admin_access),
                                  service: LocationService = Depends(get_location_service)):
    logger.info(f"BIND_LOCATION_TO_CPO_REQUEST: action={action} location_id={location_id} "
                f"cpo_owner_id={cpo_owner_id}")

    if action == "bind":
        result = await service.bind_location(cpo_owner_id, location_id, admin.id)
    elif action == "unbind":
        result = await service.unbind_location(cpo_owner_id, location_id, admin.id)
    else:
        raise BusinessRuleError("INVALID_ACTION")

    logger.info(f"BIND_LOCATION_TO_CPO_RESPONSE: {result}")
    return success(result)


@router.get("/{name}/{limit}/{offset}", name="SEARCH_LOCATION_BY_NAME")
async def search_location_by_name(name: str, limit: int, offset: int,
                                  admin: AdminContext = Depends(search_access),
                                  service: LocationService = Depends(get_location_service)):
    logger.info(f"SEARCH_LOCATION_BY_NAME_REQUEST: name={name}")
    result = await service.search_location_by_name(name, limit, offset)
    logger.info("SEARCH_LOCATION_BY_NAME_RESPONSE: SUCCESS")
    return success(result)
