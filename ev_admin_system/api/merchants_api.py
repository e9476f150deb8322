# ev_admin_system/api/merchants_api.py

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ev_admin_system.api.dependencies import admin_access, get_merchant_service
from ev_admin_system.api.schemas import (CPOCreate, CompanyPartnerCreate, CompanyPartnerUpdate, RFIDBatchCreate,
                                         TopupCreate, success)
from ev_admin_system.business_logic.merchant_service import MerchantService
from ev_admin_system.core.security import AdminContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/merchants", tags=["Merchants"])
partners_router = APIRouter(prefix="/company_partner_details", tags=["Company Partners"])


@router.get("", name="GET_CPOS")
async def get_cpos(limit: int = 10, offset: int = 0, admin: AdminContext = Depends(admin_access),
                   service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"GET_CPOS_REQUEST: limit={limit} offset={offset}")
    result = await service.get_cpos(limit, offset)
    logger.info("GET_CPOS_RESPONSE: SUCCESS")
    return success(result)


@router.post("", name="REGISTER_CPO")
async def register_cpo(payload: CPOCreate, admin: AdminContext = Depends(admin_access),
                       service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"REGISTER_CPO_REQUEST: cpo_owner_name={payload.cpo_owner_name} username={payload.username}")
    result = await service.register_cpo(admin_id=admin.id, **payload.model_dump())
    logger.info(f"REGISTER_CPO_RESPONSE: {result}")
    return success(result)


@router.get("/check/{type}/{value}", name="CHECK_REGISTER_CPO")
async def check_register_cpo(type: str, value: str, admin: AdminContext = Depends(admin_access),
                             service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"CHECK_REGISTER_CPO_REQUEST: type={type} value={value}")
    result = await service.check_register_cpo(type, value)
    logger.info(f"CHECK_REGISTER_CPO_RESPONSE: {result}")
    return success(result)


@router.get("/topups/{cpo_owner_id}", name="GET_TOPUP_BY_ID")
async def get_topup_by_id(cpo_owner_id: int, admin: AdminContext = Depends(admin_access),
                          service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"GET_TOPUP_BY_ID_REQUEST: cpo_owner_id={cpo_owner_id}")
    result = await service.get_topup_by_id(cpo_owner_id)
    logger.info("GET_TOPUP_BY_ID_RESPONSE: SUCCESS")
    return success(result)


@router.get("/{cpo_owner_name}", name="SEARCH_CPO_BY_NAME")
async def search_cpo_by_name(cpo_owner_name: str, admin: AdminContext = Depends(admin_access),
                             service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"SEARCH_CPO_BY_NAME_REQUEST: cpo_owner_name={cpo_owner_name}")
    result = await service.search_cpo_by_name(cpo_owner_name)
    logger.info("SEARCH_CPO_BY_NAME_RESPONSE: SUCCESS")
    return success(result)


@router.patch("/{cpo_owner_id}", name="UPDATE_CPO_BY_ID")
async def update_cpo_by_id(cpo_owner_id: int, data: Dict[str, Any] = Body(...),
                           admin: AdminContext = Depends(admin_access),
                           service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"UPDATE_CPO_BY_ID_REQUEST: cpo_owner_id={cpo_owner_id} fields={list(data)}")
    result = await service.update_cpo_by_id(cpo_owner_id, data, admin.id)
    logger.info(f"UPDATE_CPO_BY_ID_RESPONSE: {result}")
    return success(result)


@router.post("/rfid/{cpo_owner_id}/{rfid_card_tag}", name="ADD_RFID")
async def add_rfid(cpo_owner_id: int, rfid_card_tag: str, admin: AdminContext = Depends(admin_access),
                   service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"ADD_RFID_REQUEST: cpo_owner_id={cpo_owner_id} rfid_card_tag={rfid_card_tag}")
    result = await service.add_rfid(cpo_owner_id, rfid_card_tag, admin.id)
    logger.info(f"ADD_RFID_RESPONSE: {result}")
    return success(result)


@router.post("/rfids/{cpo_owner_id}", name="ADD_RFIDS")
async def add_rfids(cpo_owner_id: int, payload: RFIDBatchCreate, admin: AdminContext = Depends(admin_access),
                    service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"ADD_RFIDS_REQUEST: cpo_owner_id={cpo_owner_id} count={len(payload.rfid_card_tags)}")
    result = await service.add_rfids(cpo_owner_id, payload.rfid_card_tags, admin.id)
    logger.info(f"ADD_RFIDS_RESPONSE: {result}")
    return success(result)


@router.post("/topup/{cpo_owner_id}", name="TOPUP")
async def topup(cpo_owner_id: int, payload: TopupCreate, admin: AdminContext = Depends(admin_access),
                service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"TOPUP_REQUEST: cpo_owner_id={cpo_owner_id} amount={payload.amount}")
    result = await service.topup(cpo_owner_id, payload.amount, admin.id)
    logger.info(f"TOPUP_RESPONSE: {result}")
    return success(result)


@router.post("/topups/void/{reference_id}", name="VOID_TOPUP")
async def void_topup(reference_id: int, admin: AdminContext = Depends(admin_access),
                     service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"VOID_TOPUP_REQUEST: reference_id={reference_id}")
    result = await service.void_topup(reference_id, admin.id)
    logger.info(f"VOID_TOPUP_RESPONSE: {result}")
    return success(result)


@router.patch("/{action}/{user_id}", name="CHANGE_CPO_ACCOUNT_STATUS")
async def change_cpo_account_status(action: str, user_id: int, admin: AdminContext = Depends(admin_access),
                                    service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"CHANGE_CPO_ACCOUNT_STATUS_REQUEST: action={action} user_id={user_id}")
    result = await service.change_cpo_account_status(action, user_id, admin.id)
    logger.info(f"CHANGE_CPO_ACCOUNT_STATUS_RESPONSE: {result}")
    return success(result)


# --- Company partner details ---

@partners_router.get("", name="GET_COMPANY_PARTNER_DETAILS")
async def get_company_partner_details(admin: AdminContext = Depends(admin_access),
                                      service: MerchantService = Depends(get_merchant_service)):
    logger.info("GET_COMPANY_PARTNER_DETAILS_REQUEST")
    result = await service.get_company_partner_details()
    logger.info("GET_COMPANY_PARTNER_DETAILS_RESPONSE: SUCCESS")
    return success(result)


@partners_router.post("", name="REGISTER_COMPANY_PARTNER_DETAILS")
async def register_company_partner_details(payload: CompanyPartnerCreate,
                                           admin: AdminContext = Depends(admin_access),
                                           service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"REGISTER_COMPANY_PARTNER_DETAILS_REQUEST: company_name={payload.company_name}")
    result = await service.register_company_partner_details(payload.company_name, payload.address, admin.id)
    logger.info(f"REGISTER_COMPANY_PARTNER_DETAILS_RESPONSE: {result}")
    return success(result)


@partners_router.patch("/{partner_id}", name="UPDATE_COMPANY_PARTNER_DETAILS")
async def update_company_partner_details(partner_id: int, payload: CompanyPartnerUpdate,
                                         admin: AdminContext = Depends(admin_access),
                                         service: MerchantService = Depends(get_merchant_service)):
    logger.info(f"UPDATE_COMPANY_PARTNER_DETAILS_REQUEST: id={partner_id}")
    result = await service.update_company_partner_details(payload.address, partner_id, admin.id)
    logger.info(f"UPDATE_COMPANY_PARTNER_DETAILS_RESPONSE: {result}")
    return success(result)
