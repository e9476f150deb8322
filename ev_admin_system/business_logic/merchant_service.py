# ev_admin_system/business_logic/merchant_service.py

import asyncio
import logging
import re
import secrets
import string
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ev_admin_system.business_logic.audit import AuditTrail
from ev_admin_system.business_logic.errors import BusinessRuleError, ensure_success, store_errors
from ev_admin_system.business_logic.party_id import PartyIDGenerator
from ev_admin_system.core.geocoding import GeocodedAddress, GeocodingGateway
from ev_admin_system.core.mailer import Mailer
from ev_admin_system.core.security import hash_password
from ev_admin_system.data.database import transaction_scope
from ev_admin_system.data.repositories import MerchantRepository

logger = logging.getLogger(__name__)

TEMPORARY_PASSWORD_LENGTH = 10

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
CONTACT_NUMBER_PATTERN = re.compile(r"^(?:\+639|09)\d{9}$")
CONTACT_EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$")

# Format check applied to each value type before asking the store about duplicates.
REGISTER_CHECKS = {
    "username": (USERNAME_PATTERN, "INVALID_USERNAME"),
    "contact_number": (CONTACT_NUMBER_PATTERN, "INVALID_CONTACT_NUMBER"),
    "contact_email": (CONTACT_EMAIL_PATTERN, "INVALID_CONTACT_EMAIL"),
}

USER_STATUS_BY_ACTION = {"activate": "ACTIVE", "deactivate": "INACTIVE"}


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(string.ascii_letters) for _ in range(length))


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class MerchantService:
    """
    Charging Point Operator accounts: registration, updates, RFID cards,
    wallet top-ups and company partner details.
    """

    def __init__(self, db_session: Session, geocoder: GeocodingGateway, mailer: Mailer):
        self.db_session = db_session
        self.geocoder = geocoder
        self.mailer = mailer
        self.merchant_repo = MerchantRepository(db_session)
        self.party_ids = PartyIDGenerator(self.merchant_repo)
        self.audit = AuditTrail(db_session)

    # --- CPO accounts ---

    async def get_cpos(self, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        cpos = self.merchant_repo.get_cpos(limit, offset)
        return {
            "cpos": cpos,
            "total_cpos_returned": len(cpos),
            "total_cpos": self.merchant_repo.count_cpos(),
            "limit": limit,
            "offset": offset,
        }

    async def register_cpo(self, party_id: str, cpo_owner_name: str, contact_name: str, contact_number: str,
                           contact_email: str, username: str, admin_id: int) -> str:
        """
        Creates the CPO account and its login, then mails the credentials.

        The account is only committed once the credentials e-mail went out.

        Raises:
            BusinessRuleError: If the store rejects the account (USERNAME_EXISTS, ...)
            InternalError: If the database or the mail server fails
        """
        password = generate_temporary_password()

        with self.audit.attempt(admin_id, "REGISTER Charging Point Operator") as attempt:
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.merchant_repo.register_cpo(
                    party_id=party_id,
                    cpo_owner_name=cpo_owner_name,
                    contact_name=contact_name,
                    contact_number=contact_number,
                    contact_email=contact_email,
                    username=username,
                    password_hash=hash_password(password),
                ))
                await asyncio.to_thread(self.mailer.send_credentials, contact_email, username, password)

            attempt.cpo_id = row["cpo_owner_id"]
            return row["STATUS"]

    async def check_register_cpo(self, type: str, value: str) -> str:
        if type not in REGISTER_CHECKS:
            raise BusinessRuleError("INVALID_TYPE")

        pattern, invalid_status = REGISTER_CHECKS[type]
        if not pattern.match(value or ""):
            raise BusinessRuleError(invalid_status)

        with store_errors():
            row = ensure_success(self.merchant_repo.check_register_cpo(type, value))
        return row["STATUS"]

    async def search_cpo_by_name(self, cpo_owner_name: str) -> List[Dict[str, Any]]:
        # The frontend sends the bare route placeholder when the search box is empty.
        if cpo_owner_name == ":cpo_owner_name":
            return self.merchant_repo.get_cpos(10, 0)
        return self.merchant_repo.search_cpo_by_name(cpo_owner_name)

    async def update_cpo_by_id(self, cpo_owner_id: int, data: Dict[str, Any], admin_id: int) -> str:
        """
        Updates the CPO columns present in data.

        Raises:
            BusinessRuleError: On unknown keys, an unknown id, or values used by
                another account (INVALID_REQUEST with the offending fields)
        """
        valid_keys = list(MerchantRepository.UPDATABLE_COLUMNS)

        with self.audit.attempt(admin_id, f"UPDATE Charging Point Operator with id of {cpo_owner_id}",
                                "ATTEMPT to UPDATE Charging Point Operator", cpo_id=cpo_owner_id) as attempt:
            invalid_keys = [key for key in data if key not in valid_keys]
            if invalid_keys:
                raise BusinessRuleError(f"Valid inputs are: {', '.join(valid_keys)}")

            if not data:
                attempt.action = "ATTEMPT to UPDATE Charging Point Operator - No Changes Applied"
                return "NO_CHANGES_APPLIED"

            with store_errors(), transaction_scope(self.db_session):
                cpo = self.merchant_repo.get_cpo_by_id(cpo_owner_id)
                if cpo is None:
                    raise BusinessRuleError("CPO_ID_DOES_NOT_EXISTS")

                errors = {
                    key: f"{key.upper()}_EXISTS"
                    for key, value in data.items()
                    if self.merchant_repo.column_value_exists(key, value, cpo)
                }
                if errors:
                    raise BusinessRuleError("INVALID_REQUEST", {"errors": errors})

                self.merchant_repo.update_cpo(cpo, data)

            logger.info(f"CPO {cpo_owner_id} updated: {', '.join(data)}")
            return "SUCCESS"

    async def change_cpo_account_status(self, action: str, user_id: int, admin_id: int) -> str:
        verb = action.upper() if action in USER_STATUS_BY_ACTION else "CHANGE STATUS of"
        account = f"{verb} Charging Point Operator account with user id of {user_id}"

        with self.audit.attempt(admin_id, account) as attempt:
            if action not in USER_STATUS_BY_ACTION:
                raise BusinessRuleError("INVALID_ACTION")

            with store_errors(), transaction_scope(self.db_session):
                changed = self.merchant_repo.set_cpo_user_status(user_id, USER_STATUS_BY_ACTION[action])

            if not changed:
                attempt.action = f"ATTEMPT to {account} - No Changes Applied"
                return "NO_CHANGES_APPLIED"
            return "SUCCESS"

    # --- RFID cards ---

    async def add_rfid(self, cpo_owner_id: int, rfid_card_tag: str, admin_id: int) -> str:
        with self.audit.attempt(admin_id, f"ADD RFID to Charging Point Operator with id of {cpo_owner_id}",
                                "ATTEMPT to ADD RFID to Charging Point Operator", cpo_id=cpo_owner_id):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.merchant_repo.add_rfid(cpo_owner_id, rfid_card_tag))
            return row["STATUS"]

    async def add_rfids(self, cpo_owner_id: int, rfid_card_tags: List[str], admin_id: Optional[int] = None) -> str:
        """
        Issues a batch of physical cards to a CPO. Nothing is stored if any tag is already taken.
        """
        with self.audit.attempt(admin_id, f"ADD RFIDs to Charging Point Operator with id of {cpo_owner_id}",
                                "ATTEMPT to ADD RFIDs to Charging Point Operator", cpo_id=cpo_owner_id):
            with store_errors(), transaction_scope(self.db_session):
                if self.merchant_repo.get_cpo_by_id(cpo_owner_id) is None:
                    raise BusinessRuleError("CPO_OWNER_ID_DOES_NOT_EXISTS")

                seen = set()
                for tag in rfid_card_tags:
                    if tag in seen:
                        raise BusinessRuleError(f"RFID_EXISTS: {tag}")
                    seen.add(tag)

                existing = self.merchant_repo.get_existing_rfid_tags(rfid_card_tags)
                if existing:
                    raise BusinessRuleError(f"RFID_EXISTS: {existing[0]}")

                result = self.merchant_repo.add_rfids(cpo_owner_id, rfid_card_tags)

            logger.info(f"{result.affected_rows} RFID cards issued to CPO {cpo_owner_id}")
            return "SUCCESS"

    # --- Wallet ---

    async def topup(self, cpo_owner_id: int, amount: Any, admin_id: int) -> Dict[str, Any]:
        with self.audit.attempt(admin_id, f"TOPUP to CPO with id of {cpo_owner_id}",
                                f"ATTEMPT to TOPUP to CPO with id of {cpo_owner_id}", cpo_id=cpo_owner_id):
            if not _is_positive_number(amount):
                raise BusinessRuleError("INVALID_AMOUNT")

            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.merchant_repo.topup(cpo_owner_id, amount))
            return {"status": row["STATUS"], "new_balance": row["current_balance"]}

    async def get_topup_by_id(self, cpo_owner_id: int) -> List[Dict[str, Any]]:
        return self.merchant_repo.get_voidable_topups(cpo_owner_id)

    async def void_topup(self, reference_id: int, admin_id: int) -> Dict[str, Any]:
        with self.audit.attempt(admin_id, f"VOID Topup with reference ID of {reference_id}",
                                "ATTEMPT to VOID Topup"):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.merchant_repo.void_topup(reference_id))
            return {
                "status": row["STATUS"],
                "current_balance": row["current_balance"],
                "reference_number": row["reference_number"],
            }

    # --- Company partners ---

    async def get_company_partner_details(self) -> List[Dict[str, Any]]:
        return self.merchant_repo.get_company_partner_details()

    async def _geocode_country(self, address: str) -> Optional[str]:
        result = await self.geocoder.geocode(address)
        if not result or not result.get("address_components"):
            raise BusinessRuleError("LOCATION_NOT_FOUND")
        return GeocodedAddress.from_result(result).country_code

    async def register_company_partner_details(self, company_name: str, address: str,
                                               admin_id: int) -> Union[Dict[str, Any], Dict[str, int]]:
        """
        Stores a company partner with a freshly generated party id.

        Returns:
            {"party_id": ..., "message": "SUCCESS"}
        """
        with self.audit.attempt(admin_id, "CREATED Company Partner Details",
                                "ATTEMPT to create partner details") as attempt:
            country_code = await self._geocode_country(address)

            with store_errors(), transaction_scope(self.db_session):
                party_id = self.party_ids.generate(company_name)
                result = self.merchant_repo.register_company_partner_details(company_name, party_id, country_code)

            if result.insert_id:
                logger.info(f"Company partner '{company_name}' registered with party id {party_id}")
                return {"party_id": party_id, "message": "SUCCESS"}

            attempt.fail()
            return {"insert_id": result.insert_id, "affected_rows": result.affected_rows}

    async def update_company_partner_details(self, address: str, partner_id: int, admin_id: int) -> str:
        with self.audit.attempt(admin_id, "UPDATE Company Partner Details",
                                "ATTEMPT to update company partner details"):
            country_code = await self._geocode_country(address)

            with store_errors(), transaction_scope(self.db_session):
                updated = self.merchant_repo.update_company_partner_details(partner_id, country_code)

            if not updated:
                raise BusinessRuleError("COMPANY_PARTNER_ID_DOES_NOT_EXISTS")
            return "SUCCESS"
