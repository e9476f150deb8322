# ev_admin_system/business_logic/user_management_service.py

import logging
from typing import Dict

from sqlalchemy.orm import Session

from ev_admin_system.business_logic.audit import AuditTrail
from ev_admin_system.business_logic.errors import BusinessRuleError, ensure_success, store_errors
from ev_admin_system.core.security import hash_password
from ev_admin_system.data.database import transaction_scope
from ev_admin_system.data.repositories import UserManagementRepository

logger = logging.getLogger(__name__)

SUB_USER_ROLES = ("ADMIN_ACCOUNTING", "ADMIN_MARKETING", "ADMIN_NOC")

# Bit position of each privilege inside the stored bitmap, lowest bit first.
PRIVILEGE_FLAGS = (
    "reports",
    "cpos",
    "locations",
    "evses",
    "customer_service",
    "user_management",
    "account_settings",
    "rfid_user_accounts",
    "topups",
)


def encode_privileges(privileges: Dict[str, int]) -> int:
    bitmap = 0
    for bit, flag in enumerate(PRIVILEGE_FLAGS):
        if privileges.get(flag):
            bitmap |= 1 << bit
    return bitmap


def decode_privileges(bitmap: int) -> Dict[str, int]:
    return {flag: (bitmap >> bit) & 1 for bit, flag in enumerate(PRIVILEGE_FLAGS)}


class UserManagementService:
    def __init__(self, db_session: Session):
        self.db_session = db_session
        self.user_management_repo = UserManagementRepository(db_session)
        self.audit = AuditTrail(db_session)

    async def add_sub_user(self, username: str, password: str, role: str, privileges: Dict[str, int],
                           admin_id: int) -> str:
        """
        Creates a sub-administrator account limited to the given privileges.

        Raises:
            BusinessRuleError: INVALID_ROLE, INVALID_PRIVILEGES or the store's status (USERNAME_EXISTS)
        """
        with self.audit.attempt(admin_id, f"ADD sub user {username}"):
            if role not in SUB_USER_ROLES:
                raise BusinessRuleError("INVALID_ROLE")
            unknown = [flag for flag in privileges if flag not in PRIVILEGE_FLAGS]
            if unknown or any(value not in (0, 1) for value in privileges.values()):
                raise BusinessRuleError("INVALID_PRIVILEGES")

            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.user_management_repo.add_sub_user(
                    username, hash_password(password), role, encode_privileges(privileges)))

            logger.info(f"Sub user '{username}' added with role {role}")
            return row["STATUS"]
