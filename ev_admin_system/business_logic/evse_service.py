# ev_admin_system/business_logic/evse_service.py

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ev_admin_system.business_logic.audit import AuditTrail
from ev_admin_system.business_logic.errors import ensure_page, ensure_success, store_errors
from ev_admin_system.data.database import transaction_scope
from ev_admin_system.data.repositories import EVSERepository, ConnectorRepository

logger = logging.getLogger(__name__)


class EVSEService:
    """
    Registration, binding and lookup of charging equipment.
    """

    def __init__(self, db_session: Session):
        self.db_session = db_session
        self.evse_repo = EVSERepository(db_session)
        self.connector_repo = ConnectorRepository(db_session)
        self.audit = AuditTrail(db_session)

    async def get_evses(self, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        ensure_page(limit, offset,
                    "Invalid limit. Limit must be on type of number",
                    "Invalid offset. Offset must be in type of number")

        evses = self.evse_repo.get_evses(limit, offset)
        return {
            "evses": evses,
            "total_evses_returned": len(evses),
            "total_evses": self.evse_repo.count_evses(),
            "limit": limit,
            "offset": offset,
        }

    async def register_evse(self, attributes: Dict[str, Any], connectors: List[Dict[str, Any]],
                            kwh: Optional[int], payment_types: List[int], capabilities: List[int],
                            admin_id: int, location_id: Optional[int] = None) -> str:
        """
        Registers an EVSE together with its connectors, timeslots, payment types and capabilities.

        All rows are written in one transaction: either everything is stored or nothing is.

        Args:
            attributes: Descriptive EVSE columns (model, vendor, serial_number, ...)
            connectors: Connector definitions, in ordinal order
            kwh: Power class deciding which charging timeslots are created
            payment_types: Payment type ids accepted by the EVSE
            capabilities: Capability ids of the EVSE
            admin_id: Administrator performing the registration
            location_id: Location to bind the EVSE to right away, if any

        Returns:
            "SUCCESS"

        Raises:
            BusinessRuleError: If the store rejects the EVSE (status code as message)
            InternalError: If the database fails mid-way
        """
        uid = str(uuid.uuid4())

        with self.audit.attempt(admin_id, "REGISTER new EVSE"):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.evse_repo.register_evse(uid, attributes, kwh, location_id))
                self.connector_repo.add_connectors(uid, connectors)
                timeslots = self.connector_repo.add_timeslots(uid, kwh, len(connectors))
                self.evse_repo.add_payment_types(uid, payment_types)
                self.evse_repo.add_capabilities(uid, capabilities)

            logger.info(f"EVSE {uid} registered with {len(connectors)} connectors "
                        f"and {timeslots.affected_rows} timeslots.")
            return row["STATUS"]

    async def bind_evse(self, location_id: int, evse_uid: str, admin_id: int) -> str:
        action = f"BIND EVSE with ID of {evse_uid} to Location with ID of {location_id}"
        with self.audit.attempt(admin_id, action):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.evse_repo.bind_evse(location_id, evse_uid))
            return row["STATUS"]

    async def unbind_evse(self, location_id: int, evse_uid: str, admin_id: int) -> str:
        action = f"UNBIND EVSE with ID of {evse_uid} from Location with ID of {location_id}"
        with self.audit.attempt(admin_id, action):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.evse_repo.unbind_evse(location_id, evse_uid))
            return row["STATUS"]

    async def get_default_data(self) -> Dict[str, Any]:
        return self.evse_repo.get_default_data()

    async def search_evse_by_serial_number(self, serial_number: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        return self.evse_repo.search_by_serial_number(serial_number, limit, offset)
