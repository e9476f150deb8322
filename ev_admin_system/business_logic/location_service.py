# ev_admin_system/business_logic/location_service.py

import json
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ev_admin_system.business_logic.audit import AuditTrail
from ev_admin_system.business_logic.errors import (BusinessRuleError, ensure_page, ensure_success,
                                                   store_errors)
from ev_admin_system.core.geocoding import GeocodedAddress, GeocodingGateway
from ev_admin_system.data.database import transaction_scope
from ev_admin_system.data.repositories import LocationRepository

logger = logging.getLogger(__name__)


class LocationService:
    """
    Registration, binding and lookup of charging locations.
    """

    def __init__(self, db_session: Session, geocoder: GeocodingGateway):
        self.db_session = db_session
        self.geocoder = geocoder
        self.location_repo = LocationRepository(db_session)
        self.audit = AuditTrail(db_session)

    async def get_locations(self, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        ensure_page(limit, offset,
                    "Invalid limit. Limit must be in type of number",
                    "Invalid offset. Offset must be in type of number")

        locations = self.location_repo.get_locations(limit, offset)
        return {
            "locations": locations,
            "total_returned_locations": len(locations),
            "total_locations": self.location_repo.count_locations(),
            "limit": limit,
            "offset": offset,
        }

    async def get_unbinded_locations(self) -> List[Dict[str, Any]]:
        return self.location_repo.get_unbinded_locations()

    async def register_location(self, name: str, address: str, facilities: List[int], parking_types: List[int],
                                parking_restrictions: List[int], images: List[str], admin_id: int,
                                cpo_owner_id: Optional[int] = None) -> Union[str, Dict[str, Any]]:
        """
        Geocodes the address and stores the location with its facilities,
        parking types and parking restrictions.

        The inserts run in one transaction. When no parking restriction row
        was written the location is kept, the attempt is audited as failed and
        the insert summary is returned instead of "SUCCESS".

        Raises:
            BusinessRuleError: LOCATION_NOT_FOUND when the geocoder has no match
            InternalError: If the geocoder or the database fails
        """
        with self.audit.attempt(admin_id, "ADD new location") as attempt:
            result = await self.geocoder.geocode(address)
            if not result or not result.get("address_components"):
                raise BusinessRuleError("LOCATION_NOT_FOUND")

            geocoded = GeocodedAddress.from_result(result)

            with store_errors(), transaction_scope(self.db_session):
                location = self.location_repo.register_location(
                    cpo_owner_id=cpo_owner_id,
                    name=name,
                    address=geocoded.formatted_address,
                    lat=geocoded.lat,
                    lng=geocoded.lng,
                    city=geocoded.city,
                    region=geocoded.region,
                    postal_code=geocoded.postal_code,
                    images=json.dumps(images or []),
                )
                self.location_repo.add_facilities(location.insert_id, facilities)
                self.location_repo.add_parking_types(location.insert_id, parking_types)
                restrictions = self.location_repo.add_parking_restrictions(location.insert_id, parking_restrictions)

            if restrictions.affected_rows >= 1:
                logger.info(f"Location {location.insert_id} '{name}' registered in {geocoded.city}.")
                return "SUCCESS"

            logger.warning(f"Location {location.insert_id} registered without parking restrictions.")
            attempt.fail()
            return {"insert_id": location.insert_id, "affected_rows": location.affected_rows}

    async def get_binded_locations(self, cpo_owner_id: int) -> List[Dict[str, Any]]:
        return self.location_repo.get_binded_locations(cpo_owner_id)

    async def bind_location(self, cpo_owner_id: int, location_id: int, admin_id: int) -> str:
        with self.audit.attempt(admin_id, f"BIND location to CPO with ID of {cpo_owner_id}", cpo_id=cpo_owner_id):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.location_repo.bind_location(cpo_owner_id, location_id))
            return row["STATUS"]

    async def unbind_location(self, cpo_owner_id: int, location_id: int, admin_id: int) -> str:
        with self.audit.attempt(admin_id, f"UNBIND location from CPO with ID of {cpo_owner_id}",
                                cpo_id=cpo_owner_id):
            with store_errors(), transaction_scope(self.db_session):
                row = ensure_success(self.location_repo.unbind_location(cpo_owner_id, location_id))
            return row["STATUS"]

    async def get_default_data(self) -> Dict[str, Any]:
        return self.location_repo.get_default_data()

    async def search_location_by_name(self, name: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        return self.location_repo.search_by_name(name, limit, offset)
