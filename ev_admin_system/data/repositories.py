# ev_admin_system/data/repositories.py

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, exists
from sqlalchemy.orm import Session, aliased

from ev_admin_system.data import procedures
from ev_admin_system.data.models import (
    EVSE, EVSEConnector, EVSETimeslot, EVSEPaymentType, EVSECapability, PaymentType, Capability,
    ConnectorType, Location, LocationFacility, LocationParkingType, LocationParkingRestriction,
    Facility, ParkingType, ParkingRestriction, CPOOwner, User, RFIDCard, TopupLog,
    CompanyPartnerDetails, AdminAuditTrail, as_dict,
)
from ev_admin_system.data.outcomes import Outcome, InsertResult, to_outcome

logger = logging.getLogger(__name__)

# Charging setting timeslots offered for each EVSE power class (kWh).
TIMESLOT_SETTINGS = {
    7: range(1, 4),
    22: range(4, 12),
    60: range(12, 20),
    80: range(20, 28),
}

# Parking types that are out in the open; every other type is tagged INDOOR.
OUTDOOR_PARKING_TYPES = {1, 3, 4, 5}


def _contains(value: str) -> str:
    """ILIKE pattern matching value literally anywhere in the column."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _insert_all(db: Session, rows: List[Any]) -> InsertResult:
    if not rows:
        return InsertResult(affected_rows=0)
    db.add_all(rows)
    db.flush()
    return InsertResult(affected_rows=len(rows), insert_id=rows[-1].id)


class EVSERepository:
    def __init__(self, db: Session):
        self.db = db

    def get_evses(self, limit: int, offset: int) -> List[Dict[str, Any]]:
        evses = (
            self.db.query(EVSE)
            .order_by(EVSE.cpo_location_id.is_(None), EVSE.cpo_location_id, EVSE.date_created)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._with_connectors(evse) for evse in evses]

    def count_evses(self) -> int:
        return self.db.query(func.count(EVSE.uid)).scalar()

    def register_evse(self, uid: str, attributes: Dict[str, Any], kwh: Optional[int],
                      location_id: Optional[int] = None) -> Outcome:
        return to_outcome(procedures.register_evse(self.db, uid, attributes, kwh, location_id))

    def add_payment_types(self, uid: str, payment_type_ids: Iterable[int]) -> InsertResult:
        rows = [EVSEPaymentType(evse_uid=uid, payment_type_id=payment_type_id)
                for payment_type_id in payment_type_ids]
        return _insert_all(self.db, rows)

    def add_capabilities(self, uid: str, capability_ids: Iterable[int]) -> InsertResult:
        rows = [EVSECapability(capability_id=capability_id, evse_uid=uid) for capability_id in capability_ids]
        return _insert_all(self.db, rows)

    def bind_evse(self, location_id: int, evse_uid: str) -> Outcome:
        return to_outcome(procedures.bind_evse(self.db, location_id, evse_uid))

    def unbind_evse(self, location_id: int, evse_uid: str) -> Outcome:
        return to_outcome(procedures.unbind_evse(self.db, location_id, evse_uid))

    def get_default_data(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "payment_types": [as_dict(row) for row in self.db.query(PaymentType).order_by(PaymentType.id)],
            "capabilities": [as_dict(row) for row in self.db.query(Capability).order_by(Capability.id)],
            "connector_types": [as_dict(row) for row in self.db.query(ConnectorType).order_by(ConnectorType.id)],
        }

    def search_by_serial_number(self, serial_number: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        evses = (
            self.db.query(EVSE)
            .filter(EVSE.serial_number.ilike(_contains(serial_number), escape="\\"))
            .order_by(EVSE.serial_number)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._with_connectors(evse) for evse in evses]

    @staticmethod
    def _with_connectors(evse: EVSE) -> Dict[str, Any]:
        data = as_dict(evse)
        data["connectors"] = [as_dict(connector) for connector in evse.connectors]
        return data


class ConnectorRepository:
    def __init__(self, db: Session):
        self.db = db

    def add_connectors(self, uid: str, connectors: List[Dict[str, Any]]) -> InsertResult:
        rows = [
            EVSEConnector(
                evse_uid=uid,
                connector_id=index + 1,
                standard=connector["standard"],
                format=connector["format"],
                power_type=connector["power_type"],
                max_voltage=connector["max_voltage"],
                max_amperage=connector["max_amperage"],
                max_electric_power=connector["max_electric_power"],
                connector_type=connector["standard"],
                rate_setting=f"{connector['rate_setting']} KW-H",
                status="AVAILABLE",
            )
            for index, connector in enumerate(connectors)
        ]
        return _insert_all(self.db, rows)

    def add_timeslots(self, uid: str, kwh: Optional[int], connector_count: int) -> InsertResult:
        settings = TIMESLOT_SETTINGS.get(kwh)
        if settings is None:
            logger.warning(f"No timeslot settings for {kwh} kWh, EVSE {uid} gets no timeslots.")
            return InsertResult(affected_rows=0)

        rows = [
            EVSETimeslot(evse_uid=uid, connector_id=connector_id, setting_timeslot_id=setting_id, status="ONLINE")
            for connector_id in range(1, connector_count + 1)
            for setting_id in settings
        ]
        return _insert_all(self.db, rows)


class LocationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_locations(self, limit: int, offset: int) -> List[Dict[str, Any]]:
        locations = (
            self.db.query(Location)
            .order_by(Location.cpo_owner_id.is_(None), Location.id)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [as_dict(location) for location in locations]

    def count_locations(self) -> int:
        return self.db.query(func.count(Location.id)).scalar()

    def get_unbinded_locations(self) -> List[Dict[str, Any]]:
        locations = self.db.query(Location).filter(Location.cpo_owner_id.is_(None)).order_by(Location.id).all()
        return [as_dict(location) for location in locations]

    def get_binded_locations(self, cpo_owner_id: int) -> List[Dict[str, Any]]:
        locations = (
            self.db.query(Location)
            .filter((Location.cpo_owner_id == cpo_owner_id) | Location.cpo_owner_id.is_(None))
            .order_by(Location.cpo_owner_id.is_(None), Location.id)
            .all()
        )
        return [as_dict(location) for location in locations]

    def register_location(self, cpo_owner_id: Optional[int], name: str, address: str, lat: Optional[float],
                          lng: Optional[float], city: Optional[str], region: Optional[str],
                          postal_code: Optional[str], images: str) -> InsertResult:
        location = Location(
            cpo_owner_id=cpo_owner_id,
            name=name,
            address=address,
            address_lat=lat,
            address_lng=lng,
            city=city,
            region=region,
            postal_code=postal_code,
            images=images,
        )
        return _insert_all(self.db, [location])

    def add_facilities(self, location_id: int, facility_ids: Iterable[int]) -> InsertResult:
        rows = [LocationFacility(facility_id=facility_id, cpo_location_id=location_id) for facility_id in facility_ids]
        return _insert_all(self.db, rows)

    def add_parking_types(self, location_id: int, parking_type_ids: Iterable[int]) -> InsertResult:
        rows = [
            LocationParkingType(
                parking_type_id=parking_type_id,
                cpo_location_id=location_id,
                tag="OUTDOOR" if parking_type_id in OUTDOOR_PARKING_TYPES else "INDOOR",
            )
            for parking_type_id in parking_type_ids
        ]
        return _insert_all(self.db, rows)

    def add_parking_restrictions(self, location_id: int, restriction_ids: Iterable[int]) -> InsertResult:
        rows = [
            LocationParkingRestriction(parking_restriction_code_id=restriction_id, cpo_location_id=location_id)
            for restriction_id in restriction_ids
        ]
        return _insert_all(self.db, rows)

    def bind_location(self, cpo_owner_id: int, location_id: int) -> Outcome:
        return to_outcome(procedures.bind_location(self.db, cpo_owner_id, location_id))

    def unbind_location(self, cpo_owner_id: int, location_id: int) -> Outcome:
        return to_outcome(procedures.unbind_location(self.db, cpo_owner_id, location_id))

    def get_default_data(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "facilities": [as_dict(row) for row in self.db.query(Facility).order_by(Facility.id)],
            "parking_types": [as_dict(row) for row in self.db.query(ParkingType).order_by(ParkingType.id)],
            "parking_restrictions": [as_dict(row) for row in
                                     self.db.query(ParkingRestriction).order_by(ParkingRestriction.id)],
        }

    def search_by_name(self, name: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        locations = (
            self.db.query(Location)
            .filter(Location.name.ilike(_contains(name), escape="\\"))
            .order_by(Location.name)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [as_dict(location) for location in locations]


class MerchantRepository:
    # Columns an update may touch, and the model each one lives on.
    UPDATABLE_COLUMNS = {
        "cpo_owner_name": CPOOwner.cpo_owner_name,
        "contact_name": CPOOwner.contact_name,
        "contact_number": CPOOwner.contact_number,
        "contact_email": CPOOwner.contact_email,
        "username": User.username,
    }

    def __init__(self, db: Session):
        self.db = db

    # --- CPO accounts ---

    def get_cpos(self, limit: int, offset: int) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(CPOOwner, User.username, User.user_status)
            .join(User, User.id == CPOOwner.user_id)
            .order_by(CPOOwner.id)
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._cpo_row(cpo, username, user_status) for cpo, username, user_status in rows]

    def count_cpos(self) -> int:
        return self.db.query(func.count(CPOOwner.id)).scalar()

    def search_cpo_by_name(self, cpo_owner_name: str) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(CPOOwner, User.username, User.user_status)
            .join(User, User.id == CPOOwner.user_id)
            .filter(CPOOwner.cpo_owner_name.ilike(_contains(cpo_owner_name), escape="\\"))
            .order_by(CPOOwner.cpo_owner_name)
            .all()
        )
        return [self._cpo_row(cpo, username, user_status) for cpo, username, user_status in rows]

    def get_cpo_by_id(self, cpo_owner_id: int) -> CPOOwner | None:
        return self.db.get(CPOOwner, cpo_owner_id)

    def register_cpo(self, party_id: str, cpo_owner_name: str, contact_name: str, contact_number: str,
                     contact_email: str, username: str, password_hash: str) -> Outcome:
        return to_outcome(procedures.register_cpo(
            self.db, party_id, cpo_owner_name, contact_name, contact_number, contact_email, username,
            password_hash,
        ))

    def check_register_cpo(self, type: str, value: str) -> Outcome:
        return to_outcome(procedures.check_register_cpo(self.db, type, value))

    def column_value_exists(self, column_name: str, value: Any, cpo: CPOOwner) -> bool:
        """True when another account already uses value in column_name."""
        column = self.UPDATABLE_COLUMNS[column_name]
        if column_name == "username":
            query = self.db.query(User.id).filter(column == value, User.id != cpo.user_id)
        else:
            query = self.db.query(CPOOwner.id).filter(column == value, CPOOwner.id != cpo.id)
        return query.first() is not None

    def update_cpo(self, cpo: CPOOwner, data: Dict[str, Any]):
        for column_name, value in data.items():
            if column_name == "username":
                cpo.user.username = value
            else:
                setattr(cpo, column_name, value)
        self.db.flush()

    def set_cpo_user_status(self, user_id: int, user_status: str) -> int:
        """Returns the number of CPO accounts whose status actually changed."""
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.role == "CPO_OWNER", User.user_status != user_status)
            .update({User.user_status: user_status, User.date_modified: datetime.utcnow()},
                    synchronize_session="fetch")
        )

    # --- RFID cards ---

    def add_rfid(self, cpo_owner_id: int, rfid_card_tag: str) -> Outcome:
        return to_outcome(procedures.add_rfid(self.db, cpo_owner_id, rfid_card_tag))

    def get_existing_rfid_tags(self, rfid_card_tags: Iterable[str]) -> List[str]:
        rows = self.db.query(RFIDCard.rfid_card_tag).filter(RFIDCard.rfid_card_tag.in_(list(rfid_card_tags))).all()
        return [row.rfid_card_tag for row in rows]

    def add_rfids(self, cpo_owner_id: int, rfid_card_tags: Iterable[str]) -> InsertResult:
        rows = [
            RFIDCard(
                rfid_card_tag=tag,
                cpo_owner_id=cpo_owner_id,
                balance=0.0,
                is_charging=False,
                rfid_type="PHYSICAL",
                rfid_status="UNASSIGNED",
            )
            for tag in rfid_card_tags
        ]
        return _insert_all(self.db, rows)

    # --- Wallet ---

    def topup(self, cpo_owner_id: int, amount: float) -> Outcome:
        return to_outcome(procedures.topup(self.db, cpo_owner_id, amount))

    def void_topup(self, reference_id: int) -> Outcome:
        return to_outcome(procedures.void_topup(self.db, reference_id))

    def get_voidable_topups(self, cpo_owner_id: int) -> List[Dict[str, Any]]:
        void_log = aliased(TopupLog)
        cutoff = datetime.utcnow() - procedures.VOID_WINDOW
        logs = (
            self.db.query(TopupLog)
            .join(CPOOwner, CPOOwner.user_id == TopupLog.user_id)
            .filter(
                CPOOwner.id == cpo_owner_id,
                TopupLog.type == "TOPUP",
                TopupLog.date_created >= cutoff,
                ~exists().where(void_log.void_id == TopupLog.id),
            )
            .order_by(TopupLog.date_created.desc())
            .all()
        )
        result = []
        for log in logs:
            row = as_dict(log)
            row["voidable_until"] = log.date_created + procedures.VOID_WINDOW
            result.append(row)
        return result

    # --- Company partners ---

    def get_company_partner_details(self) -> List[Dict[str, Any]]:
        rows = self.db.query(CompanyPartnerDetails).order_by(CompanyPartnerDetails.id).all()
        return [as_dict(row) for row in rows]

    def get_party_ids(self) -> List[str]:
        party_ids = {row.party_id for row in self.db.query(CompanyPartnerDetails.party_id)}
        party_ids.update(row.party_id for row in self.db.query(CPOOwner.party_id))
        return sorted(party_ids)

    def register_company_partner_details(self, company_name: str, party_id: str,
                                         country_code: Optional[str]) -> InsertResult:
        partner = CompanyPartnerDetails(company_name=company_name, party_id=party_id, country_code=country_code)
        return _insert_all(self.db, [partner])

    def update_company_partner_details(self, partner_id: int, country_code: Optional[str]) -> int:
        return (
            self.db.query(CompanyPartnerDetails)
            .filter(CompanyPartnerDetails.id == partner_id)
            .update({CompanyPartnerDetails.country_code: country_code,
                     CompanyPartnerDetails.date_modified: datetime.utcnow()},
                    synchronize_session="fetch")
        )

    @staticmethod
    def _cpo_row(cpo: CPOOwner, username: str, user_status: str) -> Dict[str, Any]:
        row = as_dict(cpo)
        row["username"] = username
        row["user_status"] = user_status
        return row


class ReportsRepository:
    def __init__(self, db: Session):
        self.db = db

    def _count_and_latest(self, model, date_column, *criteria):
        query = self.db.query(func.count(model.id), func.max(date_column))
        if criteria:
            query = query.filter(*criteria)
        total, latest = query.one()
        return total or 0, latest

    def get_total_cpos(self) -> int:
        return self.db.query(func.count(CPOOwner.id)).scalar() or 0

    def get_rfid_info(self) -> Dict[str, Any]:
        assigned, assigned_date = self._count_and_latest(RFIDCard, RFIDCard.date_assigned,
                                                         RFIDCard.rfid_status == "ACTIVE")
        unassigned, unassigned_date = self._count_and_latest(RFIDCard, RFIDCard.date_created,
                                                             RFIDCard.rfid_status == "UNASSIGNED")
        total, total_date = self._count_and_latest(RFIDCard, RFIDCard.date_created)
        return {
            "total_assigned_rfids": assigned,
            "effective_date_of_assigned_rfids": assigned_date,
            "total_unassigned_rfids": unassigned,
            "effective_date_of_unassigned_rfids": unassigned_date,
            "total_rfids": total,
            "effective_date_of_total_rfids": total_date,
        }

    def get_evse_info(self) -> Dict[str, Any]:
        # EVSE is keyed by uid, so count that column instead of id.
        def count_and_latest(*criteria):
            query = self.db.query(func.count(EVSE.uid), func.max(EVSE.date_modified))
            if criteria:
                query = query.filter(*criteria)
            total, latest = query.one()
            return total or 0, latest

        assigned, assigned_date = count_and_latest(EVSE.cpo_location_id.isnot(None))
        unassigned, unassigned_date = count_and_latest(EVSE.cpo_location_id.is_(None))
        total, total_date = count_and_latest()
        return {
            "total_assigned_evses": assigned,
            "effective_date_of_assigned_evses": assigned_date,
            "total_unassigned_evses": unassigned,
            "effective_date_of_unassigned_evses": unassigned_date,
            "total_evses": total,
            "effective_date_of_total_evses": total_date,
        }

    def get_location_info(self) -> Dict[str, Any]:
        assigned, assigned_date = self._count_and_latest(Location, Location.date_modified,
                                                         Location.cpo_owner_id.isnot(None))
        unassigned, unassigned_date = self._count_and_latest(Location, Location.date_modified,
                                                             Location.cpo_owner_id.is_(None))
        total, total_date = self._count_and_latest(Location, Location.date_created)
        return {
            "total_assigned_locations": assigned,
            "effective_date_of_assigned_locations": assigned_date,
            "total_unassigned_locations": unassigned,
            "effective_date_of_unassigned_locations": unassigned_date,
            "total_locations": total,
            "effective_date_of_total_locations": total_date,
        }

    def get_topup_info(self) -> Dict[str, Any]:
        def total_amount(*criteria) -> float:
            return self.db.query(func.coalesce(func.sum(TopupLog.amount), 0.0)).filter(*criteria).scalar()

        latest = self.db.query(func.max(TopupLog.date_created)).filter(TopupLog.type == "TOPUP").scalar()
        return {
            "total_topup_sales": total_amount(TopupLog.type == "TOPUP"),
            "total_void_topups": total_amount(TopupLog.type == "VOID"),
            "total_topup_card_sales": total_amount(TopupLog.type == "TOPUP", TopupLog.payment_type == "CARD"),
            "total_topup_maya_sales": total_amount(TopupLog.type == "TOPUP", TopupLog.payment_type == "MAYA"),
            "effective_date_of_topup_sales": latest,
        }


class UserManagementRepository:
    def __init__(self, db: Session):
        self.db = db

    def add_sub_user(self, username: str, password_hash: str, role: str, privileges: int) -> Outcome:
        return to_outcome(procedures.add_sub_user(self.db, username, password_hash, role, privileges))


class AuditTrailRepository:
    def __init__(self, db: Session):
        self.db = db

    def add_entry(self, admin_id: Optional[int], action: str, remarks: str,
                  cpo_id: Optional[int] = None) -> AdminAuditTrail:
        now = datetime.utcnow()
        entry = AdminAuditTrail(admin_id=admin_id, cpo_id=cpo_id, action=action, remarks=remarks,
                                date_created=now, date_modified=now)
        self.db.add(entry)
        return entry

