# ev_admin_system/data/models.py
from sqlalchemy import (Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float,
                        UniqueConstraint)
from sqlalchemy.orm import relationship, declarative_base, configure_mappers
from datetime import datetime

# Single declarative base shared by every table of the back-office schema.
Base = declarative_base()


# --- Reference vocabularies ---

class PaymentType(Base):
    __tablename__ = "payment_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)  # Ex: RFID, GCASH, MAYA
    description = Column(String, nullable=True)


class Capability(Base):
    __tablename__ = "capabilities"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)  # Ex: REMOTE_START_STOP_CAPABLE
    description = Column(String, nullable=True)


class ConnectorType(Base):
    __tablename__ = "connector_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)  # Ex: TYPE_2, CHADEMO
    description = Column(String, nullable=True)


class Facility(Base):
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)


class ParkingType(Base):
    __tablename__ = "parking_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)


class ParkingRestriction(Base):
    __tablename__ = "parking_restrictions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)


# --- Accounts ---

class User(Base):
    """
    Login account. CPO owners and sub-admins both live here, told apart by role.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    role = Column(String, nullable=False)  # ADMIN, ADMIN_NOC, ADMIN_MARKETING, ADMIN_ACCOUNTING, CPO_OWNER
    user_status = Column(String, default="ACTIVE")  # ACTIVE, INACTIVE
    privileges = Column(Integer, nullable=True)  # Bitmap, sub-admins only
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    cpo_owner = relationship("CPOOwner", back_populates="user", uselist=False)


class CPOOwner(Base):
    """
    Charging Point Operator (merchant) account.
    """
    __tablename__ = "cpo_owners"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    party_id = Column(String(3), nullable=False)
    cpo_owner_name = Column(String, unique=True, nullable=False)
    contact_name = Column(String, nullable=False)
    contact_number = Column(String, unique=True, nullable=False)
    contact_email = Column(String, unique=True, nullable=False)
    balance = Column(Float, default=0.0, nullable=False)
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="cpo_owner")
    locations = relationship("Location", back_populates="cpo_owner")
    rfid_cards = relationship("RFIDCard", back_populates="cpo_owner")


class RFIDCard(Base):
    __tablename__ = "rfid_cards"

    id = Column(Integer, primary_key=True, index=True)
    rfid_card_tag = Column(String, unique=True, index=True, nullable=False)
    cpo_owner_id = Column(Integer, ForeignKey("cpo_owners.id"), nullable=True)
    user_driver_id = Column(Integer, nullable=True)
    balance = Column(Float, default=0.0, nullable=False)
    is_charging = Column(Boolean, default=False)
    rfid_type = Column(String, default="PHYSICAL")
    rfid_status = Column(String, default="UNASSIGNED")  # UNASSIGNED, ACTIVE
    date_assigned = Column(DateTime, nullable=True)
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    cpo_owner = relationship("CPOOwner", back_populates="rfid_cards")


class TopupLog(Base):
    """
    Wallet movement of a CPO account. A VOID row points back at the TOPUP it reverses.
    """
    __tablename__ = "topup_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Float, nullable=False)
    payment_type = Column(String, default="CASH")  # CASH, CARD, MAYA
    payment_status = Column(String, default="SUCCEEDED")
    type = Column(String, nullable=False)  # TOPUP, VOID
    reference_number = Column(String, unique=True, index=True, nullable=False)
    void_id = Column(Integer, ForeignKey("topup_logs.id"), nullable=True)
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CompanyPartnerDetails(Base):
    __tablename__ = "company_partner_details"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String, nullable=False)
    party_id = Column(String(3), unique=True, index=True, nullable=False)
    country_code = Column(String, nullable=True)
    account_status = Column(String, default="ACTIVE")
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AdminAuditTrail(Base):
    """
    Append-only record of administrative actions. Rows are never updated or deleted.
    """
    __tablename__ = "admin_audit_trails"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=True)
    cpo_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)
    remarks = Column(String, nullable=False)  # success, failed
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow)


# --- Locations ---

class Location(Base):
    """
    Physical site. cpo_owner_id is null while the location is unbound.
    """
    __tablename__ = "cpo_locations"

    id = Column(Integer, primary_key=True, index=True)
    cpo_owner_id = Column(Integer, ForeignKey("cpo_owners.id"), nullable=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)  # Formatted address from the geocoder
    address_lat = Column(Float, nullable=True)
    address_lng = Column(Float, nullable=True)
    city = Column(String, nullable=True)
    region = Column(String(3), nullable=True)
    postal_code = Column(String, nullable=True)
    images = Column(Text, default="[]")  # JSON list of file names
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    cpo_owner = relationship("CPOOwner", back_populates="locations")
    evses = relationship("EVSE", back_populates="location")


class LocationFacility(Base):
    __tablename__ = "cpo_location_facilities"

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id"), nullable=False)
    cpo_location_id = Column(Integer, ForeignKey("cpo_locations.id"), nullable=False)


class LocationParkingType(Base):
    __tablename__ = "cpo_location_parking_types"

    id = Column(Integer, primary_key=True, index=True)
    parking_type_id = Column(Integer, ForeignKey("parking_types.id"), nullable=False)
    cpo_location_id = Column(Integer, ForeignKey("cpo_locations.id"), nullable=False)
    tag = Column(String, nullable=False)  # OUTDOOR, INDOOR


class LocationParkingRestriction(Base):
    __tablename__ = "cpo_location_parking_restrictions"

    id = Column(Integer, primary_key=True, index=True)
    parking_restriction_code_id = Column(Integer, ForeignKey("parking_restrictions.id"), nullable=False)
    cpo_location_id = Column(Integer, ForeignKey("cpo_locations.id"), nullable=False)


# --- Equipment ---

class EVSE(Base):
    """
    Electric Vehicle Supply Equipment. cpo_location_id is null while unbound.
    """
    __tablename__ = "evse"

    uid = Column(String(36), primary_key=True, index=True)
    evse_code = Column(String, nullable=True)
    evse_id = Column(String, nullable=True)
    model = Column(String, nullable=False)
    vendor = Column(String, nullable=False)
    serial_number = Column(String, unique=True, index=True, nullable=False)
    box_serial_number = Column(String, nullable=False)
    firmware_version = Column(String, nullable=False)
    iccid = Column(String, nullable=False)
    imsi = Column(String, nullable=False)
    meter_type = Column(String, nullable=False)
    meter_serial_number = Column(String, nullable=False)
    kwh = Column(Integer, nullable=True)
    status = Column(String, default="OFFLINE")
    cpo_location_id = Column(Integer, ForeignKey("cpo_locations.id"), nullable=True)
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    location = relationship("Location", back_populates="evses")
    connectors = relationship("EVSEConnector", back_populates="evse", order_by="EVSEConnector.connector_id")
    timeslots = relationship("EVSETimeslot", back_populates="evse")


class EVSEConnector(Base):
    """
    Connector of an EVSE. connector_id is the 1-based ordinal inside its EVSE.
    """
    __tablename__ = "evse_connectors"
    __table_args__ = (UniqueConstraint("evse_uid", "connector_id", name="uq_evse_connector_ordinal"),)

    id = Column(Integer, primary_key=True, index=True)
    evse_uid = Column(String(36), ForeignKey("evse.uid"), nullable=False)
    connector_id = Column(Integer, nullable=False)
    standard = Column(String, nullable=False)  # Ex: TYPE_2, CHADEMO
    format = Column(String, nullable=False)  # Ex: SOCKET, CABLE
    power_type = Column(String, nullable=False)  # Ex: AC, DC
    max_voltage = Column(Float, nullable=False)
    max_amperage = Column(Float, nullable=False)
    max_electric_power = Column(Float, nullable=False)
    connector_type = Column(String, nullable=True)
    rate_setting = Column(String, nullable=False)  # Ex: "7 KW-H"
    status = Column(String, default="AVAILABLE")
    date_created = Column(DateTime, default=datetime.utcnow)
    date_modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    evse = relationship("EVSE", back_populates="connectors")


class EVSETimeslot(Base):
    __tablename__ = "evse_timeslots"

    id = Column(Integer, primary_key=True, index=True)
    evse_uid = Column(String(36), ForeignKey("evse.uid"), nullable=False)
    connector_id = Column(Integer, nullable=False)
    setting_timeslot_id = Column(Integer, nullable=False)
    status = Column(String, default="ONLINE")

    evse = relationship("EVSE", back_populates="timeslots")


class EVSEPaymentType(Base):
    __tablename__ = "evse_payment_types"

    id = Column(Integer, primary_key=True, index=True)
    evse_uid = Column(String(36), ForeignKey("evse.uid"), nullable=False)
    payment_type_id = Column(Integer, ForeignKey("payment_types.id"), nullable=False)


class EVSECapability(Base):
    __tablename__ = "evse_capabilities"

    id = Column(Integer, primary_key=True, index=True)
    capability_id = Column(Integer, ForeignKey("capabilities.id"), nullable=False)
    evse_uid = Column(String(36), ForeignKey("evse.uid"), nullable=False)


def as_dict(instance) -> dict:
    """Column values of a mapped instance, keyed by column name."""
    return {column.name: getattr(instance, column.name) for column in instance.__table__.columns}


# Make sure every relationship resolves once all classes are defined.
configure_mappers()
