# ev_admin_system/data/procedures.py
"""
Store operations with stored-procedure semantics.

Each function validates against the current state of the database, stages its
writes on the given session and answers with a single row carrying a STATUS
column. Nothing here commits: the caller owns the transaction, so a procedure
can take part in a larger unit of work and be rolled back with it.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ev_admin_system.data.models import (EVSE, Location, CPOOwner, User, RFIDCard, TopupLog)

logger = logging.getLogger(__name__)

VOID_WINDOW = timedelta(minutes=60)


def _status(status: str, **extra: Any) -> Dict[str, Any]:
    row = {"STATUS": status}
    row.update(extra)
    return row


# --- EVSE ---

def register_evse(session: Session, uid: str, attributes: Dict[str, Any], kwh: Optional[int],
                  location_id: Optional[int] = None) -> Dict[str, Any]:
    if session.query(EVSE).filter(EVSE.serial_number == attributes["serial_number"]).first():
        return _status("DUPLICATE_SERIAL")

    if location_id is not None and session.get(Location, location_id) is None:
        return _status("LOCATION_ID_DOES_NOT_EXISTS")

    evse = EVSE(uid=uid, kwh=kwh, cpo_location_id=location_id, **attributes)
    session.add(evse)
    session.flush()
    return _status("SUCCESS", uid=uid)


def bind_evse(session: Session, location_id: int, evse_uid: str) -> Dict[str, Any]:
    evse = session.get(EVSE, evse_uid)
    if evse is None:
        return _status("EVSE_ID_DOES_NOT_EXISTS")
    if session.get(Location, location_id) is None:
        return _status("LOCATION_ID_DOES_NOT_EXISTS")
    if evse.cpo_location_id is not None:
        return _status("EVSE_ALREADY_BINDED")

    evse.cpo_location_id = location_id
    session.flush()
    return _status("SUCCESS")


def unbind_evse(session: Session, location_id: int, evse_uid: str) -> Dict[str, Any]:
    evse = session.get(EVSE, evse_uid)
    if evse is None:
        return _status("EVSE_ID_DOES_NOT_EXISTS")
    if session.get(Location, location_id) is None:
        return _status("LOCATION_ID_DOES_NOT_EXISTS")
    if evse.cpo_location_id != location_id:
        return _status("EVSE_NOT_BINDED")

    evse.cpo_location_id = None
    session.flush()
    return _status("SUCCESS")


# --- Locations ---

def bind_location(session: Session, cpo_owner_id: int, location_id: int) -> Dict[str, Any]:
    if session.get(CPOOwner, cpo_owner_id) is None:
        return _status("CPO_OWNER_ID_DOES_NOT_EXISTS")
    location = session.get(Location, location_id)
    if location is None:
        return _status("LOCATION_ID_DOES_NOT_EXISTS")
    if location.cpo_owner_id is not None:
        return _status("LOCATION_ALREADY_BINDED")

    location.cpo_owner_id = cpo_owner_id
    session.flush()
    return _status("SUCCESS")


def unbind_location(session: Session, cpo_owner_id: int, location_id: int) -> Dict[str, Any]:
    if session.get(CPOOwner, cpo_owner_id) is None:
        return _status("CPO_OWNER_ID_DOES_NOT_EXISTS")
    location = session.get(Location, location_id)
    if location is None:
        return _status("LOCATION_ID_DOES_NOT_EXISTS")
    if location.cpo_owner_id != cpo_owner_id:
        return _status("LOCATION_NOT_BINDED")

    location.cpo_owner_id = None
    session.flush()
    return _status("SUCCESS")


# --- CPO accounts ---

def register_cpo(session: Session, party_id: str, cpo_owner_name: str, contact_name: str,
                 contact_number: str, contact_email: str, username: str,
                 password_hash: str) -> Dict[str, Any]:
    if session.query(User).filter(User.username == username).first():
        return _status("USERNAME_EXISTS")
    if session.query(CPOOwner).filter(CPOOwner.cpo_owner_name == cpo_owner_name).first():
        return _status("CPO_OWNER_NAME_EXISTS")
    if session.query(CPOOwner).filter(CPOOwner.contact_number == contact_number).first():
        return _status("CONTACT_NUMBER_EXISTS")
    if session.query(CPOOwner).filter(CPOOwner.contact_email == contact_email).first():
        return _status("CONTACT_EMAIL_EXISTS")

    user = User(username=username, password=password_hash, role="CPO_OWNER", user_status="ACTIVE")
    session.add(user)
    session.flush()

    cpo_owner = CPOOwner(
        user_id=user.id,
        party_id=party_id,
        cpo_owner_name=cpo_owner_name,
        contact_name=contact_name,
        contact_number=contact_number,
        contact_email=contact_email,
        balance=0.0,
    )
    session.add(cpo_owner)
    session.flush()
    return _status("SUCCESS", cpo_owner_id=cpo_owner.id, user_id=user.id)


_REGISTER_CHECKS = {
    "username": (User, User.username, "USERNAME_EXISTS"),
    "contact_number": (CPOOwner, CPOOwner.contact_number, "CONTACT_NUMBER_EXISTS"),
    "contact_email": (CPOOwner, CPOOwner.contact_email, "CONTACT_EMAIL_EXISTS"),
}


def check_register_cpo(session: Session, type: str, value: str) -> Dict[str, Any]:
    model, column, status = _REGISTER_CHECKS[type]
    if session.query(model).filter(column == value).first():
        return _status(status)
    return _status("SUCCESS")


def add_rfid(session: Session, cpo_owner_id: int, rfid_card_tag: str) -> Dict[str, Any]:
    if session.get(CPOOwner, cpo_owner_id) is None:
        return _status("CPO_OWNER_ID_DOES_NOT_EXISTS")
    if session.query(RFIDCard).filter(RFIDCard.rfid_card_tag == rfid_card_tag).first():
        return _status("RFID_EXISTS")

    session.add(RFIDCard(
        rfid_card_tag=rfid_card_tag,
        cpo_owner_id=cpo_owner_id,
        balance=0.0,
        is_charging=False,
        rfid_type="PHYSICAL",
        rfid_status="UNASSIGNED",
    ))
    session.flush()
    return _status("SUCCESS")


# --- Wallet ---

def _new_reference_number() -> str:
    return uuid.uuid4().hex[:12].upper()


def topup(session: Session, cpo_owner_id: int, amount: float) -> Dict[str, Any]:
    cpo_owner = session.get(CPOOwner, cpo_owner_id)
    if cpo_owner is None:
        return _status("CPO_OWNER_ID_DOES_NOT_EXISTS")

    cpo_owner.balance = (cpo_owner.balance or 0.0) + amount
    log = TopupLog(
        user_id=cpo_owner.user_id,
        amount=amount,
        payment_type="CASH",
        payment_status="SUCCEEDED",
        type="TOPUP",
        reference_number=_new_reference_number(),
    )
    session.add(log)
    session.flush()
    return _status("SUCCESS", current_balance=cpo_owner.balance, reference_number=log.reference_number)


def void_topup(session: Session, reference_id: int) -> Dict[str, Any]:
    log = session.get(TopupLog, reference_id)
    if log is None or log.type != "TOPUP":
        return _status("TOPUP_ID_DOES_NOT_EXISTS")
    if session.query(TopupLog).filter(TopupLog.void_id == log.id).first():
        return _status("TOPUP_ALREADY_VOIDED")
    if log.date_created < datetime.utcnow() - VOID_WINDOW:
        return _status("VOID_PERIOD_EXPIRED")

    cpo_owner = session.query(CPOOwner).filter(CPOOwner.user_id == log.user_id).first()
    if cpo_owner is None:
        return _status("CPO_OWNER_ID_DOES_NOT_EXISTS")
    if (cpo_owner.balance or 0.0) < log.amount:
        return _status("INSUFFICIENT_BALANCE")

    cpo_owner.balance = cpo_owner.balance - log.amount
    void_log = TopupLog(
        user_id=log.user_id,
        amount=log.amount,
        payment_type=log.payment_type,
        payment_status="SUCCEEDED",
        type="VOID",
        reference_number=_new_reference_number(),
        void_id=log.id,
    )
    session.add(void_log)
    session.flush()
    return _status("SUCCESS", current_balance=cpo_owner.balance, reference_number=void_log.reference_number)


# --- Sub-admins ---

def add_sub_user(session: Session, username: str, password_hash: str, role: str,
                 privileges: int) -> Dict[str, Any]:
    if session.query(User).filter(User.username == username).first():
        return _status("USERNAME_EXISTS")

    user = User(username=username, password=password_hash, role=role, user_status="ACTIVE",
                privileges=privileges)
    session.add(user)
    session.flush()
    return _status("SUCCESS", user_id=user.id)
