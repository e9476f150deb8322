# ev_admin_system/tests/test_evse_service.py

import pytest
from unittest.mock import patch
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ev_admin_system.business_logic.errors import BusinessRuleError, InternalError
from ev_admin_system.business_logic.evse_service import EVSEService
from ev_admin_system.data.models import (EVSE, EVSEConnector, EVSETimeslot, EVSEPaymentType, EVSECapability)
from ev_admin_system.data.outcomes import Rejected

from conftest import audit_rows


def evse_attributes(serial_number="SN-0001"):
    return {
        "model": "Terra AC",
        "vendor": "ABB",
        "serial_number": serial_number,
        "box_serial_number": f"BOX-{serial_number}",
        "firmware_version": "1.8.0",
        "iccid": "8963012345678901234",
        "imsi": "515021234567890",
        "meter_type": "AC",
        "meter_serial_number": f"MTR-{serial_number}",
    }


def connector(rate_setting=7):
    return {
        "standard": "TYPE_2",
        "format": "SOCKET",
        "power_type": "AC",
        "max_voltage": 230,
        "max_amperage": 32,
        "max_electric_power": 7360,
        "rate_setting": rate_setting,
    }


async def register(service, kwh=22, connectors=2, serial_number="SN-0001", location_id=None):
    return await service.register_evse(
        attributes=evse_attributes(serial_number),
        connectors=[connector() for _ in range(connectors)],
        kwh=kwh,
        payment_types=[1, 2],
        capabilities=[1],
        admin_id=7,
        location_id=location_id,
    )


def count(session, model):
    return session.query(model).count()


@pytest.mark.asyncio
async def test_register_evse_with_two_connectors_at_22_kwh(db_session):
    service = EVSEService(db_session)

    status = await register(service, kwh=22, connectors=2)

    assert status == "SUCCESS"
    evse = db_session.query(EVSE).one()
    assert evse.serial_number == "SN-0001"
    assert [c.connector_id for c in evse.connectors] == [1, 2]
    assert all(c.status == "AVAILABLE" for c in evse.connectors)
    assert evse.connectors[0].rate_setting == "7 KW-H"
    assert count(db_session, EVSETimeslot) == 16
    assert count(db_session, EVSEPaymentType) == 2
    assert count(db_session, EVSECapability) == 1

    audits = audit_rows(db_session)
    assert [(a.admin_id, a.action, a.remarks) for a in audits] == [(7, "REGISTER new EVSE", "success")]


@pytest.mark.asyncio
@pytest.mark.parametrize("kwh, connectors, expected", [
    (7, 1, 3),
    (7, 2, 6),
    (22, 3, 24),
    (60, 1, 8),
    (80, 2, 16),
    (50, 2, 0),
    (None, 1, 0),
])
async def test_timeslots_follow_the_kwh_band(db_session, kwh, connectors, expected):
    service = EVSEService(db_session)

    status = await register(service, kwh=kwh, connectors=connectors)

    assert status == "SUCCESS"
    assert count(db_session, EVSETimeslot) == expected


@pytest.mark.asyncio
async def test_timeslot_ids_come_from_the_band(db_session):
    service = EVSEService(db_session)

    await register(service, kwh=7, connectors=1)

    ids = sorted(t.setting_timeslot_id for t in db_session.query(EVSETimeslot))
    assert ids == [1, 2, 3]


@pytest.mark.asyncio
async def test_duplicate_serial_writes_nothing_and_audits_failure(db_session):
    service = EVSEService(db_session)
    await register(service, serial_number="SN-DUP")

    with pytest.raises(BusinessRuleError) as exc_info:
        await register(service, serial_number="SN-DUP")

    assert exc_info.value.message == "DUPLICATE_SERIAL"
    assert exc_info.value.status == 400
    assert count(db_session, EVSE) == 1
    assert count(db_session, EVSEConnector) == 2
    assert count(db_session, EVSETimeslot) == 16

    audits = audit_rows(db_session)
    assert [(a.action, a.remarks) for a in audits] == [
        ("REGISTER new EVSE", "success"),
        ("ATTEMPT to REGISTER new EVSE", "failed"),
    ]


@pytest.mark.asyncio
async def test_rejected_create_skips_all_dependent_inserts(db_session):
    service = EVSEService(db_session)

    with patch.object(service.evse_repo, "register_evse", return_value=Rejected("DUPLICATE_SERIAL")), \
            patch.object(service.connector_repo, "add_connectors") as add_connectors, \
            patch.object(service.connector_repo, "add_timeslots") as add_timeslots:
        with pytest.raises(BusinessRuleError, match="DUPLICATE_SERIAL"):
            await register(service)

    add_connectors.assert_not_called()
    add_timeslots.assert_not_called()
    assert count(db_session, EVSEPaymentType) == 0
    assert len(audit_rows(db_session)) == 1


@pytest.mark.asyncio
async def test_unknown_location_is_rejected(db_session):
    service = EVSEService(db_session)

    with pytest.raises(BusinessRuleError, match="LOCATION_ID_DOES_NOT_EXISTS"):
        await register(service, location_id=999)

    assert count(db_session, EVSE) == 0


@pytest.mark.asyncio
async def test_store_failure_mid_way_rolls_everything_back(db_session):
    service = EVSEService(db_session)

    with patch.object(service.connector_repo, "add_timeslots",
                      side_effect=OperationalError("INSERT", {}, Exception("connection lost"))):
        with pytest.raises(InternalError) as exc_info:
            await register(service)

    assert isinstance(exc_info.value.__cause__, SQLAlchemyError)
    assert count(db_session, EVSE) == 0
    assert count(db_session, EVSEConnector) == 0
    audits = audit_rows(db_session)
    assert [(a.action, a.remarks) for a in audits] == [("ATTEMPT to REGISTER new EVSE", "failed")]


@pytest.mark.asyncio
async def test_failing_audit_write_does_not_mask_the_original_error(db_session):
    service = EVSEService(db_session)
    await register(service, serial_number="SN-DUP")

    with patch.object(service.audit.audit_repo, "add_entry", side_effect=SQLAlchemyError("audit table gone")):
        with pytest.raises(BusinessRuleError, match="DUPLICATE_SERIAL"):
            await register(service, serial_number="SN-DUP")


@pytest.mark.asyncio
async def test_bind_and_unbind_evse(db_session, make_location):
    service = EVSEService(db_session)
    location = make_location()
    await register(service)
    evse = db_session.query(EVSE).one()

    assert await service.bind_evse(location.id, evse.uid, admin_id=3) == "SUCCESS"
    db_session.refresh(evse)
    assert evse.cpo_location_id == location.id

    with pytest.raises(BusinessRuleError, match="EVSE_ALREADY_BINDED"):
        await service.bind_evse(location.id, evse.uid, admin_id=3)

    assert await service.unbind_evse(location.id, evse.uid, admin_id=3) == "SUCCESS"
    db_session.refresh(evse)
    assert evse.cpo_location_id is None

    actions = [(a.action, a.remarks) for a in audit_rows(db_session)][1:]
    assert actions == [
        (f"BIND EVSE with ID of {evse.uid} to Location with ID of {location.id}", "success"),
        (f"ATTEMPT to BIND EVSE with ID of {evse.uid} to Location with ID of {location.id}", "failed"),
        (f"UNBIND EVSE with ID of {evse.uid} from Location with ID of {location.id}", "success"),
    ]


@pytest.mark.asyncio
async def test_bind_unknown_evse_fails(db_session, make_location):
    service = EVSEService(db_session)
    location = make_location()

    with pytest.raises(BusinessRuleError, match="EVSE_ID_DOES_NOT_EXISTS"):
        await service.bind_evse(location.id, "missing-uid", admin_id=3)

    assert audit_rows(db_session)[-1].remarks == "failed"


@pytest.mark.asyncio
async def test_get_evses_lists_bound_first(db_session, make_location):
    service = EVSEService(db_session)
    location = make_location()
    await register(service, serial_number="SN-A")
    await register(service, serial_number="SN-B", location_id=location.id)

    result = await service.get_evses(limit=10, offset=0)

    assert result["total_evses"] == 2
    assert result["total_evses_returned"] == 2
    assert [e["serial_number"] for e in result["evses"]] == ["SN-B", "SN-A"]
    assert len(result["evses"][0]["connectors"]) == 2


@pytest.mark.asyncio
async def test_get_evses_rejects_non_integer_paging(db_session):
    service = EVSEService(db_session)

    with pytest.raises(BusinessRuleError, match="Invalid limit. Limit must be on type of number"):
        await service.get_evses(limit="10", offset=0)
    with pytest.raises(BusinessRuleError, match="Invalid offset. Offset must be in type of number"):
        await service.get_evses(limit=10, offset="0")


@pytest.mark.asyncio
async def test_search_by_serial_number_is_case_insensitive(db_session):
    service = EVSEService(db_session)
    await register(service, serial_number="ABB-TERRA-01")
    await register(service, serial_number="DELTA-02")

    result = await service.search_evse_by_serial_number("terra", 10, 0)

    assert [e["serial_number"] for e in result] == ["ABB-TERRA-01"]


@pytest.mark.asyncio
async def test_default_data(db_session):
    service = EVSEService(db_session)

    result = await service.get_default_data()

    assert [p["code"] for p in result["payment_types"]] == ["RFID", "GCASH", "MAYA"]
    assert len(result["capabilities"]) == 2
    assert len(result["connector_types"]) == 2


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(db_session):
    service = EVSEService(db_session)
    await register(service, serial_number="SN_A1")
    await register(service, serial_number="SNXA2")

    assert [e["serial_number"] for e in await service.search_evse_by_serial_number("SN_A", 10, 0)] == ["SN_A1"]
    assert await service.search_evse_by_serial_number("%", 10, 0) == []


@pytest.mark.asyncio
async def test_connector_ordinal_is_unique_per_evse(db_session):
    service = EVSEService(db_session)
    await register(service, connectors=1)
    evse = db_session.query(EVSE).one()

    db_session.add(EVSEConnector(evse_uid=evse.uid, connector_id=1, **{**connector(), "rate_setting": "7 KW-H"}))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()
