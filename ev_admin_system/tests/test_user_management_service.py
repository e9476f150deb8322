# ev_admin_system/tests/test_user_management_service.py

import pytest

from ev_admin_system.business_logic.errors import BusinessRuleError
from ev_admin_system.business_logic.user_management_service import (UserManagementService, encode_privileges,
                                                                    decode_privileges, PRIVILEGE_FLAGS)
from ev_admin_system.core.security import verify_password
from ev_admin_system.data.models import User

from conftest import audit_rows


def test_privileges_bitmap():
    assert encode_privileges({}) == 0
    assert encode_privileges({"reports": 1, "evses": 1, "topups": 0}) == 0b1001
    assert encode_privileges({flag: 1 for flag in PRIVILEGE_FLAGS}) == 0b111111111
    assert decode_privileges(0b1001) == {flag: int(flag in ("reports", "evses")) for flag in PRIVILEGE_FLAGS}


@pytest.mark.asyncio
async def test_add_sub_user(db_session):
    service = UserManagementService(db_session)

    status = await service.add_sub_user("noc_ana", "s3cret-pass", "ADMIN_NOC",
                                        {"locations": 1, "evses": 1}, admin_id=1)

    assert status == "SUCCESS"
    user = db_session.query(User).filter(User.username == "noc_ana").one()
    assert user.role == "ADMIN_NOC"
    assert decode_privileges(user.privileges)["evses"] == 1
    assert decode_privileges(user.privileges)["topups"] == 0
    assert verify_password("s3cret-pass", user.password)
    assert audit_rows(db_session)[-1].action == "ADD sub user noc_ana"


@pytest.mark.asyncio
async def test_add_sub_user_with_taken_username(db_session):
    service = UserManagementService(db_session)
    await service.add_sub_user("noc_ana", "pass", "ADMIN_NOC", {}, admin_id=1)

    with pytest.raises(BusinessRuleError, match="USERNAME_EXISTS"):
        await service.add_sub_user("noc_ana", "pass", "ADMIN_MARKETING", {}, admin_id=1)

    assert audit_rows(db_session)[-1].action == "ATTEMPT to ADD sub user noc_ana"


@pytest.mark.asyncio
@pytest.mark.parametrize("role, privileges, message", [
    ("ADMIN", {}, "INVALID_ROLE"),
    ("CPO_OWNER", {}, "INVALID_ROLE"),
    ("ADMIN_NOC", {"billing": 1}, "INVALID_PRIVILEGES"),
    ("ADMIN_NOC", {"reports": 2}, "INVALID_PRIVILEGES"),
])
async def test_add_sub_user_rejects_bad_input(db_session, role, privileges, message):
    service = UserManagementService(db_session)

    with pytest.raises(BusinessRuleError, match=message):
        await service.add_sub_user("someone", "pass", role, privileges, admin_id=1)

    assert db_session.query(User).count() == 0
