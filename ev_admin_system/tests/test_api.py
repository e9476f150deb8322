# ev_admin_system/tests/test_api.py

from datetime import datetime, timedelta

import jwt
import pytest

from ev_admin_system.core.config import get_settings
from ev_admin_system.data.models import EVSE, Location, CPOOwner

from conftest import auth_headers

API = "/admin/api/v1"


def evse_payload(serial_number="SN-API-1"):
    return {
        "model": "Terra AC",
        "vendor": "ABB",
        "serial_number": serial_number,
        "box_serial_number": "BOX-1",
        "firmware_version": "1.8.0",
        "iccid": "8963012345678901234",
        "imsi": "515021234567890",
        "meter_type": "AC",
        "meter_serial_number": "MTR-1",
        "kwh": 22,
        "connectors": [
            {"standard": "TYPE_2", "format": "SOCKET", "power_type": "AC", "max_voltage": 230,
             "max_amperage": 32, "max_electric_power": 7360, "rate_setting": 7},
        ],
        "payment_types": [1],
        "capabilities": [1, 2],
    }


# --- Envelope and authentication ---

def test_health_check(client):
    response = client.get(f"{API}/health")

    assert response.status_code == 200
    assert response.json() == {"status": 200, "data": {"status": "ok", "database_status": "connected"},
                               "message": "Success"}


def test_missing_token_is_unauthorized(client):
    response = client.get(f"{API}/evses")

    assert response.status_code == 401
    assert response.json() == {"status": 401, "data": [], "message": "Unauthorized"}


def test_tampered_token_is_unauthorized(client):
    response = client.get(f"{API}/evses", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401


def test_expired_token(client):
    settings = get_settings()
    token = jwt.encode({"id": 1, "role": "ADMIN", "exp": datetime.utcnow() - timedelta(minutes=5)},
                       settings.jwt_secret, algorithm=settings.jwt_algorithm)

    response = client.get(f"{API}/evses", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Token Expired"


def test_role_outside_the_admin_roles_is_forbidden(client):
    response = client.get(f"{API}/evses", headers=auth_headers(role="CPO_OWNER"))

    assert response.status_code == 403
    assert response.json() == {"status": 403, "data": [], "message": "Forbidden"}


def test_unknown_route_is_not_found(client):
    response = client.get(f"{API}/chargers", headers=auth_headers())

    assert response.status_code == 404
    assert response.json()["message"] == "Not Found"


# --- EVSEs ---

def test_register_evse(client, db_session):
    response = client.post(f"{API}/evses", json=evse_payload(), headers=auth_headers(admin_id=11))

    assert response.status_code == 200
    assert response.json() == {"status": 200, "data": "SUCCESS", "message": "Success"}
    assert db_session.query(EVSE).one().serial_number == "SN-API-1"


def test_register_evse_with_missing_fields(client):
    payload = evse_payload()
    del payload["serial_number"]

    response = client.post(f"{API}/evses", json=payload, headers=auth_headers())

    assert response.status_code == 422
    body = response.json()
    assert body["message"] == "Unprocessable Entity"
    assert "serial_number" in body["data"]


def test_register_duplicate_evse(client):
    client.post(f"{API}/evses", json=evse_payload(), headers=auth_headers())

    response = client.post(f"{API}/evses", json=evse_payload(), headers=auth_headers())

    assert response.status_code == 400
    assert response.json() == {"status": 400, "data": [], "message": "DUPLICATE_SERIAL"}


def test_get_evses(client):
    client.post(f"{API}/evses", json=evse_payload(), headers=auth_headers())

    response = client.get(f"{API}/evses", params={"limit": 5, "offset": 0}, headers=auth_headers(role="ADMIN_NOC"))

    data = response.json()["data"]
    assert data["total_evses"] == 1
    assert data["limit"] == 5
    assert data["evses"][0]["connectors"][0]["rate_setting"] == "7 KW-H"


def test_bind_evse_with_unknown_action(client, db_session, make_location):
    location = make_location()

    response = client.patch(f"{API}/evses/attach/{location.id}/some-uid", headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["message"] == "INVALID_ACTION"


def test_default_data_requires_the_basic_token(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "basic_auth_token", "b4s1c")

    assert client.get(f"{API}/evses/data/defaults").status_code == 401
    assert client.get(f"{API}/evses/data/defaults", headers={"Authorization": "Basic wrong"}).status_code == 401

    response = client.get(f"{API}/evses/data/defaults", headers={"Authorization": "Basic b4s1c"})
    assert response.status_code == 200
    assert len(response.json()["data"]["payment_types"]) == 3


# --- Locations ---

def test_register_location(client, db_session, fake_geocoder):
    payload = {"name": "SM Cabuyao", "address": "Cabuyao, Laguna", "facilities": [1], "parking_types": [1],
               "parking_restrictions": [1, 2], "images": []}

    response = client.post(f"{API}/locations", json=payload, headers=auth_headers())

    assert response.status_code == 200
    assert response.json()["data"] == "SUCCESS"
    assert db_session.query(Location).one().region == "CAL"


def test_search_location_is_limited_to_noc_and_marketing(client, make_location):
    make_location(name="SM Cabuyao")

    assert client.get(f"{API}/locations/cabu/10/0", headers=auth_headers(role="ADMIN")).status_code == 403

    response = client.get(f"{API}/locations/cabu/10/0", headers=auth_headers(role="ADMIN_MARKETING"))
    assert response.status_code == 200
    assert [row["name"] for row in response.json()["data"]] == ["SM Cabuyao"]


def test_upload_location_images(client, monkeypatch, tmp_path):
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path))
    files = [("images", ("front.png", b"\x89PNG", "image/png")), ("images", ("map.JPG", b"\xff\xd8", "image/jpeg"))]

    response = client.post(f"{API}/locations/upload", files=files, headers=auth_headers(role="CPO_OWNER"))

    assert response.status_code == 200
    saved = response.json()["data"]
    assert [name.rsplit(".", 1)[1] for name in saved] == ["png", "jpg"]
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(saved)


def test_upload_rejects_other_formats(client, monkeypatch, tmp_path):
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path))
    files = [("images", ("notes.pdf", b"%PDF", "application/pdf"))]

    response = client.post(f"{API}/locations/upload", files=files, headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["message"] == "Only .png, .svg, .jpg and .jpeg format allowed!"
    assert list(tmp_path.iterdir()) == []


def test_upload_rejects_too_many_files(client, monkeypatch, tmp_path):
    monkeypatch.setattr(get_settings(), "upload_dir", str(tmp_path))
    monkeypatch.setattr(get_settings(), "max_upload_files", 1)
    files = [("images", (f"{n}.png", b"\x89PNG", "image/png")) for n in range(2)]

    response = client.post(f"{API}/locations/upload", files=files, headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["message"] == "Maximum of 1 images only"


# --- Merchants ---

def test_register_cpo(client, db_session, fake_mailer):
    payload = {"party_id": "VOL", "cpo_owner_name": "Volt Hub", "contact_name": "Juan dela Cruz",
               "contact_number": "09171234567", "contact_email": "ops@volthub.ph", "username": "volthub"}

    response = client.post(f"{API}/merchants", json=payload, headers=auth_headers())

    assert response.status_code == 200
    assert db_session.query(CPOOwner).one().cpo_owner_name == "Volt Hub"
    assert fake_mailer.sent[0]["to"] == "ops@volthub.ph"


def test_update_cpo_with_taken_values(client, make_cpo):
    cpo, other = make_cpo(), make_cpo()

    response = client.patch(f"{API}/merchants/{cpo.id}", json={"contact_number": other.contact_number},
                            headers=auth_headers())

    assert response.status_code == 400
    assert response.json() == {"status": 400, "data": {"errors": {"contact_number": "CONTACT_NUMBER_EXISTS"}},
                               "message": "INVALID_REQUEST"}


def test_topup_with_negative_amount(client, make_cpo):
    cpo = make_cpo()

    response = client.post(f"{API}/merchants/topup/{cpo.id}", json={"amount": -1}, headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["message"] == "INVALID_AMOUNT"


def test_topup_and_list_voidable(client, make_cpo):
    cpo = make_cpo(balance=10)

    response = client.post(f"{API}/merchants/topup/{cpo.id}", json={"amount": 90}, headers=auth_headers())
    assert response.json()["data"] == {"status": "SUCCESS", "new_balance": 100.0}

    topups = client.get(f"{API}/merchants/topups/{cpo.id}", headers=auth_headers()).json()["data"]
    assert len(topups) == 1
    assert topups[0]["amount"] == 90


def test_change_cpo_account_status(client, make_cpo):
    cpo = make_cpo()

    response = client.patch(f"{API}/merchants/deactivate/{cpo.user_id}", headers=auth_headers())

    assert response.json()["data"] == "SUCCESS"


def test_register_company_partner(client):
    response = client.post(f"{API}/company_partner_details",
                           json={"company_name": "ABC Traders", "address": "Cabuyao, Laguna"},
                           headers=auth_headers())

    assert response.status_code == 200
    assert response.json()["data"] == {"party_id": "ABC", "message": "SUCCESS"}

    partners = client.get(f"{API}/company_partner_details", headers=auth_headers()).json()["data"]
    assert [(p["party_id"], p["country_code"]) for p in partners] == [("ABC", "PH")]


# --- Reports and user management ---

def test_dashboard(client, make_cpo):
    make_cpo()

    response = client.get(f"{API}/dashboard", headers=auth_headers(role="ADMIN_MARKETING"))

    assert response.status_code == 200
    assert response.json()["data"]["total_cpos"] == 1


@pytest.mark.parametrize("role", ["ADMIN", "ADMIN_ACCOUNTING"])
def test_add_sub_user(client, role):
    payload = {"username": f"sub_{role.lower()}", "password": "pass1234", "role": "ADMIN_NOC",
               "privileges": {"reports": 1, "evses": 0}}

    response = client.post(f"{API}/users/management", json=payload, headers=auth_headers(role=role))

    assert response.status_code == 200
    assert response.json()["data"] == "SUCCESS"


def test_add_sub_user_with_unknown_role(client):
    payload = {"username": "someone", "password": "pass1234", "role": "ADMIN", "privileges": {}}

    response = client.post(f"{API}/users/management", json=payload, headers=auth_headers())

    assert response.status_code == 422
