from app.services.licenses.codes import LICENSE_CODE_PATTERN

ADMIN_HEADERS = {"X-Admin-Key": "admin-key"}


def test_provision_requires_admin_key(client, fake_db):
    assert client.post("/admin/licenses", json={"count": 1}).status_code == 401
    assert client.post("/admin/licenses", json={"count": 1}, headers={"X-Admin-Key": "wrong"}).status_code == 401
    assert fake_db.rows("licenses") == []


def test_provision_licenses(client, fake_db):
    response = client.post("/admin/licenses", json={"count": 2, "productId": "price_1"}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    licenses = response.json()["licenses"]
    assert len(licenses) == 2
    assert all(LICENSE_CODE_PATTERN.match(license["code"]) for license in licenses)
    assert {license["status"] for license in licenses} == {"available"}
    assert len(fake_db.rows("licenses")) == 2


def test_provision_count_is_bounded(client):
    response = client.post("/admin/licenses", json={"count": 0}, headers=ADMIN_HEADERS)

    assert response.status_code == 400


def test_reserve_then_redeem(client, fake_db):
    fake_db.seed_license("AAAA-BBBB-CCCC")

    response = client.post("/admin/licenses/AAAA-BBBB-CCCC/reserve", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json()["license"]["status"] == "reserved"

    again = client.post("/admin/licenses/AAAA-BBBB-CCCC/reserve", headers=ADMIN_HEADERS)
    assert again.status_code == 409
    assert again.json()["error"] == "license_not_available"

    redeemed = client.post("/redeem", json={"email": "b@x.com", "code": "AAAA-BBBB-CCCC"})
    assert redeemed.status_code == 200
