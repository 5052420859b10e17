"""
HTTP-level tests: authentication, role gates, the response envelope and the
main workflows driven end to end through the routers.
"""

from datetime import timedelta

import pytest

from bloodlink.utils.generators import utcnow
from tests.conftest import (
    TEST_PASSWORD,
    TestDataFactory,
    assert_response_error,
    assert_response_success,
    auth_headers_for,
)

API = "/api"


class TestAuthEndpoints:
    async def test_register_donor(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "Kwame@Example.com",
                "password": "secret123",
                "name": "Kwame Asante",
                "role": "donor",
                "city": "Accra",
                "blood_group": "B+",
            },
        )

        data = assert_response_success(response, 201)
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["role"] == "donor"
        assert data["user"]["email"] == "kwame@example.com"
        assert data["user"]["blood_group"] == "B+"
        assert data["user"]["is_verified"] is False
        assert "password" not in data["user"]

    async def test_duplicate_email_rejected(self, client, donor):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": donor.email,
                "password": "secret123",
                "name": "Someone Else",
                "role": "hospital",
            },
        )

        body = assert_response_error(response, 400)
        assert body["message"] == "Email already registered"

    async def test_unknown_role_rejected(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "root@example.com",
                "password": "secret123",
                "name": "Root",
                "role": "admin",
            },
        )

        body = assert_response_error(response, 400)
        assert body["message"] == "Validation failed"
        assert body["errors"]

    async def test_login(self, client, hospital):
        response = await client.post(
            f"{API}/auth/login", json={"email": hospital.email, "password": TEST_PASSWORD}
        )

        data = assert_response_success(response)
        assert data["user"]["id"] == str(hospital.id)
        assert data["user"]["registration_number"] is None

        me = await client.get(
            f"{API}/users/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert assert_response_success(me)["email"] == hospital.email

    async def test_login_wrong_password(self, client, hospital):
        response = await client.post(
            f"{API}/auth/login", json={"email": hospital.email, "password": "wrong-password"}
        )

        body = assert_response_error(response, 401)
        assert body["message"] == "Invalid email or password"

    async def test_inactive_account_cannot_login(self, client, db_session):
        user = await TestDataFactory.create_user(db_session, "donor", is_active=False)

        response = await client.post(
            f"{API}/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert_response_error(response, 401)


class TestProfileEndpoints:
    async def test_me_requires_token(self, client):
        assert_response_error(await client.get(f"{API}/users/me"), 401)

    async def test_me_includes_donor_fields(self, client, donor):
        response = await client.get(f"{API}/users/me", headers=auth_headers_for(donor))

        data = assert_response_success(response)
        assert data["role"] == "donor"
        assert data["blood_group"] == "O+"
        assert data["last_donation_date"] is None

    async def test_me_includes_blood_bank_fields(self, client, db_session):
        bank = await TestDataFactory.create_user(db_session, "bloodbank", license_number="GH-BB-001")

        response = await client.get(f"{API}/users/me", headers=auth_headers_for(bank))

        assert assert_response_success(response)["license_number"] == "GH-BB-001"

    async def test_update_donor_only_field(self, client, donor):
        response = await client.patch(
            f"{API}/users/me", json={"gender": "Male"}, headers=auth_headers_for(donor)
        )

        data = assert_response_success(response)
        assert data["gender"] == "Male"
        assert data["blood_group"] == "O+"

    async def test_name_cannot_be_cleared(self, client, hospital):
        response = await client.patch(
            f"{API}/users/me", json={"name": None}, headers=auth_headers_for(hospital)
        )

        assert_response_error(response, 400)

        me = await client.get(f"{API}/users/me", headers=auth_headers_for(hospital))
        assert assert_response_success(me)["name"] == "Korle Bu Hospital"

    async def test_garbage_token_rejected(self, client):
        response = await client.get(
            f"{API}/users/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert_response_error(response, 401)

    async def test_update_profile_by_role(self, client, donor):
        response = await client.patch(
            f"{API}/users/me",
            json={"phone": "+233200000000", "blood_group": "AB-"},
            headers=auth_headers_for(donor),
        )

        data = assert_response_success(response)
        assert data["phone"] == "+233200000000"
        assert data["blood_group"] == "AB-"

    async def test_profile_update_rejects_other_role_fields(self, client, hospital):
        response = await client.patch(
            f"{API}/users/me",
            json={"blood_group": "O+"},
            headers=auth_headers_for(hospital),
        )

        assert_response_error(response, 400)


class TestInventoryEndpoints:
    async def test_hospital_cannot_add_stock(self, client, hospital):
        response = await client.post(
            f"{API}/inventory",
            json={"blood_group": "O+", "quantity": 5},
            headers=auth_headers_for(hospital),
        )

        assert_response_error(response, 403)

    async def test_unverified_blood_bank_cannot_add_stock(self, client, db_session):
        bank = await TestDataFactory.create_user(db_session, "bloodbank", is_verified=False)

        response = await client.post(
            f"{API}/inventory",
            json={"blood_group": "O+", "quantity": 5},
            headers=auth_headers_for(bank),
        )

        body = assert_response_error(response, 403)
        assert body["message"] == "Your account is pending verification by an administrator"

    async def test_add_and_issue_stock(self, client, blood_bank):
        headers = auth_headers_for(blood_bank)

        added = await client.post(
            f"{API}/inventory", json={"blood_group": "A+", "quantity": 5}, headers=headers
        )
        lot = assert_response_success(added, 201)
        assert lot["quantity"] == 5

        issued = await client.post(
            f"{API}/inventory/issue", json={"blood_group": "A+", "quantity": 2}, headers=headers
        )
        data = assert_response_success(issued)
        assert data["transaction"]["direction"] == "out"
        assert data["consumed_lots"] == [
            {"lot_id": lot["id"], "consumed": 2, "remaining": 3, "deleted": False}
        ]

        overflow = await client.post(
            f"{API}/inventory/issue", json={"blood_group": "A+", "quantity": 9}, headers=headers
        )
        assert_response_error(overflow, 400)

        transactions = await client.get(f"{API}/inventory/transactions", headers=headers)
        assert len(assert_response_success(transactions)) == 2

    async def test_issue_cannot_reference_foreign_request(
        self, client, db_session, hospital, blood_bank
    ):
        other_bank = await TestDataFactory.create_user(db_session, "bloodbank")
        foreign = await TestDataFactory.create_request(db_session, hospital, other_bank)
        headers = auth_headers_for(blood_bank)
        await client.post(
            f"{API}/inventory", json={"blood_group": "O+", "quantity": 5}, headers=headers
        )

        response = await client.post(
            f"{API}/inventory/issue",
            json={"blood_group": "O+", "quantity": 1, "related_request_id": str(foreign.id)},
            headers=headers,
        )

        assert_response_error(response, 403)

    async def test_invalid_quantity_is_validation_error(self, client, blood_bank):
        response = await client.post(
            f"{API}/inventory",
            json={"blood_group": "A+", "quantity": 0},
            headers=auth_headers_for(blood_bank),
        )

        assert_response_error(response, 400)


class TestRequestEndpoints:
    async def test_full_request_flow(self, client, hospital, blood_bank):
        bank_headers = auth_headers_for(blood_bank)
        hospital_headers = auth_headers_for(hospital)
        await client.post(
            f"{API}/inventory", json={"blood_group": "O+", "quantity": 10}, headers=bank_headers
        )

        created = await client.post(
            f"{API}/requests",
            json={
                "blood_bank_id": str(blood_bank.id),
                "blood_group": "O+",
                "quantity": 4,
                "urgency": "critical",
            },
            headers=hospital_headers,
        )
        request = assert_response_success(created, 201)
        assert request["status"] == "pending"
        assert request["blood_bank"]["name"] == "Central Blood Bank"

        approved = await client.patch(
            f"{API}/requests/{request['id']}/approve", headers=bank_headers
        )
        assert assert_response_success(approved)["status"] == "approved"

        inventory = assert_response_success(
            await client.get(f"{API}/inventory", headers=bank_headers)
        )
        assert [(a["blood_group"], a["total_quantity"]) for a in inventory["aggregated"]] == [
            ("O+", 6)
        ]

        fulfilled = await client.patch(
            f"{API}/requests/{request['id']}/fulfill", headers=hospital_headers
        )
        assert assert_response_success(fulfilled)["status"] == "fulfilled"

        listed = assert_response_success(
            await client.get(f"{API}/requests", headers=hospital_headers)
        )
        assert [r["id"] for r in listed] == [request["id"]]

    async def test_approve_without_stock(self, client, hospital, blood_bank):
        created = await client.post(
            f"{API}/requests",
            json={"blood_bank_id": str(blood_bank.id), "blood_group": "B-", "quantity": 2},
            headers=auth_headers_for(hospital),
        )
        request = assert_response_success(created, 201)

        response = await client.patch(
            f"{API}/requests/{request['id']}/approve", headers=auth_headers_for(blood_bank)
        )

        assert_response_error(response, 400)

    async def test_donor_cannot_create_request(self, client, donor, blood_bank):
        response = await client.post(
            f"{API}/requests",
            json={"blood_bank_id": str(blood_bank.id), "blood_group": "O+", "quantity": 1},
            headers=auth_headers_for(donor),
        )

        assert_response_error(response, 403)

    async def test_search_blood_banks(self, client, hospital, blood_bank):
        await client.post(
            f"{API}/inventory",
            json={"blood_group": "O+", "quantity": 7},
            headers=auth_headers_for(blood_bank),
        )

        response = await client.get(
            f"{API}/requests/search/bloodbanks",
            params={"blood_group": "O+", "city": "accra"},
            headers=auth_headers_for(hospital),
        )

        results = assert_response_success(response)
        assert [r["id"] for r in results] == [str(blood_bank.id)]
        assert results[0]["inventory"] == {"O+": 7}


class TestCampEndpoints:
    async def test_create_register_and_record(self, client, blood_bank, donor):
        bank_headers = auth_headers_for(blood_bank)
        donor_headers = auth_headers_for(donor)

        created = await client.post(
            f"{API}/camps",
            json={
                "name": "Market Square Drive",
                "date": (utcnow() + timedelta(days=5)).isoformat(),
                "start_time": "08:00",
                "end_time": "14:00",
                "address": "Makola",
                "city": "Accra",
                "state": "Greater Accra",
                "target_donors": 40,
            },
            headers=bank_headers,
        )
        camp = assert_response_success(created, 201)

        listed = assert_response_success(await client.get(f"{API}/camps", headers=donor_headers))
        assert [c["id"] for c in listed] == [camp["id"]]

        registered = await client.post(f"{API}/camps/{camp['id']}/register", headers=donor_headers)
        assert [r["donor_id"] for r in assert_response_success(registered)["registrations"]] == [
            str(donor.id)
        ]

        again = await client.post(f"{API}/camps/{camp['id']}/register", headers=donor_headers)
        assert_response_error(again, 400)

        recorded = await client.post(
            f"{API}/camps/{camp['id']}/donations",
            json={"donor_id": str(donor.id), "blood_group": "O+"},
            headers=bank_headers,
        )
        donation = assert_response_success(recorded, 201)
        assert donation["camp_id"] == camp["id"]

        history = assert_response_success(
            await client.get(f"{API}/donor/donations", headers=donor_headers)
        )
        assert [d["id"] for d in history] == [donation["id"]]

        eligibility = assert_response_success(
            await client.get(f"{API}/donor/eligibility", headers=donor_headers)
        )
        assert eligibility["can_donate"] is False
        assert eligibility["days_since_last_donation"] == 0

        certificate = await client.get(
            f"{API}/certificate/{donation['id']}", headers=donor_headers
        )
        assert certificate.status_code == 200
        assert certificate.headers["content-type"] == "application/pdf"
        assert "attachment" in certificate.headers["content-disposition"]
        assert certificate.content.startswith(b"%PDF")

    async def test_deactivate_camp(self, client, db_session, blood_bank):
        camp = await TestDataFactory.create_camp(db_session, blood_bank)

        response = await client.delete(
            f"{API}/camps/{camp.id}", headers=auth_headers_for(blood_bank)
        )

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["message"] == "Camp deactivated successfully"

    @pytest.mark.parametrize("field", ["name", "date", "target_donors", "is_active"])
    async def test_required_camp_fields_cannot_be_cleared(
        self, client, db_session, blood_bank, field
    ):
        camp = await TestDataFactory.create_camp(db_session, blood_bank)

        response = await client.patch(
            f"{API}/camps/{camp.id}", json={field: None}, headers=auth_headers_for(blood_bank)
        )

        body = assert_response_error(response, 400)
        assert body["message"] == "Validation failed"

    async def test_optional_camp_fields_can_be_cleared(self, client, db_session, blood_bank):
        camp = await TestDataFactory.create_camp(db_session, blood_bank, description="Bring ID")

        response = await client.patch(
            f"{API}/camps/{camp.id}",
            json={"description": None},
            headers=auth_headers_for(blood_bank),
        )

        assert assert_response_success(response)["description"] is None

    async def test_new_donor_is_eligible(self, client, donor):
        response = await client.get(f"{API}/donor/eligibility", headers=auth_headers_for(donor))

        assert assert_response_success(response) == {
            "can_donate": True,
            "reason": None,
            "last_donation_date": None,
            "days_since_last_donation": None,
        }

    async def test_certificate_of_other_donor_forbidden(
        self, client, db_session, blood_bank, donor
    ):
        other = await TestDataFactory.create_user(db_session, "donor")
        camp = await TestDataFactory.create_camp(db_session, blood_bank)
        recorded = await client.post(
            f"{API}/camps/{camp.id}/donations",
            json={"donor_id": str(donor.id), "blood_group": "O+"},
            headers=auth_headers_for(blood_bank),
        )
        donation = assert_response_success(recorded, 201)

        response = await client.get(
            f"{API}/certificate/{donation['id']}", headers=auth_headers_for(other)
        )

        assert_response_error(response, 403)


class TestAdminEndpoints:
    async def test_verify_account(self, client, db_session, admin_user):
        bank = await TestDataFactory.create_user(db_session, "bloodbank", is_verified=False)

        response = await client.patch(
            f"{API}/admin-api/verify/{bank.id}", headers=auth_headers_for(admin_user)
        )

        data = assert_response_success(response)
        assert data["is_verified"] is True
        assert data["role"] == "bloodbank"

    async def test_non_admin_forbidden(self, client, blood_bank):
        response = await client.get(
            f"{API}/admin-api/analytics", headers=auth_headers_for(blood_bank)
        )

        assert_response_error(response, 403)

    async def test_analytics(self, client, admin_user, blood_bank, hospital, donor):
        await client.post(
            f"{API}/inventory",
            json={"blood_group": "A-", "quantity": 3},
            headers=auth_headers_for(blood_bank),
        )

        data = assert_response_success(
            await client.get(f"{API}/admin-api/analytics", headers=auth_headers_for(admin_user))
        )

        assert data["total_blood_units"] == 3
        assert data["total_donors"] == 1
        assert data["total_blood_banks"] == 1
        assert data["total_hospitals"] == 1
        assert data["pending_requests"] == 0

    async def test_admin_accounts_cannot_be_deleted(self, client, db_session, admin_user):
        other_admin = await TestDataFactory.create_user(db_session, "admin")

        response = await client.delete(
            f"{API}/admin-api/users/{other_admin.id}", headers=auth_headers_for(admin_user)
        )

        body = assert_response_error(response, 403)
        assert body["message"] == "Cannot delete admin users"

    async def test_deleted_account_loses_access(self, client, admin_user, hospital):
        response = await client.delete(
            f"{API}/admin-api/users/{hospital.id}", headers=auth_headers_for(admin_user)
        )
        assert response.json()["message"] == "User deleted successfully"

        me = await client.get(f"{API}/users/me", headers=auth_headers_for(hospital))
        assert_response_error(me, 401)


class TestMessagingEndpoints:
    async def test_notifications_list_and_read_all(self, client, hospital, blood_bank):
        await client.post(
            f"{API}/requests",
            json={"blood_bank_id": str(blood_bank.id), "blood_group": "O+", "quantity": 1},
            headers=auth_headers_for(hospital),
        )
        headers = auth_headers_for(blood_bank)

        notes = assert_response_success(await client.get(f"{API}/notifications", headers=headers))
        assert [n["title"] for n in notes] == ["New Blood Request"]
        assert notes[0]["is_read"] is False

        marked = await client.patch(f"{API}/notifications/read-all", headers=headers)
        assert assert_response_success(marked) == {"updated": 1}

    async def test_chat_send_and_history(self, client, hospital, blood_bank):
        sent = await client.post(
            f"{API}/chat/send",
            json={"recipient_id": str(blood_bank.id), "content": "Are you open tonight?"},
            headers=auth_headers_for(hospital),
        )
        message = assert_response_success(sent, 201)
        assert message["read"] is False

        history = assert_response_success(
            await client.get(f"{API}/chat/history/{hospital.id}", headers=auth_headers_for(blood_bank))
        )
        assert [m["content"] for m in history] == ["Are you open tonight?"]

        read = await client.put(f"{API}/chat/read/{hospital.id}", headers=auth_headers_for(blood_bank))
        assert assert_response_success(read) == {"updated": 1}


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_request_id_is_echoed(self, client):
        generated = await client.get("/")
        assert generated.headers["x-request-id"]

        echoed = await client.get("/", headers={"X-Request-ID": "trace-123"})
        assert echoed.headers["x-request-id"] == "trace-123"
