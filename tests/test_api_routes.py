"""
HTTP API Tests
Envelope shape, authentication gates and the main user/admin flows through FastAPI
"""

import pytest
from unittest.mock import patch

from routes.dependencies import VERIFICATION_REQUIRED_MESSAGE


class TestServiceEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "TradeNest API is running"}

    def test_health_with_database(self, client):
        with patch("api_server.test_connection", return_value=True):
            response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["service"] == "tradenest-api"
        assert data["database"] == "connected"

    def test_health_without_database(self, client):
        with patch("api_server.test_connection", return_value=False):
            response = client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Database unavailable"
        assert body["data"]["database"] == "unavailable"

    def test_unknown_route(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found"}


class TestAuthenticationGates:

    def test_missing_token(self, client):
        response = client.get("/api/trades")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required. Please log in."

    def test_bad_token(self, client):
        response = client.get("/api/trades", headers={"Authorization": "Bearer 1.2.3"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. Please log in again."

    def test_unverified_user_is_refused(self, client, make_user, auth_headers):
        user = make_user(verified=False)
        response = client.get("/api/trades", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["message"] == VERIFICATION_REQUIRED_MESSAGE

    def test_unverified_user_can_read_profile(self, client, make_user, auth_headers):
        user = make_user(verified=False)
        response = client.get("/api/auth/profile", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["data"]["isVerified"] is False

    def test_admin_routes_refuse_regular_users(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get("/api/users/all", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Admin privileges required."


class TestRegistrationFlow:

    def test_register_verify_and_login(self, client, mock_email_service):
        response = client.post("/api/auth/register", json={
            "fullName": "Sara Ahmed",
            "email": "sara@example.com",
            "password": "hunter22",
            "confirmPassword": "hunter22",
        })
        assert response.status_code == 201
        assert response.json()["data"]["email"] == "sara@example.com"

        otp = mock_email_service.send_otp_email.call_args[0][2]
        response = client.post("/api/auth/verify-otp", json={"email": "sara@example.com", "otp": otp})
        assert response.status_code == 200
        token = response.json()["data"]["token"]

        response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["data"]["isVerified"] is True

        response = client.post("/api/auth/login", json={"email": "sara@example.com", "password": "hunter22"})
        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"

    def test_validation_envelope(self, client):
        response = client.post("/api/auth/login", json={"email": "sara@example.com"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert {"field": "password", "message": "Field required"} in body["errors"]


class TestTradeEndpoints:

    def test_start_list_and_complete(self, client, make_user, auth_headers):
        user = make_user(balance="10000")
        headers = auth_headers(user)

        response = client.post("/api/trades/start", json={"amount": 5000}, headers=headers)
        assert response.status_code == 201
        trade = response.json()["data"]
        assert trade["status"] == "active"
        assert trade["profitPercentage"] == 10

        profile = client.get("/api/auth/profile", headers=headers).json()["data"]
        assert profile["balance"] == 5000

        listing = client.get("/api/trades", params={"status": "active"}, headers=headers).json()["data"]
        assert listing["pagination"]["total"] == 1

        response = client.post(f"/api/trades/{trade['tradeId']}/complete", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

        response = client.post(f"/api/trades/{trade['tradeId']}/complete", headers=headers)
        assert response.status_code == 404

        profile = client.get("/api/auth/profile", headers=headers).json()["data"]
        assert profile["balance"] == 10500

    def test_insufficient_balance(self, client, make_user, auth_headers):
        user = make_user(balance="3000")
        response = client.post("/api/trades/start", json={"amount": 5000}, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Insufficient balance"}

    def test_malformed_amount(self, client, make_user, auth_headers):
        user = make_user(balance="10000")
        response = client.post("/api/trades/start", json={"amount": "lots"}, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "amount"

    def test_graph_data(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get("/api/trades/graph/data", params={"days": 7}, headers=auth_headers(user))
        assert response.status_code == 200
        assert len(response.json()["data"]) == 7


class TestBotEndpoints:

    def test_plans_are_public(self, client):
        response = client.get("/api/bots/plans")
        assert response.status_code == 200
        assert [p["id"] for p in response.json()["data"]] == ["basic", "advanced", "pro"]

    def test_request_and_admin_approval(self, client, make_user, auth_headers):
        user = make_user()
        admin = make_user(admin=True)

        response = client.post("/api/bots/request-subscription", json={
            "planId": "advanced", "paymentProofUrl": "https://cdn.example.com/proof.png"
        }, headers=auth_headers(user))
        assert response.status_code == 201
        request_id = response.json()["data"]["requestId"]

        pending = client.get("/api/bots/admin/subscriptions", params={"status": "pending"},
                             headers=auth_headers(admin)).json()["data"]
        assert [s["id"] for s in pending] == [request_id]

        response = client.put(f"/api/bots/admin/subscriptions/{request_id}", json={
            "action": "approve", "adminNote": "Payment verified"
        }, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Bot subscription approved successfully"

        current = client.get("/api/bots/subscription", headers=auth_headers(user)).json()["data"]
        assert current["isActive"] is True
        assert current["botType"] == "advanced"

    def test_purchase_creates_subscription(self, client, make_user, auth_headers):
        user = make_user(balance="20000")

        response = client.post("/api/bots/purchase", json={"planId": "pro"}, headers=auth_headers(user))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Bot plan purchased successfully"
        assert body["data"]["botType"] == "pro"
        assert body["data"]["isActive"] is True

    def test_no_subscription(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get("/api/bots/subscription", headers=auth_headers(user))

        assert response.status_code == 404
        assert response.json()["data"] == {"isActive": False, "isPending": False}


class TestTransactionEndpoints:

    def test_deposit_approved_by_admin_credits_balance(self, client, make_user, auth_headers):
        user = make_user(balance="0")
        admin = make_user(admin=True)

        response = client.post("/api/transactions/deposit", json={
            "amount": 6000,
            "paymentMethodId": "manual",
            "transactionReference": "https://cdn.example.com/receipt.png",
        }, headers=auth_headers(user))
        assert response.status_code == 201
        deposit_id = response.json()["data"]["id"]

        response = client.put(f"/api/transactions/{deposit_id}/status", json={"status": "completed"},
                              headers=auth_headers(user))
        assert response.status_code == 403

        response = client.put(f"/api/transactions/{deposit_id}/status", json={"status": "completed"},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Transaction completed"

        profile = client.get("/api/auth/profile", headers=auth_headers(user)).json()["data"]
        assert profile["balance"] == 6000

    def test_deposit_out_of_range(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post("/api/transactions/deposit", json={
            "amount": 100, "paymentMethodId": "manual", "transactionReference": "https://x/y.png"
        }, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["message"] == "Deposit amount must be between 5,000 and 50,000 PKR"


class TestPaymentMethodEndpoints:

    def test_owner_sees_masked_admin_sees_full(self, client, make_user, auth_headers):
        user = make_user()
        admin = make_user(admin=True)

        response = client.post("/api/payments", json={
            "type": "easypaisa", "accountNumber": "03001234567", "accountTitle": "Ali Khan"
        }, headers=auth_headers(user))
        assert response.status_code == 201
        assert response.json()["data"]["isDefault"] is True

        own = client.get("/api/payments", headers=auth_headers(user)).json()["data"]
        assert own[0]["accountNumber"] == "0300******"

        for path in (f"/api/payments/user/{user.id}", f"/api/users/{user.id}/payment-methods"):
            full = client.get(path, headers=auth_headers(admin)).json()["data"]
            assert full[0]["accountNumber"] == "03001234567"

    def test_invalid_type(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post("/api/payments", json={
            "type": "paypal", "accountNumber": "x", "accountTitle": "Ali Khan"
        }, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid payment method type"


class TestBankEndpoints:

    def test_add_and_duplicate(self, client, make_user, auth_headers):
        user = make_user()
        payload = {"bankName": "HBL", "accountNumber": "1234567890", "accountHolder": "Sara Ahmed"}

        response = client.post("/api/banks", json=payload, headers=auth_headers(user))
        assert response.status_code == 201
        assert response.json()["data"]["accountNumber"] == "******7890"

        response = client.post("/api/banks", json=payload, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["message"] == "This bank account is already added to your profile"


class TestEventEndpoints:

    def test_public_feed_and_admin_writes(self, client, make_user, auth_headers):
        user = make_user()
        admin = make_user(admin=True)
        payload = {"title": "Eid maintenance", "description": "Withdrawals pause for 24 hours"}

        response = client.post("/api/events", json=payload, headers=auth_headers(user))
        assert response.status_code == 403

        response = client.post("/api/events", json=payload, headers=auth_headers(admin))
        assert response.status_code == 201
        event_id = response.json()["data"]["id"]

        feed = client.get("/api/events").json()["data"]
        assert [e["title"] for e in feed] == ["Eid maintenance"]

        client.put(f"/api/events/{event_id}", json={"isActive": False}, headers=auth_headers(admin))
        assert client.get("/api/events").json()["data"] == []


class TestAdminUserEndpoints:

    def test_admin_lists_regular_users_only(self, client, make_user, auth_headers):
        user = make_user()
        admin = make_user(admin=True)

        response = client.get("/api/users/all", headers=auth_headers(admin))
        assert response.status_code == 200
        assert [u["id"] for u in response.json()["data"]] == [user.id]

    @pytest.mark.parametrize("target", ["self", "other_admin"])
    def test_admins_cannot_be_deleted(self, client, make_user, auth_headers, target):
        admin = make_user(admin=True)
        victim = admin if target == "self" else make_user(admin=True)

        response = client.delete(f"/api/users/{victim.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["message"] == "Admin users cannot be deleted"
