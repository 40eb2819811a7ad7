"""
HTTP surface: status codes, envelopes and bearer-token handling.
"""
from datetime import datetime, timedelta, timezone

import jwt

from conftest import API, REGISTRATION, auth_headers
from config import TestingConfig
from extensions import db
from models import Account


def set_balance(app, email, balance):
    with app.app_context():
        account = Account.find_by_email(email)
        account.balance = balance
        db.session.commit()


def signed_token(**claims):
    payload = {"id": 1, "email": "ada@example.com", "isPremium": False}
    payload.update(claims)
    return jwt.encode(payload, TestingConfig.JWT_SECRET, algorithm="HS256")


class TestRegisterEndpoint:

    def test_register_returns_token_that_works(self, client):
        response = client.post(f"{API}/register", json=REGISTRATION)
        body = response.get_json()

        assert response.status_code == 201
        assert body["success"] is True
        assert body["user"]["balance"] == 800
        assert body["user"]["level"] == 1
        assert body["user"]["streak"] == 1

        profile = client.get(f"{API}/profile", headers=auth_headers(body["token"]))
        assert profile.status_code == 200
        assert profile.get_json()["user"]["email"] == "ada@example.com"

    def test_duplicate_email(self, client, token):
        response = client.post(f"{API}/register", json=REGISTRATION)
        assert response.status_code == 400
        assert response.get_json()["success"] is False
        assert "already registered" in response.get_json()["message"]

    def test_validation_errors_listed(self, client):
        response = client.post(f"{API}/register", json={"email": "bad"})
        body = response.get_json()
        assert response.status_code == 400
        assert body["success"] is False
        assert len(body["errors"]) == 5

    def test_invalid_referral_code(self, client):
        response = client.post(f"{API}/register", json={**REGISTRATION, "referralCode": "NOPE"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid referral code. Please enter a valid code."

    def test_non_json_body(self, client):
        response = client.post(f"{API}/register", data="name=x", content_type="text/plain")
        assert response.status_code == 400


class TestLoginEndpoint:

    def test_login(self, client, token):
        response = client.post(f"{API}/login", json={"email": "ada@example.com", "password": "secret123"})
        body = response.get_json()
        assert response.status_code == 200
        assert body["token"]
        assert body["user"]["totalEarned"] == 800

    def test_malformed_email(self, client, token):
        response = client.post(f"{API}/login", json={"email": "ada-at-example", "password": "secret123"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid email or password"

    def test_bad_credentials(self, client, token):
        response = client.post(f"{API}/login", json={"email": "ada@example.com", "password": "nope-nope"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid email or password"

    def test_deactivated_account(self, app, client, token):
        from manage_accounts import set_active

        set_active("ada@example.com", False, app=app)

        response = client.post(f"{API}/login", json={"email": "ada@example.com", "password": "secret123"})
        assert response.status_code == 403
        assert response.get_json()["success"] is False


class TestBearerAuth:

    def test_missing_token(self, client):
        response = client.get(f"{API}/profile")
        assert response.status_code == 401
        assert response.get_json() == {"success": False, "message": "Access denied. No token provided."}

    def test_garbage_token(self, client):
        response = client.get(f"{API}/dashboard", headers=auth_headers("not-a-jwt"))
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid token"

    def test_expired_token(self, client, token):
        expired = signed_token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
        response = client.get(f"{API}/profile", headers=auth_headers(expired))
        assert response.status_code == 400

    def test_token_signed_with_other_secret(self, client, token):
        forged = jwt.encode({"id": 1}, "someone-elses-secret-0123456789abcdef012345", algorithm="HS256")
        response = client.get(f"{API}/profile", headers=auth_headers(forged))
        assert response.status_code == 400

    def test_token_for_missing_account(self, client):
        response = client.get(f"{API}/profile", headers=auth_headers(signed_token(id=999)))
        assert response.status_code == 404
        assert response.get_json()["message"] == "User not found"


class TestProfileEndpoints:

    def test_profile_hides_secrets_and_ledger(self, client, headers):
        user = client.get(f"{API}/profile", headers=headers).get_json()["user"]
        assert "password" not in user
        assert "passwordHash" not in user
        assert "transactions" not in user
        assert "completedTasks" not in user
        assert user["referralCode"] == "EARN800"

    def test_update_profile(self, client, headers):
        response = client.put(f"{API}/profile", headers=headers, json={
            "name": "Ada O.",
            "settings": {"twoFactorAuth": True},
        })
        body = response.get_json()
        assert response.status_code == 200
        assert body["user"]["name"] == "Ada O."
        assert body["user"]["phone"] == REGISTRATION["phone"]
        assert body["user"]["settings"] == {
            "notifications": True,
            "autoStartTasks": False,
            "twoFactorAuth": True,
        }

    def test_change_password(self, client, headers):
        wrong = client.post(f"{API}/change-password", headers=headers, json={
            "currentPassword": "guess-again", "newPassword": "brandnew1",
        })
        assert wrong.status_code == 400

        ok = client.post(f"{API}/change-password", headers=headers, json={
            "currentPassword": "secret123", "newPassword": "brandnew1",
        })
        assert ok.status_code == 200

        login = client.post(f"{API}/login", json={"email": "ada@example.com", "password": "brandnew1"})
        assert login.status_code == 200

    def test_track_whatsapp_join(self, client, headers):
        for _ in range(3):
            assert client.post(f"{API}/track-whatsapp-join", headers=headers).status_code == 200
        user = client.get(f"{API}/profile", headers=headers).get_json()["user"]
        assert user["whatsappGroupJoined"] is True
        assert user["groupJoins"] == 3


class TestEarningEndpoints:

    def test_complete_task_once(self, client, headers):
        payload = {"taskId": "t-1", "taskTitle": "Follow page", "reward": 200}
        first = client.post(f"{API}/complete-task", headers=headers, json=payload)
        body = first.get_json()
        assert first.status_code == 200
        assert body["reward"] == 200
        assert body["balance"] == 1000
        assert body["xp"] == 20

        second = client.post(f"{API}/complete-task", headers=headers, json=payload)
        assert second.status_code == 400
        assert second.get_json()["message"] == "Task already completed"

    def test_oversized_reward_is_a_client_error(self, client, headers):
        response = client.post(f"{API}/complete-task", headers=headers, json={
            "taskId": "t-1", "taskTitle": "Follow page", "reward": 10 ** 19,
        })
        assert response.status_code == 400
        assert response.get_json()["success"] is False

        profile = client.get(f"{API}/profile", headers=headers).get_json()["user"]
        assert profile["balance"] == 800

    def test_upgrade_then_conflict(self, client, headers):
        first = client.post(f"{API}/upgrade", headers=headers, json={"transactionProof": "receipt-9"})
        body = first.get_json()
        assert first.status_code == 200
        assert body["bonus"] == 1000
        assert body["balance"] == 1800
        assert body["premiumExpires"]

        second = client.post(f"{API}/upgrade", headers=headers, json={"transactionProof": "receipt-10"})
        assert second.status_code == 400

        profile = client.get(f"{API}/profile", headers=headers).get_json()["user"]
        assert profile["balance"] == 1800

    def test_upgrade_requires_proof(self, client, headers):
        response = client.post(f"{API}/upgrade", headers=headers, json={})
        assert response.status_code == 400

    def test_withdraw_requires_premium(self, app, client, headers):
        set_balance(app, "ada@example.com", 50000)
        response = client.post(f"{API}/withdraw", headers=headers, json={
            "bankName": "Access", "accountNumber": "0011223344", "amount": 20000,
        })
        assert response.status_code == 403

    def test_withdraw_flow(self, app, client, headers):
        client.post(f"{API}/upgrade", headers=headers, json={"transactionProof": "receipt-9"})
        payload = {"bankName": "Access", "accountNumber": "0011223344", "amount": 20000}

        too_much = client.post(f"{API}/withdraw", headers=headers, json=payload)
        assert too_much.status_code == 400
        assert too_much.get_json()["message"] == "Insufficient balance"

        set_balance(app, "ada@example.com", 30000)
        too_little = client.post(f"{API}/withdraw", headers=headers, json={**payload, "amount": 5000})
        assert too_little.status_code == 400

        ok = client.post(f"{API}/withdraw", headers=headers, json=payload)
        body = ok.get_json()
        assert ok.status_code == 200
        assert body["balance"] == 10000
        assert body["reference"].startswith("WITHDRAW_")

        dashboard = client.get(f"{API}/dashboard", headers=headers).get_json()["dashboard"]
        latest = dashboard["recentTransactions"][0]
        assert latest["type"] == "withdrawal"
        assert latest["amount"] == -20000
        assert latest["status"] == "pending"
        assert latest["reference"] == body["reference"]

    def test_dashboard(self, client, headers):
        for n in range(11):
            client.post(f"{API}/complete-task", headers=headers, json={
                "taskId": f"t-{n}", "taskTitle": f"Task {n}", "reward": 10,
            })

        response = client.get(f"{API}/dashboard", headers=headers)
        dashboard = response.get_json()["dashboard"]

        assert response.status_code == 200
        assert len(dashboard["recentTransactions"]) == 10
        assert dashboard["user"]["tasksCompleted"] == 11
        assert dashboard["stats"]["xpNeeded"] == 100
        assert dashboard["stats"]["successRate"] == 68


class TestAppEnvelope:

    def test_health(self, client):
        response = client.get("/health")
        body = response.get_json()
        assert response.status_code == 200
        assert body["status"] == "OK"
        assert body["uptime"] >= 0

    def test_cross_origin_requests_allowed(self, client):
        response = client.get("/health", headers={"Origin": "https://app.example.com"})
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_preflight(self, client):
        response = client.options(f"{API}/login", headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        })
        assert response.status_code == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_security_headers(self, client):
        for response in (client.get("/health"), client.get(f"{API}/nope")):
            assert response.headers["X-Content-Type-Options"] == "nosniff"
            assert response.headers["X-Frame-Options"] == "SAMEORIGIN"

    def test_unknown_route(self, client):
        response = client.get(f"{API}/nope")
        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Endpoint not found"}

    def test_wrong_method(self, client):
        response = client.get(f"{API}/withdraw")
        assert response.status_code == 405
        assert response.get_json()["success"] is False

    def test_unexpected_error_is_hidden(self, app, client, headers, monkeypatch):
        def boom(account_id):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(app.extensions["account_lifecycle"], "get_dashboard", boom)

        response = client.get(f"{API}/dashboard", headers=headers)
        assert response.status_code == 500
        assert response.get_json() == {"success": False, "message": "Something went wrong!"}
