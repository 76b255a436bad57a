import uuid
from unittest.mock import patch


def unique_email() -> str:
    return f"player{str(uuid.uuid4())[:8]}@example.com"


def wrong_code(code: str) -> str:
    return "100000" if code != "100000" else "100001"


class TestSendOtp:
    def test_send_otp_success(self, client, notifier):
        email = unique_email()

        response = client.post("/api/v1/auth/send-otp", json={"email": email})

        assert response.status_code == 200, response.json()
        payload = response.json()
        assert payload["status"] == "success"
        assert payload["message"] == "OTP sent successfully"
        assert payload["data"] == {"email": email}
        assert notifier.sent[-1]["address"] == email
        assert notifier.sent[-1]["ttl_minutes"] == 5
        # The code itself is never part of the response
        assert notifier.last_code(email) not in response.text

    def test_send_otp_twice_is_rate_limited(self, client):
        email = unique_email()
        assert client.post("/api/v1/auth/send-otp", json={"email": email}).status_code == 200

        response = client.post("/api/v1/auth/send-otp", json={"email": email})

        assert response.status_code == 429
        payload = response.json()
        assert payload["status"] == "error"
        assert "wait" in payload["message"].lower()
        assert 0 < payload["data"]["retry_after"] <= 60
        assert response.headers["Retry-After"] == str(payload["data"]["retry_after"])

    def test_send_otp_delivery_failure(self, client, notifier):
        notifier.succeed = False
        email = unique_email()

        response = client.post("/api/v1/auth/send-otp", json={"email": email})

        assert response.status_code == 502
        assert "failed to send" in response.json()["message"].lower()

        # Nothing left behind: verifying reports no live code
        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": email, "otp": notifier.last_code(email)}
        )
        assert response.status_code == 400
        assert "expired" in response.json()["message"].lower()

    def test_send_otp_rejects_invalid_email(self, client):
        response = client.post("/api/v1/auth/send-otp", json={"email": "not-an-email"})

        assert response.status_code == 422
        assert response.json()["message"] == "Validation failed"


class TestVerifyOtp:
    def test_verify_otp_success(self, client, notifier):
        email = unique_email()
        client.post("/api/v1/auth/send-otp", json={"email": email})

        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": email, "otp": notifier.last_code(email)}
        )

        assert response.status_code == 200, response.json()
        payload = response.json()
        assert payload["message"] == "OTP verified successfully"
        assert payload["data"] == {"email": email, "is_verified": True}

    def test_verify_otp_wrong_code_reports_remaining_attempts(self, client, notifier):
        email = unique_email()
        client.post("/api/v1/auth/send-otp", json={"email": email})
        bad = wrong_code(notifier.last_code(email))

        remaining = []
        for _ in range(3):
            response = client.post("/api/v1/auth/verify-otp", json={"email": email, "otp": bad})
            assert response.status_code == 400
            remaining.append(response.json()["data"]["remaining_attempts"])
        assert remaining == [2, 1, 0]

        response = client.post("/api/v1/auth/verify-otp", json={"email": email, "otp": bad})
        assert response.status_code == 400
        assert "too many failed attempts" in response.json()["message"].lower()

    def test_verify_otp_without_request(self, client):
        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": unique_email(), "otp": "123456"}
        )

        assert response.status_code == 400
        assert "request a new one" in response.json()["message"].lower()

    def test_verify_otp_rejects_malformed_code(self, client):
        response = client.post(
            "/api/v1/auth/verify-otp", json={"email": unique_email(), "otp": "12ab"}
        )

        assert response.status_code == 422


class TestSignup:
    def signup_payload(self, email):
        return {"name": "Asha Rao", "email": email, "password": "Courts2025"}

    def test_signup_issues_signup_code(self, client, notifier):
        email = unique_email()

        response = client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        assert response.status_code == 201, response.json()
        user = response.json()["data"]["user"]
        assert user["email"] == email
        assert user["role"] == "user"
        assert user["is_verified"] is False
        assert "password" not in response.text
        assert notifier.sent[-1]["address"] == email
        assert notifier.sent[-1]["ttl_minutes"] == 10

    def test_signup_duplicate_email(self, client):
        email = unique_email()
        client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        response = client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        assert response.status_code == 409
        assert "already registered" in response.json()["message"].lower()

    def test_signup_retry_after_delivery_failure(self, client, notifier):
        email = unique_email()
        notifier.succeed = False

        failed = client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        assert failed.status_code == 502
        assert failed.json()["status"] == "error"

        notifier.succeed = True
        retried = client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        assert retried.status_code == 201, retried.json()
        assert notifier.sent[-1]["address"] == email

    def test_signup_then_verify_marks_user_verified(self, client, notifier):
        from sqlalchemy import select

        from app.features.auth.models.user import User

        email = unique_email()
        client.post("/api/v1/auth/signup", json=self.signup_payload(email))

        with patch("app.features.otp.routes.otp.send_welcome_email") as mock_welcome:
            response = client.post(
                "/api/v1/auth/verify-otp",
                json={"email": email, "otp": notifier.last_code(email)},
            )

        assert response.status_code == 200, response.json()
        mock_welcome.assert_called_once_with(to_email=email, name="Asha Rao")

        async def load_user():
            async with client.app.state.database.session() as db:
                result = await db.execute(select(User).where(User.email == email))
                return result.scalar_one()

        user = client.portal.call(load_user)
        assert user.is_verified is True
        assert user.verified_at is not None

    def test_signup_rejects_weak_password(self, client):
        payload = self.signup_payload(unique_email())
        payload["password"] = "onlyletters"

        response = client.post("/api/v1/auth/signup", json=payload)

        assert response.status_code == 422
