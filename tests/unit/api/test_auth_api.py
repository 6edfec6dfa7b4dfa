"""
Tests for authentication endpoints.
"""

import re

API = "/api/v1"


async def register(client, **overrides):
    body = {
        "name": "Dewi Lestari",
        "email": "dewi@jobboard.dev",
        "password": "s3cret-pass",
        "role": "seeker",
    }
    body.update(overrides)
    return await client.post(f"{API}/auth/register", json=body)


class TestRegister:
    async def test_register_seeker(self, client):
        response = await register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert data["user"]["role"] == "seeker"
        assert "password" not in str(data["user"])

    async def test_token_works_immediately(self, client):
        token = (await register(client)).json()["access_token"]

        response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["email"] == "dewi@jobboard.dev"

    async def test_register_recruiter(self, client):
        response = await register(
            client, email="hr@acme.dev", role="recruiter", organization_name="Acme Corp"
        )

        assert response.status_code == 201
        assert response.json()["user"]["organization_name"] == "Acme Corp"

    async def test_recruiter_without_organization(self, client):
        response = await register(client, role="recruiter")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_role(self, client):
        response = await register(client, role="admin")

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.role"

    async def test_duplicate_email(self, client):
        await register(client)

        response = await register(client, email="DEWI@jobboard.dev")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"


class TestLogin:
    async def test_login(self, client):
        await register(client)

        response = await client.post(
            f"{API}/auth/token", json={"email": "dewi@jobboard.dev", "password": "s3cret-pass"}
        )

        assert response.status_code == 200
        assert response.json()["access_token"]

    async def test_wrong_password(self, client):
        await register(client)

        response = await client.post(
            f"{API}/auth/token", json={"email": "dewi@jobboard.dev", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHENTICATED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_password_not_echoed_in_errors(self, client):
        response = await client.post(f"{API}/auth/token", json={"email": "x@jobboard.dev"})

        assert response.status_code == 422
        assert "s3cret" not in response.text


class TestCurrentUser:
    async def test_anonymous(self, client):
        response = await client.get(f"{API}/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == {
            "code": "UNAUTHENTICATED",
            "message": "Authentication required",
            "path": f"{API}/auth/me",
            "method": "GET",
        }

    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    async def test_current_user(self, client, auth_headers, recruiter):
        response = await client.get(f"{API}/auth/me", headers=auth_headers(recruiter))

        assert response.status_code == 200
        assert response.json()["id"] == recruiter.id
        assert response.json()["role"] == "recruiter"


class TestEmailVerification:
    async def test_request_and_confirm(self, client, auth_headers, seeker, sender):
        response = await client.post(f"{API}/auth/verify-email/request", headers=auth_headers(seeker))
        assert response.status_code == 200

        body = sender.send_email.await_args.args[2]
        token = re.search(r"token=([A-Za-z0-9_\-]+)", body).group(1)

        response = await client.post(f"{API}/auth/verify-email/confirm", json={"token": token})

        assert response.status_code == 200
        assert response.json()["email_verified"] is True

        me = await client.get(f"{API}/auth/me", headers=auth_headers(seeker))
        assert me.json()["email_verified"] is True

    async def test_request_requires_login(self, client):
        response = await client.post(f"{API}/auth/verify-email/request")
        assert response.status_code == 401

    async def test_unknown_token(self, client):
        response = await client.post(f"{API}/auth/verify-email/confirm", json={"token": "nope"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_CODE"

    async def test_mail_failure(self, client, auth_headers, seeker, sender):
        sender.send_email.side_effect = OSError("smtp down")

        response = await client.post(f"{API}/auth/verify-email/request", headers=auth_headers(seeker))

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_ERROR"


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_ready(self, client):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}
