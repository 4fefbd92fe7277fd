"""
MediCamp Backend - HTTP API Tests
===================================

What:  End-to-end tests through the ASGI app: session cookie, routing,
       status codes and the error envelope.
How:   HTTPX AsyncClient + ASGITransport against a per-test SQLite database;
       the payment provider is mocked.

What we test:
    ✅ Sign-in flow: /jwt cookie, save user, role lookup, logout
    ✅ Registration lifecycle over HTTP, including 409 on duplicates
    ✅ 401 without a cookie, 403 for participants on organizer routes
    ✅ Error envelope carries error code and request id
    ✅ Health endpoint and X-Total-Count header
    ✅ Rate limit cannot be dodged with junk cookies or X-Forwarded-For
"""

from unittest.mock import AsyncMock, patch

import pytest
from starlette.requests import Request
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from medicamp.config import settings
from medicamp.main import create_app
from medicamp.middleware.rate_limit import RateLimitMiddleware
from medicamp.services.payment_service import payment_service

ALICE = "alice@example.com"
ORGANIZER = "organizer@example.com"

REGISTRATION_BODY = {
    "participant_email": ALICE,
    "participant_name": "Alice Smith",
    "age": 34,
    "phone_number": "+1-555-0100",
    "gender": "female",
    "emergency_contact": "Carol Smith +1-555-0199",
}


class TestSession:

    @pytest.mark.asyncio
    async def test_jwt_sets_httponly_cookie(self, test_client):
        response = await test_client.post("/jwt", json={"email": ALICE})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith("token=")
        assert "httponly" in cookie

    @pytest.mark.asyncio
    async def test_jwt_rejects_invalid_email(self, test_client):
        response = await test_client.post("/jwt", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, test_client):
        response = await test_client.get("/logout")

        assert response.status_code == 200
        assert "max-age=0" in response.headers["set-cookie"].lower()

    @pytest.mark.asyncio
    async def test_save_user_then_role(self, test_client, engine, auth_headers):
        headers = auth_headers(ALICE)

        created = await test_client.post(f"/users/{ALICE}", json={"name": "Alice"}, headers=headers)
        repeated = await test_client.post(f"/users/{ALICE}", json={"name": "Alice"}, headers=headers)
        role = await test_client.get(f"/users/{ALICE}/role", headers=headers)

        assert created.status_code == 201
        assert repeated.status_code == 200
        assert repeated.json()["message"] == "user already exist"
        assert role.json() == {"email": ALICE, "role": "participant"}

    @pytest.mark.asyncio
    async def test_invalid_cookie_is_401(self, test_client, engine):
        response = await test_client.get(
            f"/users/{ALICE}/role", headers={"Cookie": "token=forged"}
        )

        body = response.json()
        assert response.status_code == 401
        assert body["error"] == "unauthenticated"
        assert body["message"] == "unauthorized access"
        assert body["request_id"] == response.headers["X-Request-ID"]


class TestRegistrationFlow:

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, test_client, seeded, auth_headers):
        camp_id = str(seeded["camp_id"])
        alice = auth_headers(ALICE)
        organizer = auth_headers(ORGANIZER)

        registered = await test_client.post(
            f"/camps/{camp_id}/registrations", json=REGISTRATION_BODY, headers=alice
        )
        assert registered.status_code == 201
        registration = registered.json()
        assert registration["confirmation_status"] == "Pending"
        assert registration["payment_status"] == "Pay"

        duplicate = await test_client.post(
            f"/camps/{camp_id}/registrations", json=REGISTRATION_BODY, headers=alice
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"] == "duplicate_registration"

        camp = await test_client.get(f"/camps/{camp_id}")
        assert camp.json()["participant_count"] == 1

        with patch.object(
            payment_service, "_provider", AsyncMock(create_payment_intent=AsyncMock(return_value="cs_1"))
        ):
            intent = await test_client.post(
                "/payments/intent", json={"camp_id": camp_id}, headers=alice
            )
        assert intent.status_code == 200
        assert intent.json() == {"client_secret": "cs_1", "amount": 2550, "currency": "usd"}

        paid = await test_client.patch(
            f"/camps/{camp_id}/registrations/me/payment",
            json={"transaction_id": "pi_1"},
            headers=alice,
        )
        assert paid.status_code == 200
        assert (paid.json()["confirmation_status"], paid.json()["payment_status"]) == (
            "Processing",
            "Paid",
        )

        confirmed = await test_client.patch(
            f"/registrations/{registration['id']}/confirmation",
            json={"participant_email": ALICE, "status": "Confirmed"},
            headers=organizer,
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["confirmation_status"] == "Confirmed"

        listing = await test_client.get("/registrations/paid", headers=organizer)
        assert listing.status_code == 200
        assert listing.headers["X-Total-Count"] == "1"
        [item] = listing.json()["items"]
        assert item["id"] == registration["id"]
        assert item["camp"]["name"] == "Eye Care Camp"

        history = await test_client.get(f"/registrations/participant/{ALICE}", headers=alice)
        assert [r["camp"]["id"] for r in history.json()] == [camp_id]

        withdrawn = await test_client.delete(f"/camps/{camp_id}/registrations/me", headers=alice)
        assert withdrawn.json() == {"acknowledged": True, "deleted_count": 1}
        camp = await test_client.get(f"/camps/{camp_id}")
        assert camp.json()["participant_count"] == 0

    @pytest.mark.asyncio
    async def test_register_requires_session(self, test_client, seeded):
        response = await test_client.post(
            f"/camps/{seeded['camp_id']}/registrations", json=REGISTRATION_BODY
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_confirm_payment_without_registration(self, test_client, seeded, auth_headers):
        response = await test_client.patch(
            f"/camps/{seeded['camp_id']}/registrations/me/payment", headers=auth_headers(ALICE)
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_registered"

    @pytest.mark.asyncio
    async def test_participant_cannot_administer(self, test_client, seeded, auth_headers):
        alice = auth_headers(ALICE)
        registered = await test_client.post(
            f"/camps/{seeded['camp_id']}/registrations", json=REGISTRATION_BODY, headers=alice
        )
        registration_id = registered.json()["id"]

        confirm = await test_client.patch(
            f"/registrations/{registration_id}/confirmation",
            json={"participant_email": ALICE},
            headers=alice,
        )
        delete = await test_client.delete(f"/registrations/{registration_id}", headers=alice)
        paid = await test_client.get("/registrations/paid", headers=alice)

        assert confirm.status_code == 403
        assert delete.status_code == 403
        assert paid.status_code == 403
        assert confirm.json()["error"] == "forbidden"

        history = await test_client.get(f"/registrations/participant/{ALICE}", headers=alice)
        assert len(history.json()) == 1

    @pytest.mark.asyncio
    async def test_unsupported_confirmation_target_is_409(self, test_client, seeded, auth_headers):
        registered = await test_client.post(
            f"/camps/{seeded['camp_id']}/registrations",
            json=REGISTRATION_BODY,
            headers=auth_headers(ALICE),
        )

        response = await test_client.patch(
            f"/registrations/{registered.json()['id']}/confirmation",
            json={"participant_email": ALICE, "status": "Cancelled"},
            headers=auth_headers(ORGANIZER),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    @pytest.mark.asyncio
    async def test_participant_counter_endpoint(self, test_client, seeded, auth_headers):
        url = f"/camps/{seeded['free_camp_id']}/participants"
        alice = auth_headers(ALICE)

        below_zero = await test_client.patch(url, json={"direction": "decrease"}, headers=alice)
        up = await test_client.patch(url, json={"direction": "increase"}, headers=alice)
        down = await test_client.patch(url, json={"direction": "decrease"}, headers=alice)

        assert below_zero.status_code == 409
        assert below_zero.json()["error"] == "invalid_count_adjustment"
        assert up.json()["participant_count"] == 1
        assert down.json()["participant_count"] == 0


class TestCampRoutes:

    @pytest.mark.asyncio
    async def test_list_sets_total_count_header(self, test_client, seeded):
        response = await test_client.get("/camps", params={"sort": "fees_asc"})

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "2"
        assert [c["name"] for c in response.json()["camps"]] == ["Dental Checkup", "Eye Care Camp"]

    @pytest.mark.asyncio
    async def test_organizer_creates_camp(self, test_client, seeded, auth_headers):
        body = {
            "name": "Camp A",
            "location": "Sylhet",
            "date": "2026-12-01T09:00:00+00:00",
            "fees": 50,
            "healthcare_professional": "Dr. Hasan",
        }

        as_participant = await test_client.post("/camps", json=body, headers=auth_headers(ALICE))
        as_organizer = await test_client.post("/camps", json=body, headers=auth_headers(ORGANIZER))

        assert as_participant.status_code == 403
        assert as_organizer.status_code == 201
        assert as_organizer.json()["participant_count"] == 0

    @pytest.mark.asyncio
    async def test_unknown_camp_is_404(self, test_client, seeded):
        response = await test_client.get("/camps/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestRateLimit:
    """The limiter keys on a verified session or the socket address, nothing a client can vary."""

    LIMIT = 10

    async def _statuses(self, test_client, header_sets):
        statuses = []
        with patch.object(settings, "rate_limit_requests", self.LIMIT):
            for headers in header_sets:
                response = await test_client.get("/camps", headers=headers)
                statuses.append(response.status_code)
        return statuses

    @pytest.mark.asyncio
    async def test_rotating_junk_cookies_share_one_budget(self, test_client, engine):
        statuses = await self._statuses(
            test_client, [{"Cookie": f"token=garbage{i}"} for i in range(self.LIMIT + 2)]
        )

        assert statuses[: self.LIMIT] == [200] * self.LIMIT
        assert statuses[self.LIMIT:] == [429, 429]

    @pytest.mark.asyncio
    async def test_forwarded_for_is_not_trusted_by_default(self, test_client, engine):
        statuses = await self._statuses(
            test_client, [{"X-Forwarded-For": f"203.0.113.{i}"} for i in range(self.LIMIT + 2)]
        )

        assert statuses[self.LIMIT:] == [429, 429]

    @pytest.mark.asyncio
    async def test_each_signed_in_user_has_own_budget(self, test_client, engine, auth_headers):
        alice = await self._statuses(test_client, [auth_headers(ALICE)] * (self.LIMIT + 1))
        bob = await self._statuses(test_client, [auth_headers("bob@example.com")])

        assert alice[-1] == 429
        assert bob == [200]

    def test_client_key(self, auth_headers):
        def request(headers):
            return Request({
                "type": "http",
                "method": "GET",
                "path": "/camps",
                "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
                "client": ("198.51.100.7", 50000),
            })

        forged = request({"Cookie": "token=forged", "X-Forwarded-For": "203.0.113.9"})
        signed_in = request(auth_headers(ALICE))

        assert RateLimitMiddleware.client_key(forged) == "ip:198.51.100.7"
        assert RateLimitMiddleware.client_key(signed_in) == f"user:{ALICE}"

    def test_proxy_headers_only_for_configured_proxies(self):
        plain = create_app()
        with patch.object(settings, "trusted_proxies", "10.0.0.1, 10.0.0.2"):
            proxied = create_app()

        assert ProxyHeadersMiddleware not in [m.cls for m in plain.user_middleware]
        assert ProxyHeadersMiddleware in [m.cls for m in proxied.user_middleware]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        with patch.object(
            payment_service, "_provider", AsyncMock(health_check=AsyncMock(return_value="available"))
        ):
            response = await test_client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["payments"] == "available"
