"""
Shared fixtures for the API tests: a fake payment provider and a base
TestCase that signs users up.
"""
import asyncio
import unittest
import uuid
from urllib.parse import parse_qs

import httpx
from fastapi.testclient import TestClient

from sos_mecanicos.database import AsyncSessionLocal
from sos_mecanicos.main import app
from sos_mecanicos.models.service_request import ServiceRequest
from sos_mecanicos.services.gateway import PaymentGateway, get_payment_gateway

API = "/api/v1"


def unique_email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@sosmecanicos.com.br"


def unique_plate() -> str:
    return f"SOS{uuid.uuid4().hex[:5].upper()}"


def update_request(request_id: int, **values) -> None:
    """Write request columns directly, bypassing the API."""
    async def run():
        async with AsyncSessionLocal() as session:
            request = await session.get(ServiceRequest, request_id)
            for key, value in values.items():
                setattr(request, key, value)
            await session.commit()
    asyncio.run(run())


def reversals(stripe) -> list:
    return [c for c in stripe.calls if c[0] == "POST" and c[1].endswith("/reversals")]


class FakeStripe:
    """In-memory stand-in for the payment provider's REST API."""

    def __init__(self):
        self.calls = []
        self.fail_transfers = False
        self.intent_status = "requires_payment_method"
        self.next_intent_id = None
        self.intent_body = "json"
        self.crash_on_intent = False
        self.intents = []

    def _form(self, request: httpx.Request) -> dict:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def calls_to(self, method: str, prefix: str) -> list:
        return [c for c in self.calls if c[0] == method and c[1].startswith(prefix)]

    def transfers(self) -> list:
        return [c for c in self.calls if c[0] == "POST" and c[1] == "/v1/transfers"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        form = self._form(request)
        self.calls.append((request.method, path, form))

        if request.method == "POST" and path == "/v1/payment_intents":
            if self.crash_on_intent:
                raise RuntimeError("payment provider client crashed")
            if self.intent_body == "html":
                return httpx.Response(200, text="<html>maintenance</html>")
            intent_id = self.next_intent_id or f"pi_{uuid.uuid4().hex[:12]}"
            self.next_intent_id = None
            self.intents.append(intent_id)
            if self.intent_body == "no_secret":
                return httpx.Response(200, json={"id": intent_id, "status": "requires_payment_method"})
            return httpx.Response(200, json={
                "id": intent_id,
                "client_secret": f"{intent_id}_secret",
                "amount": int(form["amount"]),
                "status": "requires_payment_method",
            })
        if request.method == "POST" and path == "/v1/transfers":
            if self.fail_transfers:
                return httpx.Response(400, json={"error": {"message": "No such destination"}})
            return httpx.Response(200, json={"id": f"tr_{uuid.uuid4().hex[:12]}", "amount": int(form["amount"])})
        if request.method == "POST" and path.startswith("/v1/transfers/") and path.endswith("/reversals"):
            return httpx.Response(200, json={"id": f"trr_{uuid.uuid4().hex[:12]}"})
        if request.method == "POST" and path.endswith("/cancel"):
            return httpx.Response(200, json={"id": path.split("/")[3], "status": "canceled"})
        if request.method == "GET" and path.startswith("/v1/payment_intents/"):
            intent_id = path.split("/")[3]
            return httpx.Response(200, json={
                "id": intent_id,
                "client_secret": f"{intent_id}_secret",
                "status": self.intent_status,
            })
        if request.method == "POST" and path == "/v1/refunds":
            return httpx.Response(200, json={"id": f"re_{uuid.uuid4().hex[:12]}", "status": "succeeded"})
        return httpx.Response(404, json={"error": {"message": "Unknown route"}})

    async def dependency(self):
        gateway = PaymentGateway(
            secret_key="sk_test_dummy",
            currency="brl",
            transport=httpx.MockTransport(self.handler),
        )
        try:
            yield gateway
        finally:
            await gateway.aclose()


class ApiTestCase(unittest.TestCase):
    """Runs the app in-process with the payment provider faked."""

    def setUp(self):
        self.stripe = FakeStripe()
        app.dependency_overrides[get_payment_gateway] = self.stripe.dependency
        self.client = TestClient(app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        app.dependency_overrides.clear()

    def sign_up(self, role: str, password: str = "segredo123", **extra) -> dict:
        """Create an account and return auth headers plus the session."""
        payload = {
            "email": unique_email(role),
            "password": password,
            "full_name": extra.pop("full_name", f"Usuário {role}"),
            "phone": "11999990000",
            "role": role,
        }
        response = self.client.post(f"{API}/auth/signup", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        user = {
            "headers": {"Authorization": f"Bearer {data['access_token']}"},
            "session": data["session"],
            "id": data["session"]["user_id"],
            "email": payload["email"],
            "password": password,
        }
        if extra:
            updated = self.client.put(f"{API}/profiles/me", json=extra, headers=user["headers"])
            self.assertEqual(updated.status_code, 200, updated.text)
        return user

    def sign_up_provider(self, role: str = "mechanic", stripe_account_id: str = "acct_provider") -> dict:
        if stripe_account_id:
            return self.sign_up(role, stripe_account_id=stripe_account_id)
        return self.sign_up(role)

    def open_request(self, client: dict, provider: dict, service_type: str = "mechanic", **fields) -> dict:
        payload = {
            "service_type": service_type,
            "description": "Carro não liga",
            "location": {"address": "Av. Paulista, 1000", "lat": -23.5614, "lng": -46.6559},
            "provider_id": provider["id"],
        }
        payload.update(fields)
        response = self.client.post(f"{API}/service-requests/", json=payload, headers=client["headers"])
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()
