from fastapi.testclient import TestClient

from sos_mecanicos.main import app

from tests.helpers import API, ApiTestCase, unique_plate


class TestCreateRequest(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client_user = self.sign_up("client")
        self.mechanic = self.sign_up_provider("mechanic")

    def test_new_request_is_pending(self):
        request = self.open_request(self.client_user, self.mechanic, estimated_price=150)
        self.assertEqual(request["status"], "pending")
        self.assertEqual(request["user_id"], self.client_user["id"])
        self.assertEqual(request["provider_id"], self.mechanic["id"])
        self.assertEqual(request["estimated_price"], 150.0)

    def test_provider_role_must_match_service_type(self):
        response = self.client.post(f"{API}/service-requests/", json={
            "service_type": "tow",
            "description": "Guincho até a oficina",
            "location": {"address": "Rua A, 1", "lat": 0, "lng": 0},
            "provider_id": self.mechanic["id"],
        }, headers=self.client_user["headers"])
        self.assertEqual(response.status_code, 404)

    def test_only_clients_open_requests(self):
        response = self.client.post(f"{API}/service-requests/", json={
            "service_type": "mechanic",
            "description": "Troca de óleo",
            "location": {"address": "Rua A, 1", "lat": 0, "lng": 0},
            "provider_id": self.mechanic["id"],
        }, headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 403)

    def test_vehicle_must_belong_to_client(self):
        stranger = self.sign_up("client")
        vehicle = self.client.post(f"{API}/vehicles/", json={
            "plate": unique_plate(), "model": "Gol", "year": 2012,
        }, headers=stranger["headers"]).json()
        response = self.client.post(f"{API}/service-requests/", json={
            "service_type": "mechanic",
            "description": "Barulho no motor",
            "location": {"address": "Rua B, 2", "lat": 0, "lng": 0},
            "provider_id": self.mechanic["id"],
            "vehicle_id": vehicle["id"],
        }, headers=self.client_user["headers"])
        self.assertEqual(response.status_code, 404)

    def test_tow_request_with_route(self):
        tow = self.sign_up_provider("tow")
        request = self.open_request(
            self.client_user, tow, service_type="tow",
            origin={"address": "Rod. Anhanguera km 20", "lat": -23.4, "lng": -46.8},
            destination={"address": "Oficina Central", "lat": -23.5, "lng": -46.6},
        )
        self.assertEqual(request["origin"]["address"], "Rod. Anhanguera km 20")
        self.assertEqual(request["destination"]["address"], "Oficina Central")


class TestVisibility(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.sign_up("client")
        self.bob = self.sign_up("client")
        self.mechanic = self.sign_up_provider("mechanic")
        self.other_mechanic = self.sign_up_provider("mechanic")
        self.request = self.open_request(self.alice, self.mechanic)

    def ids(self, user, status=None):
        params = {"status_filter": status} if status else {}
        response = self.client.get(f"{API}/service-requests/", params=params, headers=user["headers"])
        self.assertEqual(response.status_code, 200, response.text)
        return [r["id"] for r in response.json()]

    def test_client_and_assigned_provider_see_request(self):
        self.assertIn(self.request["id"], self.ids(self.alice))
        self.assertIn(self.request["id"], self.ids(self.mechanic))

    def test_others_do_not(self):
        self.assertNotIn(self.request["id"], self.ids(self.bob))
        self.assertNotIn(self.request["id"], self.ids(self.other_mechanic))
        for user in (self.bob, self.other_mechanic):
            response = self.client.get(f"{API}/service-requests/{self.request['id']}", headers=user["headers"])
            self.assertEqual(response.status_code, 404)

    def test_insurers_have_no_request_list(self):
        insurer = self.sign_up("insurer")
        response = self.client.get(f"{API}/service-requests/", headers=insurer["headers"])
        self.assertEqual(response.status_code, 403)

    def test_status_filter(self):
        second = self.open_request(self.alice, self.mechanic)
        self.client.post(f"{API}/service-requests/{second['id']}/cancel", headers=self.alice["headers"])

        everything = self.ids(self.alice)
        self.assertEqual(everything, self.ids(self.alice, "all"))
        self.assertEqual(sorted(everything), sorted([self.request["id"], second["id"]]))
        self.assertEqual(self.ids(self.alice, "pending"), [self.request["id"]])
        self.assertEqual(self.ids(self.alice, "cancelled"), [second["id"]])
        self.assertEqual(self.ids(self.alice, "completed"), [])

    def test_unknown_status_filter(self):
        response = self.client.get(
            f"{API}/service-requests/", params={"status_filter": "done"}, headers=self.alice["headers"]
        )
        self.assertEqual(response.status_code, 400)

    def test_newest_first(self):
        second = self.open_request(self.alice, self.mechanic)
        self.assertEqual(self.ids(self.alice)[0], second["id"])


class TestLifecycle(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.client_user = self.sign_up("client")
        self.mechanic = self.sign_up_provider("mechanic", stripe_account_id="acct_mechanic")
        self.request = self.open_request(self.client_user, self.mechanic, estimated_price=100)
        self.url = f"{API}/service-requests/{self.request['id']}"

    def test_accept_charges_and_moves_to_accepted(self):
        response = self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["status"], "accepted")

        intents = self.stripe.calls_to("POST", "/v1/payment_intents")
        transfers = self.stripe.calls_to("POST", "/v1/transfers")
        self.assertEqual(len(intents), 1)
        self.assertEqual(intents[0][2]["amount"], "10000")
        self.assertEqual(intents[0][2]["currency"], "brl")
        self.assertEqual(len(transfers), 1)
        self.assertEqual(transfers[0][2]["amount"], "9000")
        self.assertEqual(transfers[0][2]["destination"], "acct_mechanic")

    def test_accept_with_agreed_price(self):
        response = self.client.post(
            f"{self.url}/accept", json={"estimated_price": 250.5}, headers=self.mechanic["headers"]
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["estimated_price"], 250.5)
        transfer = self.stripe.calls_to("POST", "/v1/transfers")[0]
        self.assertEqual(transfer[2]["amount"], "22545")

    def test_accept_twice_conflicts(self):
        self.assertEqual(self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"]).status_code, 200)
        response = self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 409)
        self.assertEqual(len(self.stripe.calls_to("POST", "/v1/payment_intents")), 1)

    def test_accept_without_price(self):
        request = self.open_request(self.client_user, self.mechanic)
        response = self.client.post(
            f"{API}/service-requests/{request['id']}/accept", headers=self.mechanic["headers"]
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Informe o valor estimado do serviço.")

    def test_failed_payment_returns_request_to_pending(self):
        self.stripe.fail_transfers = True
        response = self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Erro ao processar pagamento")
        self.assertEqual(len(self.stripe.calls_to("POST", "/v1/payment_intents/")), 1)  # cancel

        current = self.client.get(self.url, headers=self.client_user["headers"]).json()
        self.assertEqual(current["status"], "pending")

    def test_failed_payment_restores_client_estimate(self):
        self.stripe.fail_transfers = True
        response = self.client.post(
            f"{self.url}/accept", json={"estimated_price": 5000}, headers=self.mechanic["headers"]
        )
        self.assertEqual(response.status_code, 500)
        current = self.client.get(self.url, headers=self.client_user["headers"]).json()
        self.assertEqual(current["status"], "pending")
        self.assertEqual(current["estimated_price"], 100.0)

    def test_unreadable_intent_releases_request(self):
        for body in ("html", "no_secret"):
            self.stripe.intent_body = body
            response = self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
            self.assertEqual(response.status_code, 500)
            self.assertEqual(response.json()["detail"], "Erro ao processar pagamento")
            current = self.client.get(self.url, headers=self.client_user["headers"]).json()
            self.assertEqual(current["status"], "pending")
        self.assertEqual(self.stripe.transfers(), [])

    def test_unexpected_error_releases_request(self):
        self.stripe.crash_on_intent = True
        raw_client = TestClient(app, raise_server_exceptions=False)
        response = raw_client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 500)
        current = self.client.get(self.url, headers=self.client_user["headers"]).json()
        self.assertEqual(current["status"], "pending")
        self.assertEqual(current["estimated_price"], 100.0)

    def test_provider_without_payment_account(self):
        mechanic = self.sign_up_provider("mechanic", stripe_account_id=None)
        request = self.open_request(self.client_user, mechanic, estimated_price=80)
        url = f"{API}/service-requests/{request['id']}"
        response = self.client.post(f"{url}/accept", headers=mechanic["headers"])
        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.stripe.calls, [])
        self.assertEqual(self.client.get(url, headers=mechanic["headers"]).json()["status"], "pending")

    def test_only_assigned_provider_can_accept(self):
        other = self.sign_up_provider("mechanic")
        response = self.client.post(f"{self.url}/accept", headers=other["headers"])
        self.assertEqual(response.status_code, 404)

    def test_full_lifecycle(self):
        headers = self.mechanic["headers"]
        self.assertEqual(self.client.post(f"{self.url}/accept", headers=headers).json()["status"], "accepted")
        self.assertEqual(self.client.post(f"{self.url}/start", headers=headers).json()["status"], "in_progress")
        completed = self.client.post(f"{self.url}/complete", headers=headers).json()
        self.assertEqual(completed["status"], "completed")
        self.assertIsNotNone(completed["completed_at"])

        response = self.client.post(f"{self.url}/cancel", headers=self.client_user["headers"])
        self.assertEqual(response.status_code, 409)

    def test_complete_requires_acceptance(self):
        response = self.client.post(f"{self.url}/complete", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 409)

    def test_reject_is_terminal(self):
        response = self.client.post(f"{self.url}/reject", headers=self.mechanic["headers"])
        self.assertEqual(response.json()["status"], "rejected")
        response = self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 409)

    def test_client_cannot_reject(self):
        response = self.client.post(f"{self.url}/reject", headers=self.client_user["headers"])
        self.assertEqual(response.status_code, 403)

    def test_either_party_can_cancel_pending(self):
        response = self.client.post(f"{self.url}/cancel", headers=self.mechanic["headers"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "cancelled")

    def test_cancel_after_accept_conflicts(self):
        self.client.post(f"{self.url}/accept", headers=self.mechanic["headers"])
        response = self.client.post(f"{self.url}/cancel", headers=self.client_user["headers"])
        self.assertEqual(response.status_code, 409)
