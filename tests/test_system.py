from tests.helpers import ApiTestCase


class TestSystem(ApiTestCase):

    def test_health_check(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["docs"], "/docs")

    def test_request_id_is_echoed(self):
        response = self.client.get("/health", headers={"X-Request-ID": "abc123"})
        self.assertEqual(response.headers["X-Request-ID"], "abc123")

    def test_request_id_is_generated(self):
        response = self.client.get("/health")
        self.assertTrue(response.headers["X-Request-ID"])

    def test_public_config(self):
        response = self.client.get("/api/v1/config/public")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["currency"], "brl")
