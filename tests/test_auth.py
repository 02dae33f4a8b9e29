import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from sos_mecanicos.auth import LoginRateLimiter
from sos_mecanicos.database import AsyncSessionLocal
from sos_mecanicos.errors import RateLimited
from sos_mecanicos.models.profile import Profile

from tests.helpers import API, ApiTestCase, unique_email


def count_profiles(email: str) -> int:
    async def run():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(func.count(Profile.id)).where(Profile.email == email))
            return result.scalar_one()
    return asyncio.run(run())


def get_reset_token(email: str) -> str:
    async def run():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Profile.reset_token).where(Profile.email == email))
            return result.scalar_one()
    return asyncio.run(run())


def expire_reset_token(email: str) -> None:
    async def run():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(Profile).where(Profile.email == email))
            profile = result.scalar_one()
            profile.reset_token_expiration = datetime.now(timezone.utc) - timedelta(minutes=1)
            await session.commit()
    asyncio.run(run())


class TestSignUp(ApiTestCase):

    def test_sign_up_returns_session_for_role(self):
        user = self.sign_up("mechanic", full_name="Oficina do Zé")
        session = user["session"]
        self.assertEqual(session["role"], "mechanic")
        self.assertEqual(session["display_name"], "Oficina do Zé")
        self.assertEqual(session["dashboard_path"], "/dashboard/mechanic")

    def test_already_registered_email(self):
        user = self.sign_up("client")
        response = self.client.post(f"{API}/auth/signup", json={
            "email": user["email"],
            "password": "outrasenha",
            "full_name": "Outra Pessoa",
            "role": "client",
        })
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Este email já está cadastrado.")
        self.assertEqual(count_profiles(user["email"]), 1)

    def test_unknown_role_rejected(self):
        response = self.client.post(f"{API}/auth/signup", json={
            "email": unique_email("admin"),
            "password": "segredo123",
            "full_name": "Admin",
            "role": "admin",
        })
        self.assertEqual(response.status_code, 422)


class TestLogin(ApiTestCase):

    def test_login_with_valid_credentials(self):
        user = self.sign_up("tow")
        response = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": user["password"]})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn("access_token", data)
        self.assertEqual(data["session"]["user_id"], user["id"])

    def test_wrong_password(self):
        user = self.sign_up("client")
        response = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": "errada"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Email ou senha incorretos.")

    def test_repeated_failures_are_rate_limited(self):
        user = self.sign_up("client")
        for _ in range(3):
            response = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": "errada"})
            self.assertEqual(response.status_code, 401)
        response = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": user["password"]})
        self.assertEqual(response.status_code, 429)
        self.assertIn("Muitas tentativas", response.json()["detail"])


class TestLoginRateLimiter(unittest.TestCase):

    def test_blocks_after_max_failures(self):
        limiter = LoginRateLimiter(max_attempts=2, window_seconds=60)
        limiter.record_failure("ana@sosmecanicos.com.br")
        limiter.check("ana@sosmecanicos.com.br")
        limiter.record_failure("ana@sosmecanicos.com.br")
        with self.assertRaises(RateLimited):
            limiter.check("ana@sosmecanicos.com.br")

    def test_checks_alone_leave_no_entries(self):
        limiter = LoginRateLimiter(max_attempts=3, window_seconds=60)
        for i in range(50):
            limiter.check(f"user{i}@sosmecanicos.com.br")
        self.assertEqual(limiter.tracked, 0)

    def test_expired_windows_are_dropped(self):
        limiter = LoginRateLimiter(max_attempts=3, window_seconds=0)
        limiter.record_failure("ana@sosmecanicos.com.br")
        self.assertEqual(limiter.tracked, 1)
        limiter.check("ana@sosmecanicos.com.br")
        self.assertEqual(limiter.tracked, 0)

    def test_reset_forgets_identifier(self):
        limiter = LoginRateLimiter(max_attempts=3, window_seconds=60)
        limiter.record_failure("ana@sosmecanicos.com.br")
        limiter.reset("ana@sosmecanicos.com.br")
        self.assertEqual(limiter.tracked, 0)


class TestSession(ApiTestCase):

    def test_session_requires_token(self):
        response = self.client.get(f"{API}/auth/session")
        self.assertEqual(response.status_code, 401)

    def test_session_reflects_profile(self):
        user = self.sign_up("insurer")
        response = self.client.get(f"{API}/auth/session", headers=user["headers"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["dashboard_path"], "/dashboard/insurer")

    def test_logout_revokes_token(self):
        user = self.sign_up("client")
        response = self.client.post(f"{API}/auth/logout", headers=user["headers"])
        self.assertEqual(response.status_code, 204)
        response = self.client.get(f"{API}/auth/session", headers=user["headers"])
        self.assertEqual(response.status_code, 401)

    def test_garbage_token(self):
        response = self.client.get(f"{API}/auth/session", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(response.status_code, 401)


class TestPasswords(ApiTestCase):

    def test_forgot_password_answer_does_not_leak_accounts(self):
        user = self.sign_up("client")
        known = self.client.post(f"{API}/auth/forgot-password", json={"email": user["email"]})
        unknown = self.client.post(f"{API}/auth/forgot-password", json={"email": unique_email("ghost")})
        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())

    def test_reset_password_flow(self):
        user = self.sign_up("client")
        self.client.post(f"{API}/auth/forgot-password", json={"email": user["email"]})
        token = get_reset_token(user["email"])
        self.assertTrue(token)

        response = self.client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "novasenha1"})
        self.assertEqual(response.status_code, 200)

        login = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": "novasenha1"})
        self.assertEqual(login.status_code, 200)

        reused = self.client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "outra123"})
        self.assertEqual(reused.status_code, 400)

    def test_expired_reset_token(self):
        user = self.sign_up("client")
        self.client.post(f"{API}/auth/forgot-password", json={"email": user["email"]})
        token = get_reset_token(user["email"])
        expire_reset_token(user["email"])
        response = self.client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "novasenha1"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Link de redefinição inválido ou expirado.")

    def test_update_password_checks_current(self):
        user = self.sign_up("client")
        wrong = self.client.post(
            f"{API}/auth/update-password",
            json={"current_password": "errada", "new_password": "novasenha1"},
            headers=user["headers"],
        )
        self.assertEqual(wrong.status_code, 401)

        ok = self.client.post(
            f"{API}/auth/update-password",
            json={"current_password": user["password"], "new_password": "novasenha1"},
            headers=user["headers"],
        )
        self.assertEqual(ok.status_code, 200)
        login = self.client.post(f"{API}/auth/login", json={"email": user["email"], "password": "novasenha1"})
        self.assertEqual(login.status_code, 200)
