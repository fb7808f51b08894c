"""Account flows: login with optional 2FA, signup, email verification and
password reset.

Forms are validated client-side before any request is made; see
:mod:`journal_client.core.schemas`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from journal_client.api import JournalApiClient
from journal_client.cache import QueryCache, keys
from journal_client.core.exceptions import ApiError, AuthenticationError
from journal_client.core.models import User
from journal_client.core.schemas import LoginForm, ResetPasswordForm, SignupForm, validate
from journal_client.storage.client_state import RESET_CODE_KEY, StateCorruptedError

logger = logging.getLogger(__name__)


class AuthFlow:
    def __init__(self, api: JournalApiClient, cache: QueryCache | None = None) -> None:
        self.api = api
        self.cache = cache or QueryCache()

    @property
    def signed_in(self) -> bool:
        return self.api.token is not None

    def _store_session(self, body: Any) -> None:
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise ApiError(200, "Response carried no session token")
        self.api.store_token(str(token))
        # Cached reads belong to whoever was signed in before
        self.cache.clear()

    async def login(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Sign in. Returns ``None`` when the server sent a 2FA code instead."""
        form = validate(LoginForm, {"email": email, "password": password})
        body = await self.api.login(form.email, form.password)
        if body is None:
            logger.info("Login requires second factor")
            return None
        self._store_session(body)
        logger.info("Logged in")
        return body

    async def verify_2fa(self, email: str, code: str) -> Dict[str, Any]:
        body = await self.api.verify_2fa(email, code)
        self._store_session(body)
        logger.info("Logged in with second factor")
        return body

    async def signup(
        self, email: str, username: str, password: str, confirm_password: str
    ) -> Any:
        form = validate(
            SignupForm,
            {
                "email": email,
                "username": username,
                "password": password,
                "confirm_password": confirm_password,
            },
        )
        result = await self.api.signup(form.email, form.username, form.password)
        logger.info("Account created; awaiting email verification")
        return result

    async def verify_email(self, email: str, code: str) -> Any:
        return await self.api.verify_email(email, code)

    async def resend_verification(self, email: str) -> None:
        await self.api.resend_verification(email)

    # ------------------------------------------------------------------
    # password reset
    async def forgot_password(self, email: str) -> None:
        await self.api.forgot_password(email)

    def remember_reset_code(self, code: str) -> None:
        """Keep the emailed code until the new password is submitted."""
        self.api.state.set(RESET_CODE_KEY, code)

    async def reset_password(self, email: str, password: str, confirm_password: str) -> None:
        try:
            code = self.api.state.get(RESET_CODE_KEY)
        except StateCorruptedError:
            code = None
        form = validate(
            ResetPasswordForm,
            {
                "email": email,
                "verification_code": code or "",
                "password": password,
                "confirm_password": confirm_password,
            },
        )
        await self.api.reset_password(form.email, form.verification_code, form.password)
        self.api.state.delete(RESET_CODE_KEY)
        logger.info("Password reset")

    # ------------------------------------------------------------------
    # session
    def logout(self) -> None:
        self.api.clear_token()
        self.cache.clear()
        logger.info("Logged out")

    def handle_oauth_callback(self, url: str) -> bool:
        """Store the ``token`` query parameter of an OAuth redirect URL."""
        tokens = parse_qs(urlsplit(url).query).get("token")
        if not tokens or not tokens[0]:
            return False
        self.api.store_token(tokens[0])
        self.cache.clear()
        return True

    async def current_user(self) -> User:
        if not self.signed_in:
            raise AuthenticationError(401, "Not signed in")
        return await self.cache.fetch(keys.USER, self.api.get_user)


__all__ = ["AuthFlow"]
