"""Authentication strategies guarding the koperasi spreadsheet routes.

Two deployments share one route table:

``SessionAuthGate``
    Email/password login checked against the Users collection. The signed-in
    identity (email, role, name) is serialised into the ``user_session``
    cookie. Spreadsheet calls use the service account credentials.

``OAuthAuthGate``
    Google OAuth2 consent. The token response is stored verbatim in the
    ``google_tokens`` cookie (base64 JSON) and every spreadsheet call runs with the
    user's own access token.

Neither strategy hashes, expires or rotates anything; the cookie's presence
and shape are the only checks.
"""

from __future__ import annotations

import abc
import base64
import binascii
import json
import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from google.oauth2.credentials import Credentials as UserCredentials
from google_auth_oauthlib.flow import Flow

from core.errors import ConfigurationMissing, InvalidCredentials, NotAuthenticated, NotFound, UpstreamFailure
from core.google_credentials import SCOPES, build_service_account_credentials
from core.permissions import writable_collections
from settings import AUTH_MODE_OAUTH, AUTH_MODE_SESSION, AppSettings

logger = logging.getLogger(__name__)

SESSION_COOKIE = "user_session"
TOKENS_COOKIE = "google_tokens"
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

Cookies = Mapping[str, str]
UserLoader = Callable[[], Iterable[Mapping[str, str]]]


class AuthGate(abc.ABC):
    """Common interface of the two authentication deployments."""

    mode: str = ""
    cookie_name: str = ""

    def __init__(self, settings: AppSettings) -> None:
        self._settings = settings

    def cookie_options(self) -> Dict[str, Any]:
        secure = self._settings.cookie_secure
        return {
            "httponly": True,
            "secure": secure,
            "samesite": "None" if secure else "Lax",
        }

    @abc.abstractmethod
    def is_authenticated(self, cookies: Cookies) -> bool:
        """Return ``True`` when the request carries a usable marker cookie."""

    @abc.abstractmethod
    def sheets_credentials(self, cookies: Cookies):
        """Return the Google credentials spreadsheet calls should run with."""

    def current_user(self, cookies: Cookies) -> Optional[Dict[str, str]]:
        return None

    def status(self, cookies: Cookies, collections: Iterable[str] = ()) -> Dict[str, Any]:
        if not self.is_authenticated(cookies):
            return {"isAuthenticated": False}
        payload: Dict[str, Any] = {"isAuthenticated": True}
        user = self.current_user(cookies)
        if user is not None:
            payload["user"] = user
            payload["permissions"] = writable_collections(user.get("role"), collections)
        return payload

    def require_authenticated(self, cookies: Cookies) -> None:
        if not self.is_authenticated(cookies):
            raise NotAuthenticated("Not authenticated")

    def login(self, email: str, password: str, load_users: UserLoader) -> Dict[str, str]:
        raise NotFound("Password login is not available in this deployment")

    def authorization_url(self) -> str:
        raise NotFound("OAuth login is not available in this deployment")

    def handle_callback(self, code: str) -> str:
        raise NotFound("OAuth login is not available in this deployment")


def encode_cookie_json(payload: Mapping[str, Any]) -> str:
    """Serialise ``payload`` into a cookie-safe (URL-safe base64) string."""

    raw = json.dumps(dict(payload), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cookie_json(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(raw.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


# ----------------------------------------------------------------------
# Session credential deployment
# ----------------------------------------------------------------------
def encode_session_marker(user: Mapping[str, str]) -> str:
    return encode_cookie_json(
        {"email": user.get("email", ""), "role": user.get("role", ""), "name": user.get("name", "")}
    )


def decode_session_marker(raw: Optional[str]) -> Optional[Dict[str, str]]:
    """Return the user encoded in ``raw`` or ``None`` if it is malformed."""

    payload = decode_cookie_json(raw)
    if payload is None:
        return None
    email = payload.get("email")
    if not isinstance(email, str) or not email:
        return None
    return {
        "email": email,
        "role": str(payload.get("role") or ""),
        "name": str(payload.get("name") or ""),
    }


class SessionAuthGate(AuthGate):
    mode = AUTH_MODE_SESSION
    cookie_name = SESSION_COOKIE

    def current_user(self, cookies: Cookies) -> Optional[Dict[str, str]]:
        return decode_session_marker(cookies.get(self.cookie_name))

    def is_authenticated(self, cookies: Cookies) -> bool:
        return self.current_user(cookies) is not None

    def sheets_credentials(self, cookies: Cookies):
        return build_service_account_credentials(
            email=self._settings.service_account_email,
            private_key=self._settings.private_key,
            key_file=self._settings.service_account_file or None,
        )

    def login(self, email: str, password: str, load_users: UserLoader) -> Dict[str, str]:
        """Return the identity of the first user row matching both fields.

        ``load_users`` reads the Users collection; it is only called by the
        deployment that supports password login.
        """

        for row in load_users():
            if row.get("Email") == email and row.get("Password") == password:
                logger.info("User %s signed in", email)
                return {"email": row.get("Email", ""), "role": row.get("Role", ""), "name": row.get("Name", "")}
        logger.info("Rejected login for %s", email)
        raise InvalidCredentials("Email atau Password salah")


# ----------------------------------------------------------------------
# OAuth delegated deployment
# ----------------------------------------------------------------------
class OAuthAuthGate(AuthGate):
    mode = AUTH_MODE_OAUTH
    cookie_name = TOKENS_COOKIE

    def __init__(self, settings: AppSettings, flow_factory: Optional[Callable[[], Flow]] = None) -> None:
        super().__init__(settings)
        self._flow_factory = flow_factory or self._build_flow

    def _client_config(self) -> Dict[str, Any]:
        if not self._settings.google_client_id or not self._settings.google_client_secret:
            raise ConfigurationMissing("GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET is not set in environment variables.")
        return {
            "web": {
                "client_id": self._settings.google_client_id,
                "client_secret": self._settings.google_client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self._settings.redirect_uri],
            }
        }

    def _build_flow(self) -> Flow:
        # The callback is handled by a fresh flow instance, so PKCE verifiers
        # cannot be carried between the two requests.
        return Flow.from_client_config(
            self._client_config(),
            scopes=list(SCOPES),
            redirect_uri=self._settings.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        flow = self._flow_factory()
        url, _state = flow.authorization_url(access_type="offline", prompt="consent")
        return url

    def handle_callback(self, code: str) -> str:
        """Exchange ``code`` and return the cookie value holding the tokens."""

        if not code:
            raise InvalidCredentials("Missing authorization code")
        flow = self._flow_factory()
        try:
            tokens = flow.fetch_token(code=code)
        except Exception as exc:  # pragma: no cover - oauth library guard
            logger.error("Error exchanging authorization code: %s", exc)
            raise UpstreamFailure(f"Authentication failed: {exc}") from exc
        return encode_cookie_json(tokens)

    def is_authenticated(self, cookies: Cookies) -> bool:
        return bool(cookies.get(self.cookie_name))

    def sheets_credentials(self, cookies: Cookies):
        tokens = decode_cookie_json(cookies.get(self.cookie_name))
        if not tokens or not tokens.get("access_token"):
            raise NotAuthenticated("Not authenticated")
        return UserCredentials(
            token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self._settings.google_client_id or None,
            client_secret=self._settings.google_client_secret or None,
            scopes=list(SCOPES),
        )


def create_auth_gate(settings: AppSettings, *, flow_factory: Optional[Callable[[], Flow]] = None) -> AuthGate:
    if settings.auth_mode == AUTH_MODE_OAUTH:
        return OAuthAuthGate(settings, flow_factory=flow_factory)
    return SessionAuthGate(settings)


__all__ = [
    "AuthGate",
    "OAuthAuthGate",
    "SESSION_COOKIE",
    "SessionAuthGate",
    "TOKENS_COOKIE",
    "create_auth_gate",
    "decode_cookie_json",
    "decode_session_marker",
    "encode_cookie_json",
    "encode_session_marker",
]
