"""Microsoft identity platform adapter - OAuth device code flow (RFC 8628)."""

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

import requests

from ttt.config import TOKEN_FILE
from ttt.errors import AuthCancelledError, AuthError, StoreIOError

logger = logging.getLogger(__name__)

LOGIN_BASE = "https://login.microsoftonline.com"
DEFAULT_SCOPES = [
    "https://graph.microsoft.com/Calendars.Read",
    "offline_access",
]
DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"

DEFAULT_POLL_INTERVAL = 5
SLOW_DOWN_STEP = 5
# Tokens this close to expiry are treated as expired.
EXPIRY_MARGIN = timedelta(seconds=10)

_PENDING_ERRORS = ("authorization_pending", "slow_down")


class AuthState(Enum):
    """Where an authentication attempt currently stands."""

    NO_TOKEN = "no_token"
    AWAITING_USER_AUTHORIZATION = "awaiting_user_authorization"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class Token:
    """An OAuth access/refresh token pair."""

    access_token: str = ""
    token_type: str = "Bearer"
    refresh_token: str = ""
    expiry: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """Non-empty and not expiring within the safety margin."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now + EXPIRY_MARGIN < self.expiry

    def to_dict(self) -> dict:
        data = {"access_token": self.access_token, "token_type": self.token_type}
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        if self.expiry:
            data["expiry"] = self.expiry.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        if not isinstance(data, dict):
            raise TypeError("token file must contain a JSON object")
        expiry = None
        if data.get("expiry"):
            expiry = datetime.fromisoformat(data["expiry"])
            # Year 1 is the zero time written by other oauth2 clients.
            if expiry.year <= 1:
                expiry = None
            elif expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
        return cls(
            access_token=data.get("access_token") or "",
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token") or "",
            expiry=expiry,
        )

    @classmethod
    def from_response(cls, data: dict, now: datetime | None = None) -> "Token":
        """Build from a token endpoint success response."""
        now = now or datetime.now(timezone.utc)
        expires_in = int(data.get("expires_in") or 0)
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token") or "",
            expiry=now + timedelta(seconds=expires_in) if expires_in > 0 else None,
        )


@dataclass
class DeviceCode:
    """Device authorization response."""

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int = 0
    interval: int = DEFAULT_POLL_INTERVAL
    message: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "DeviceCode":
        return cls(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=data.get("verification_uri") or data.get("verification_url", ""),
            expires_in=int(data.get("expires_in") or 0),
            interval=int(data.get("interval") or 0),
            message=data.get("message", ""),
        )


def load_token(path: Path) -> Token | None:
    """Load a saved token. Missing or unreadable files count as no token."""
    try:
        raw = path.read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Cannot read token file {path} ({e}); re-authenticating")
        return None

    try:
        return Token.from_dict(json.loads(raw))
    except (ValueError, TypeError) as e:
        logger.warning(f"Ignoring corrupt token file {path} ({e}); re-authenticating")
        return None


def save_token(path: Path, token: Token) -> None:
    """Atomically write a token file readable only by the owner."""
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise StoreIOError(f"creating auth directory {path.parent}: {e}", path=path) from e

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, suffix=".tmp", delete=False
        ) as tmp:
            tmp_name = tmp.name
            os.chmod(tmp_name, 0o600)
            tmp.write(json.dumps(token.to_dict(), indent=2))
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StoreIOError(f"saving token file {path}: {e}", path=path) from e


class DeviceCodeAuth:
    """
    Device code OAuth client for Microsoft Graph.

    Loads a persisted token, refreshes it when it expires, and falls back to
    the interactive device code flow when there is nothing usable. Callers
    run ensure_valid_token() before every authorized request.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        token_path: Path | str | None = None,
        scopes: list[str] | None = None,
        session: requests.Session | None = None,
        cancel: threading.Event | None = None,
        on_device_code: Callable[[DeviceCode], None] | None = None,
        timeout: int = 30,
    ):
        if not tenant_id or not client_id:
            raise AuthError("tenant_id and client_id are required")
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.token_path = Path(token_path).expanduser() if token_path else TOKEN_FILE
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.cancel = cancel or threading.Event()
        self.on_device_code = on_device_code
        self.timeout = timeout
        self._session = session or requests.Session()
        self.state = AuthState.NO_TOKEN
        self.token: Token | None = None
        self._loaded = False

    @property
    def device_code_url(self) -> str:
        return f"{LOGIN_BASE}/{self.tenant_id}/oauth2/v2.0/devicecode"

    @property
    def token_url(self) -> str:
        return f"{LOGIN_BASE}/{self.tenant_id}/oauth2/v2.0/token"

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        self.token = load_token(self.token_path)

    def _store(self, token: Token) -> Token:
        self.token = token
        self.state = AuthState.AUTHENTICATED
        try:
            save_token(self.token_path, token)
        except StoreIOError as e:
            logger.warning(f"Could not save token: {e}")
        return token

    def ensure_valid_token(self) -> Token:
        """Return a usable token, refreshing or re-authenticating as needed."""
        self._load()
        token = self.token

        if token and token.is_valid():
            self.state = AuthState.AUTHENTICATED
            return token

        if token and token.refresh_token:
            try:
                refreshed = self.refresh(token.refresh_token)
            except AuthError as e:
                logger.warning(f"Token refresh failed ({e}), re-authenticating...")
            else:
                return self._store(refreshed)

        self.token = None
        self.state = AuthState.NO_TOKEN
        return self.authenticate()

    def authenticate(self) -> Token:
        """Run the full device code flow and persist the result."""
        device_code = self.request_device_code()
        self.state = AuthState.AWAITING_USER_AUTHORIZATION
        if self.on_device_code:
            self.on_device_code(device_code)
        else:
            logger.warning(
                device_code.message
                or f"Open {device_code.verification_uri} and enter code {device_code.user_code}"
            )
        token = self.poll_for_token(device_code)
        return self._store(token)

    def request_device_code(self) -> DeviceCode:
        """Start the device authorization flow."""
        try:
            resp = self._session.post(
                self.device_code_url,
                data={"client_id": self.client_id, "scope": " ".join(self.scopes)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.state = AuthState.FAILED
            raise AuthError(f"device auth request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            self.state = AuthState.FAILED
            raise AuthError(
                f"decoding device code response ({resp.status_code}): {resp.text}"
            ) from e

        if not isinstance(data, dict):
            self.state = AuthState.FAILED
            raise AuthError(f"unexpected device code response ({resp.status_code}): {resp.text}")

        if resp.status_code != 200 or "error" in data:
            self.state = AuthState.FAILED
            raise AuthError(
                f"device auth request failed ({resp.status_code}): "
                f"{data.get('error', '')} {data.get('error_description', '')}".strip()
            )

        try:
            return DeviceCode.from_api(data)
        except (KeyError, TypeError, ValueError) as e:
            self.state = AuthState.FAILED
            raise AuthError(f"incomplete device code response: {e}") from e

    def poll_for_token(self, device_code: DeviceCode) -> Token:
        """
        Poll the token endpoint until the user authorizes the device.

        Waits on self.cancel between polls; setting it or pressing Ctrl-C
        aborts without storing anything.
        """
        interval = device_code.interval if device_code.interval > 0 else DEFAULT_POLL_INTERVAL
        deadline = None
        if device_code.expires_in > 0:
            deadline = time.monotonic() + device_code.expires_in

        while True:
            try:
                cancelled = self.cancel.wait(interval)
            except KeyboardInterrupt as e:
                self.state = AuthState.NO_TOKEN
                raise AuthCancelledError("device authentication interrupted") from e
            if cancelled:
                self.state = AuthState.NO_TOKEN
                raise AuthCancelledError("device authentication cancelled")

            if deadline is not None and time.monotonic() >= deadline:
                self.state = AuthState.FAILED
                raise AuthError("device code expired before authorization completed")

            try:
                token, pending = self._token_request(
                    {
                        "grant_type": DEVICE_CODE_GRANT,
                        "device_code": device_code.device_code,
                        "client_id": self.client_id,
                    }
                )
            except AuthError:
                self.state = AuthState.FAILED
                raise

            if pending == "slow_down":
                interval += SLOW_DOWN_STEP
                logger.debug(f"Server asked to slow down; polling every {interval}s")
                continue
            if pending:
                continue
            return token

    def refresh(self, refresh_token: str) -> Token:
        """Exchange a refresh token for a new access token."""
        token, pending = self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "scope": " ".join(self.scopes),
            }
        )
        if pending:
            raise AuthError(f"unexpected {pending} response to refresh")
        # Servers that don't rotate refresh tokens omit them.
        if not token.refresh_token:
            token.refresh_token = refresh_token
        return token

    def _token_request(self, params: dict) -> tuple[Token | None, str | None]:
        """POST to the token endpoint. Returns (token, None) or (None, pending_code)."""
        try:
            resp = self._session.post(self.token_url, data=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise AuthError(f"token request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise AuthError(f"decoding token response ({resp.status_code}): {resp.text}") from e

        if not isinstance(data, dict):
            raise AuthError(f"unexpected token response ({resp.status_code}): {resp.text}")

        error = data.get("error")
        if error in _PENDING_ERRORS:
            return None, error
        if error:
            description = data.get("error_description", "")
            raise AuthError(f"token error: {error}" + (f" ({description})" if description else ""))
        if resp.status_code != 200 or not data.get("access_token"):
            raise AuthError(f"token request failed ({resp.status_code}): {resp.text}")

        try:
            return Token.from_response(data), None
        except (TypeError, ValueError) as e:
            raise AuthError(f"invalid token response: {e}") from e

    def logout(self) -> bool:
        """Delete the persisted token. Returns True if a file was removed."""
        self.token = None
        self._loaded = True
        self.state = AuthState.NO_TOKEN
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreIOError(f"removing token file {self.token_path}: {e}", path=self.token_path) from e
        return True
