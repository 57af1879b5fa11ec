"""Data models for ChatGPT authentication"""

import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from errors import MalformedResponse
from headers import USER_AGENT


@dataclass
class Credentials:
    """Access token for the ChatGPT backend

    Attributes:
        access_token: Bearer token for API authentication
        expires_at: Absolute expiry instant (timezone aware)
    """
    access_token: str
    expires_at: datetime.datetime

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        """Check whether the token must be replaced

        Args:
            now: Current time (defaults to the current UTC time)

        Returns:
            True if the token is empty or now is at or past the expiry
        """
        if not self.access_token:
            return True
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        return now >= self.expires_at

    @classmethod
    def from_session_payload(cls, payload: Dict[str, Any], step: str = "auth_session") -> "Credentials":
        """Build credentials from the /api/auth/session JSON body

        Args:
            payload: Decoded JSON object with accessToken and expires
            step: Step name reported in errors

        Returns:
            Credentials

        Raises:
            MalformedResponse: If a field is missing or the expiry is invalid
        """
        if not isinstance(payload, dict):
            raise MalformedResponse(step, "invalid json")

        access_token = payload.get("accessToken")
        if not access_token or not isinstance(access_token, str):
            raise MalformedResponse(step, "accessToken not found")

        expires = payload.get("expires")
        if not expires or not isinstance(expires, str):
            raise MalformedResponse(step, "expires not found")

        return cls(access_token=access_token, expires_at=parse_expiry(expires, step))


def parse_expiry(value: str, step: str = "auth_session") -> datetime.datetime:
    """Parse an ISO 8601 instant, accepting a trailing Z"""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedResponse(step, f"invalid expires value {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


@dataclass
class AuthContext:
    """State of a single login attempt

    Attributes:
        email: Account email address
        password: Account password
        user_agent: User agent used for every request of the attempt
        state: Identity provider state, set by the identifier step
        captcha_answer: Answer to the captcha, if one was shown
        proxy: Outbound proxy URL (None means environment proxies)
        cookies: Cookie jar of the browser session
    """
    email: str
    password: str
    user_agent: str = USER_AGENT
    state: str = ""
    captcha_answer: str = ""
    proxy: Optional[str] = None
    cookies: Optional[httpx.Cookies] = None

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks
        return (
            f"AuthContext(email={self.email!r}, state={self.state!r}, "
            f"proxy={self.proxy!r}, has_captcha_answer={bool(self.captcha_answer)})"
        )
