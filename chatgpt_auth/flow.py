"""Email/password login against the ChatGPT web app

The login is a linear state machine over nine HTTP transactions, split in
two halves so a human can answer the captcha in between:

    begin():  INIT -> LANDED -> HAVE_CSRF -> HAVE_AUTH0_URL -> IDENTIFIED
    finish(): IDENTIFIED -> USERNAME_POSTED -> PASSWORD_POSTED -> RESUMED
              -> CALLED_BACK -> DONE

Each transition is one request through a BrowserSession, which tests
replace with a session over httpx.MockTransport.
"""

import enum
import json
import logging
from typing import Optional
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from errors import (
    ChatRelayError,
    InvalidCredentials,
    MalformedResponse,
    PreconditionViolation,
    RateLimited,
    UnexpectedStatus,
)
from headers import build_headers
from settings import AUTH0_BASE_URL, CHATGPT_BASE_URL
from .browser import BrowserSession
from .captcha import Captcha
from .models import AuthContext, Credentials


logger = logging.getLogger(__name__)

LOGIN_PAGE_PATH = "/auth/login"
CSRF_PATH = "/api/auth/csrf"
SIGNIN_PATH = "/api/auth/signin/auth0"
SESSION_PATH = "/api/auth/session"
OAUTH_ERROR_PATH = "/api/auth/error?error=OAuthSignin"
IDENTIFIER_PATH = "/u/login/identifier"
PASSWORD_PATH = "/u/login/password"
RESUME_PATH = "/authorize/resume"

# Feature flags the login form posts with the username
IDENTIFIER_FLAGS = (
    ("js-available", "false"),
    ("webauthn-available", "true"),
    ("is-brave", "false"),
    ("webauthn-platform-available", "true"),
    ("action", "default"),
)


class AuthState(enum.Enum):
    """Position of an AuthFlow in the login state machine"""
    INIT = "init"
    LANDED = "landed"
    HAVE_CSRF = "have_csrf"
    HAVE_AUTH0_URL = "have_auth0_url"
    IDENTIFIED = "identified"
    USERNAME_POSTED = "username_posted"
    PASSWORD_POSTED = "password_posted"
    RESUMED = "resumed"
    CALLED_BACK = "called_back"
    DONE = "done"
    FAILED = "failed"


def _query_param(url: str, name: str) -> str:
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else ""


def _dig(data, *keys):
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _json_body(response: httpx.Response, step: str) -> dict:
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponse(step, "invalid json") from e
    if not isinstance(payload, dict):
        raise MalformedResponse(step, "invalid json")
    return payload


class AuthFlow:
    """Drives one login attempt from the landing page to an access token"""

    def __init__(
        self,
        context: AuthContext,
        session: Optional[BrowserSession] = None,
        base_url: str = CHATGPT_BASE_URL,
        auth0_url: str = AUTH0_BASE_URL,
    ):
        """Initialize the flow

        Args:
            context: Credentials and state of this attempt
            session: Browser session (created from the context if None)
            base_url: ChatGPT web app origin
            auth0_url: Identity provider origin
        """
        self.context = context
        self.session = session or BrowserSession(proxy=context.proxy, user_agent=context.user_agent)
        self.context.cookies = self.session.cookies
        self.base_url = base_url.rstrip("/")
        self.auth0_url = auth0_url.rstrip("/")
        self.state = AuthState.INIT

    def _headers(self, profile: str, referer: Optional[str] = None, origin: Optional[str] = None):
        return build_headers(profile, user_agent=self.context.user_agent, origin=origin, referer=referer)

    def _advance(self, expected: AuthState, target: AuthState) -> None:
        if self.state is not expected:
            raise PreconditionViolation(
                f"login step out of order: expected {expected.value}, at {self.state.value}"
            )
        self.state = target

    async def begin(self) -> Captcha:
        """Run the login up to the point where a captcha may be shown

        If no captcha is returned, finish() can be called with an empty
        answer; otherwise the captcha must be answered first.

        Returns:
            The captcha to answer (empty when none is required)

        Raises:
            ChatRelayError: On any failed step; the session is closed
        """
        completed = False
        try:
            if not self.context.email or not self.context.password:
                raise InvalidCredentials("invalid credentials: email and password are required")

            logger.info(f"Starting authentication process for {self.context.email}")

            await self._get_login_page()
            logger.info("Got main page")

            csrf_token = await self._get_csrf()
            logger.info("Got CSRF token")

            authorize_url = await self._post_login_prompt(csrf_token)
            logger.info("Got auth0 URL")

            state, captcha = await self._authorize(authorize_url)
            completed = True
        except ChatRelayError as e:
            logger.error(f"Failed to authenticate: {e}")
            raise
        finally:
            if not completed:
                self.state = AuthState.FAILED
                await self.session.aclose()

        self.context.state = state
        logger.info(f"Got auth0 authorization (captcha required: {captcha.available})")
        return captcha

    async def finish(self, captcha_answer: str = "") -> Credentials:
        """Complete the login

        Args:
            captcha_answer: Answer to the captcha returned by begin()

        Returns:
            Credentials for the ChatGPT backend

        Raises:
            PreconditionViolation: If begin() did not complete successfully
            ChatRelayError: On any failed step
        """
        if not self.context.state or self.state is not AuthState.IDENTIFIED:
            raise PreconditionViolation(
                "state unavailable, make sure begin was called and did not "
                "return an error before calling finish"
            )

        self.context.captcha_answer = captcha_answer
        first_state = self.context.state

        try:
            # Redirect following adds a second referer and reorders headers on
            # these three requests, which the provider rejects
            async with self.session.redirects_disabled():
                await self._post_username(first_state, captcha_answer)
                logger.info("Username sent")

                new_state = await self._post_password(first_state)
                logger.info("Password sent")

                next_url = await self._resume(new_state, first_state)
                logger.info("Session resumed")

            await self._callback(next_url)
            logger.info("Logged in")

            credentials = await self._get_session()
            logger.debug(f"Got credentials expiring at {credentials.expires_at.isoformat()}")
            return credentials
        except ChatRelayError as e:
            logger.error(f"Failed to finish authentication: {e}")
            raise
        finally:
            if self.state is not AuthState.DONE:
                self.state = AuthState.FAILED
            await self.session.aclose()

    # Step 1
    async def _get_login_page(self) -> None:
        step = "get_login_page"
        response = await self.session.get(
            f"{self.base_url}{LOGIN_PAGE_PATH}",
            self._headers("landing"),
        )
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)
        self._advance(AuthState.INIT, AuthState.LANDED)

    # Step 2
    async def _get_csrf(self) -> str:
        step = "get_csrf"
        response = await self.session.get(
            f"{self.base_url}{CSRF_PATH}",
            self._headers("csrf", referer=f"{self.base_url}{LOGIN_PAGE_PATH}"),
        )
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)

        token = _json_body(response, step).get("csrfToken")
        if not token or not isinstance(token, str):
            raise MalformedResponse(step, "csrfToken not found")

        self._advance(AuthState.LANDED, AuthState.HAVE_CSRF)
        return token

    # Step 3
    async def _post_login_prompt(self, csrf_token: str) -> str:
        step = "post_login_prompt"
        response = await self.session.post(
            f"{self.base_url}{SIGNIN_PATH}",
            self._headers(
                "login_prompt",
                origin=self.base_url,
                referer=f"{self.base_url}{LOGIN_PAGE_PATH}",
            ),
            data={"callbackUrl": "/", "csrfToken": csrf_token, "json": "true"},
            params={"prompt": "login"},
        )

        if response.status_code == 400:
            raise UnexpectedStatus(step, 400, "bad request")
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)

        next_url = _json_body(response, step).get("url")
        if not next_url or not isinstance(next_url, str):
            raise MalformedResponse(step, "url not found")
        if next_url == f"{self.base_url}{OAUTH_ERROR_PATH}" or "error" in next_url:
            raise RateLimited(f"{step}: invalid url returned, possibly rate limited")

        self._advance(AuthState.HAVE_CSRF, AuthState.HAVE_AUTH0_URL)
        return next_url

    # Step 4
    async def _authorize(self, authorize_url: str):
        step = "authorize"
        # Follows the redirect to the identifier page
        response = await self.session.get(
            authorize_url,
            self._headers("authorize", referer=f"{self.base_url}/"),
        )
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)

        state = _query_param(str(response.url), "state")
        if not state:
            raise MalformedResponse(step, "state not found")

        soup = BeautifulSoup(response.text, "html.parser")
        image = soup.find("img", attrs={"alt": "captcha"})
        captcha = Captcha(image.get("src", "")) if image is not None else Captcha("")
        if captcha.available:
            logger.info("Captcha detected")

        self._advance(AuthState.HAVE_AUTH0_URL, AuthState.IDENTIFIED)
        return state, captcha

    # Step 5
    async def _post_username(self, state: str, captcha_answer: str) -> None:
        step = "post_username"
        payload = [("state", state), ("username", self.context.email)]
        payload.extend(IDENTIFIER_FLAGS)
        if captcha_answer:
            payload.append(("captcha", captcha_answer))

        response = await self.session.post(
            f"{self.auth0_url}{IDENTIFIER_PATH}",
            self._headers(
                "credentials",
                origin=self.auth0_url,
                referer=f"{self.auth0_url}{IDENTIFIER_PATH}?state={state}",
            ),
            data=payload,
            params={"state": state},
        )
        if response.status_code != 302:
            raise UnexpectedStatus(step, response.status_code)
        self._advance(AuthState.IDENTIFIED, AuthState.USERNAME_POSTED)

    # Step 6
    async def _post_password(self, state: str) -> str:
        step = "post_password"
        response = await self.session.post(
            f"{self.auth0_url}{PASSWORD_PATH}",
            self._headers(
                "credentials",
                origin=self.auth0_url,
                referer=f"{self.auth0_url}{PASSWORD_PATH}?state={state}",
            ),
            data=[
                ("state", state),
                ("username", self.context.email),
                ("password", self.context.password),
                ("action", "default"),
            ],
            params={"state": state},
        )
        if response.status_code != 302:
            raise InvalidCredentials(
                f"{step}: invalid status code returned ({response.status_code}), "
                "password incorrect or wrong captcha"
            )

        location = response.headers.get("location")
        if not location:
            raise MalformedResponse(step, "status found but no location")

        new_state = _query_param(urljoin(str(response.request.url), location), "state")
        if not new_state:
            raise MalformedResponse(step, "state not found in location")

        self._advance(AuthState.USERNAME_POSTED, AuthState.PASSWORD_POSTED)
        return new_state

    # Step 7
    async def _resume(self, new_state: str, old_state: str) -> str:
        step = "resume_session"
        response = await self.session.get(
            f"{self.auth0_url}{RESUME_PATH}",
            self._headers("resume", referer=f"{self.auth0_url}{PASSWORD_PATH}?state={old_state}"),
            params={"state": new_state},
        )
        if response.status_code != 302:
            raise UnexpectedStatus(step, response.status_code)

        location = response.headers.get("location")
        if not location:
            raise MalformedResponse(step, "couldn't find redirect url")

        self._advance(AuthState.PASSWORD_POSTED, AuthState.RESUMED)
        return urljoin(str(response.request.url), location)

    # Step 8
    async def _callback(self, callback_url: str) -> str:
        step = "auth_callback"
        # Expected chain: 302 to "/", 307 to "/chat", then 200
        response = await self.session.get(callback_url, self._headers("callback"))
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)

        soup = BeautifulSoup(response.text, "html.parser")
        script = soup.find("script", id="__NEXT_DATA__")
        if script is None:
            raise MalformedResponse(step, "__NEXT_DATA__ not found")

        try:
            next_data = json.loads(script.get_text())
        except json.JSONDecodeError as e:
            raise MalformedResponse(step, "invalid __NEXT_DATA__ json") from e

        token = _dig(next_data, "props", "pageProps", "accessToken")
        if not token or not isinstance(token, str):
            raise MalformedResponse(step, "couldn't find token")

        self._advance(AuthState.RESUMED, AuthState.CALLED_BACK)
        return token

    # Step 9
    async def _get_session(self) -> Credentials:
        step = "auth_session"
        response = await self.session.get(
            f"{self.base_url}{SESSION_PATH}",
            self._headers("session", referer=f"{self.base_url}/chat"),
        )
        if response.status_code != 200:
            raise UnexpectedStatus(step, response.status_code)

        credentials = Credentials.from_session_payload(_json_body(response, step), step)
        self._advance(AuthState.CALLED_BACK, AuthState.DONE)
        return credentials
