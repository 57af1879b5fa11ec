"""Access token manager for the ChatGPT backend"""

import datetime
import logging
from typing import Awaitable, Callable, Optional

import httpx

from chatgpt_auth import AuthContext, AuthFlow, BrowserSession, Captcha, Credentials
from errors import CaptchaRequired, MalformedResponse, NetworkFailure, TokenRefreshFailed
from headers import USER_AGENT
from settings import AUTH0_BASE_URL, CHATGPT_BASE_URL

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__Secure-next-auth.session-token"
CF_CLEARANCE_COOKIE = "cf_clearance"
SESSION_PATH = "/api/auth/session"

CaptchaSolver = Callable[[Captcha], Awaitable[str]]
Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class TokenManager:
    """Keeps a valid access token, refreshing it when it expires

    A session token is exchanged through the session endpoint when one is
    configured; otherwise the full email/password login runs again.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session_token: str = "",
        cf_clearance: str = "",
        user_agent: str = "",
        email: str = "",
        password: str = "",
        proxy: Optional[str] = None,
        captcha_solver: Optional[CaptchaSolver] = None,
        browser_transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = CHATGPT_BASE_URL,
        auth0_url: str = AUTH0_BASE_URL,
        clock: Clock = _utcnow,
    ):
        """Initialize token manager

        Args:
            http_client: Client used for the session endpoint
            session_token: Value of the session-token cookie
            cf_clearance: Cloudflare clearance cookie value
            user_agent: User agent the clearance cookie was issued to
            email: Account email for the login flow
            password: Account password for the login flow
            proxy: Outbound proxy for the login flow
            captcha_solver: Async callable answering a login captcha
            browser_transport: Transport for the login flow (tests)
            base_url: ChatGPT web app origin
            auth0_url: Identity provider origin
            clock: Returns the current UTC time
        """
        self.http_client = http_client
        self.session_token = session_token
        self.cf_clearance = cf_clearance
        self.user_agent = user_agent
        self.email = email
        self.password = password
        self.proxy = proxy
        self.captcha_solver = captcha_solver
        self.browser_transport = browser_transport
        self.base_url = base_url.rstrip("/")
        self.auth0_url = auth0_url.rstrip("/")
        self.clock = clock
        self.credentials = Credentials(access_token="", expires_at=clock())

    def needs_refresh(self) -> bool:
        return self.credentials.is_expired(self.clock())

    async def get_access_token(self) -> str:
        """Return a valid access token, refreshing it first if needed

        Raises:
            ChatRelayError: Refresh errors are propagated unchanged
        """
        if self.needs_refresh():
            if self.session_token:
                self.credentials = await self.refresh_with_session_token()
            else:
                self.credentials = await self.refresh_with_login()
        return self.credentials.access_token

    async def refresh_with_session_token(self) -> Credentials:
        """Exchange the session-token cookie for an access token"""
        cookies = {SESSION_COOKIE: self.session_token}
        if self.cf_clearance:
            cookies[CF_CLEARANCE_COOKIE] = self.cf_clearance

        headers = {}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        logger.debug("Refreshing access token with session token")
        try:
            request = self.http_client.build_request(
                "GET",
                f"{self.base_url}{SESSION_PATH}",
                headers=headers,
                cookies=cookies,
            )
            response = await self.http_client.send(request)
        except httpx.RequestError as e:
            raise NetworkFailure(f"session refresh failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Session refresh returned {response.status_code}")
            raise TokenRefreshFailed(
                f"failed to refresh access token: status code {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenRefreshFailed(f"failed to refresh access token: {e}") from e
        if not isinstance(payload, dict):
            raise TokenRefreshFailed("failed to refresh access token: unexpected session payload")

        try:
            credentials = Credentials.from_session_payload(payload)
        except MalformedResponse as e:
            logger.error(f"Session payload unusable: {e}")
            raise TokenRefreshFailed(f"failed to refresh access token: {e}") from e

        logger.info(f"Access token refreshed, expires at {credentials.expires_at.isoformat()}")
        return credentials

    async def refresh_with_login(self) -> Credentials:
        """Run the email/password login to obtain an access token

        Raises:
            CaptchaRequired: A captcha is shown and no solver is configured
        """
        context = AuthContext(
            email=self.email,
            password=self.password,
            user_agent=self.user_agent or USER_AGENT,
            proxy=self.proxy,
        )
        session = BrowserSession(
            proxy=self.proxy,
            user_agent=context.user_agent,
            transport=self.browser_transport,
        )
        flow = AuthFlow(context, session=session, base_url=self.base_url, auth0_url=self.auth0_url)

        captcha = await flow.begin()
        answer = ""
        if captcha.available:
            try:
                if self.captcha_solver is None:
                    raise CaptchaRequired(captcha)
                answer = await self.captcha_solver(captcha)
            except BaseException:
                await session.aclose()
                raise

        credentials = await flow.finish(answer)
        logger.info(f"Logged in, access token expires at {credentials.expires_at.isoformat()}")
        return credentials
