"""Browser-mimicking HTTP session used by the login flow

The identity provider fingerprints clients by the order of their request
headers, so requests are assembled here by hand instead of letting httpx
merge its own default headers in front of ours. One session (one cookie
jar, one connection pool) is used for a whole login attempt.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

import httpx

from errors import NetworkFailure
from headers import PSEUDO_HEADER_ORDER, SENSITIVE_HEADERS, USER_AGENT
from settings import CONNECT_TIMEOUT, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

HeaderList = Sequence[Tuple[str, str]]
FormData = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


def _without_query(url: httpx.URL) -> str:
    # Query strings carry the identity provider state
    return str(url).split("?", 1)[0]


def redact_headers(headers: HeaderList) -> List[Tuple[str, str]]:
    """Return headers with sensitive values replaced for logging"""
    return [
        (name, "[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value)
        for name, value in headers
    ]


class BrowserSession:
    """HTTP session that looks like a desktop Chrome to the upstream"""

    def __init__(
        self,
        proxy: Optional[str] = None,
        user_agent: str = USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cookies: Optional[httpx.Cookies] = None,
        timeout: Optional[httpx.Timeout] = None,
    ):
        """Initialize the session

        Args:
            proxy: Explicit proxy URL; None uses the environment proxies
            user_agent: User agent sent with every request
            transport: Custom transport (tests inject httpx.MockTransport)
            cookies: Existing cookie jar to continue
            timeout: Request timeout (defaults to REQUEST_TIMEOUT)
        """
        self.user_agent = user_agent
        self.proxy = proxy
        self.follow_redirects = True
        self.cookies = cookies if cookies is not None else httpx.Cookies()

        self._timeout = timeout or httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
        client_kwargs = {
            "cookies": self.cookies,
            "timeout": self._timeout,
            "follow_redirects": True,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        else:
            client_kwargs["http2"] = True
            if proxy:
                client_kwargs["proxy"] = proxy
            else:
                client_kwargs["trust_env"] = True

        self._client = httpx.AsyncClient(**client_kwargs)
        # httpx copies the jar it is given; keep a handle on the live one
        self.cookies = self._client.cookies

    @property
    def pseudo_header_order(self) -> Tuple[str, ...]:
        """HTTP/2 pseudo-header order used by this session"""
        return PSEUDO_HEADER_ORDER

    @asynccontextmanager
    async def redirects_disabled(self) -> AsyncIterator["BrowserSession"]:
        """Return 3xx responses as-is inside the block

        The previous redirect policy is restored on exit, also on errors.
        """
        previous = self.follow_redirects
        self.follow_redirects = False
        try:
            yield self
        finally:
            self.follow_redirects = previous

    async def get(
        self,
        url: str,
        headers: HeaderList,
        params: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Perform a GET request with ordered headers

        Args:
            url: Target URL
            headers: Ordered (name, value) pairs
            params: Optional query parameters

        Returns:
            Fully buffered response (after redirects, if following)
        """
        return await self._send("GET", url, headers, params=params)

    async def post(
        self,
        url: str,
        headers: HeaderList,
        data: FormData,
        params: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Perform a form-encoded POST request with ordered headers

        Args:
            url: Target URL
            headers: Ordered (name, value) pairs
            data: Form fields, encoded as application/x-www-form-urlencoded
            params: Optional query parameters

        Returns:
            Fully buffered response (after redirects, if following)
        """
        body = urlencode(data).encode()
        return await self._send("POST", url, headers, params=params, content=body)

    async def _send(
        self,
        method: str,
        url: str,
        headers: HeaderList,
        params: Optional[Mapping[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        request = httpx.Request(
            method,
            url,
            params=params,
            headers=list(headers),
            content=content,
            cookies=self._client.cookies,
            # Hand-built requests do not inherit the client timeout
            extensions={"timeout": self._timeout.as_dict()},
        )
        target = _without_query(request.url)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"{method} {target} follow_redirects={self.follow_redirects}")
            for name, value in redact_headers(request.headers.multi_items()):
                logger.debug(f"  {name}: {value}")

        try:
            response = await self._client.send(request, follow_redirects=self.follow_redirects)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"{method} {target} timed out: {e}") from e
        except httpx.RequestError as e:
            raise NetworkFailure(f"{method} {target} failed: {e}") from e

        logger.debug(f"{method} {target} -> {response.status_code}")
        return response

    async def aclose(self) -> None:
        """Close the underlying connection pool"""
        await self._client.aclose()

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
