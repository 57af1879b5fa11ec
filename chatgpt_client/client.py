"""Client for the ChatGPT conversation backend"""

import json
import logging
import uuid
from typing import Optional

import httpx

from errors import NetworkFailure, UpstreamError
import settings
from settings import CHATGPT_BASE_URL, CONNECT_TIMEOUT, READ_TIMEOUT, STREAM_TIMEOUT
from stream_debug import maybe_create_stream_tracer

from .models import ConversationRequest, parse_conversation_frame
from .stream import read_final_frame
from .token_manager import CF_CLEARANCE_COOKIE, CaptchaSolver, TokenManager

logger = logging.getLogger(__name__)

CONVERSATION_PATH = "/backend-api/conversation"


class ChatGPTClient:
    """Owns the HTTP client and access token shared by a user's conversations"""

    def __init__(
        self,
        session_token: str = "",
        email: str = "",
        password: str = "",
        cf_clearance: str = "",
        user_agent: str = "",
        proxy: Optional[str] = None,
        captcha_solver: Optional[CaptchaSolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        browser_transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = CHATGPT_BASE_URL,
        token_manager: Optional[TokenManager] = None,
    ):
        """Initialize client

        Args:
            session_token: Session-token cookie; preferred over email/password
            email: Account email for the login flow
            password: Account password for the login flow
            cf_clearance: Cloudflare clearance cookie value
            user_agent: User agent sent to the backend
            proxy: Outbound proxy URL (None uses the environment proxies)
            captcha_solver: Async callable answering a login captcha
            transport: Transport for backend requests (tests)
            browser_transport: Transport for the login flow (tests)
            base_url: ChatGPT web app origin
            token_manager: Preconfigured token manager
        """
        self.base_url = base_url.rstrip("/")
        self.cf_clearance = cf_clearance
        self.user_agent = user_agent

        client_kwargs = {
            "timeout": httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT),
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        elif proxy:
            client_kwargs["proxy"] = proxy
        self.http_client = httpx.AsyncClient(**client_kwargs)

        self.token_manager = token_manager or TokenManager(
            self.http_client,
            session_token=session_token,
            cf_clearance=cf_clearance,
            user_agent=user_agent,
            email=email,
            password=password,
            proxy=proxy,
            captcha_solver=captcha_solver,
            browser_transport=browser_transport,
            base_url=self.base_url,
        )

    def new_conversation(self, conversation_id: str = "") -> "Conversation":
        """Start a conversation, or continue an existing one by id"""
        return Conversation(self, conversation_id=conversation_id)

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def __aenter__(self) -> "ChatGPTClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class Conversation:
    """One conversation thread

    Attributes:
        conversation_id: Backend id, empty until the first reply arrives
        parent_message_id: Id of the message the next one answers
    """

    def __init__(self, client: ChatGPTClient, conversation_id: str = ""):
        self.client = client
        self.conversation_id = conversation_id
        self.parent_message_id = str(uuid.uuid4())

    def _headers(self, access_token: str) -> dict:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.client.user_agent:
            headers["User-Agent"] = self.client.user_agent
        return headers

    async def send(self, text: str) -> str:
        """Send a user message and return the reply text

        The conversation ids only move forward when a reply was decoded;
        after an error the next send retries from the same point.

        Args:
            text: Message content

        Returns:
            First content part of the reply

        Raises:
            ChatRelayError: On token refresh, transport, status or stream errors
        """
        access_token = await self.client.token_manager.get_access_token()

        request = ConversationRequest.user_text(
            text,
            message_id=str(uuid.uuid4()),
            parent_message_id=self.parent_message_id,
            conversation_id=self.conversation_id,
        )
        body = json.dumps(request.to_dict())

        cookies = {}
        if self.client.cf_clearance:
            cookies[CF_CLEARANCE_COOKIE] = self.client.cf_clearance

        request_id = uuid.uuid4().hex[:8]
        tracer = maybe_create_stream_tracer(
            enabled=settings.STREAM_TRACE_ENABLED,
            request_id=request_id,
            route="conversation",
            base_dir=settings.STREAM_TRACE_DIR,
            max_bytes=settings.STREAM_TRACE_MAX_BYTES,
        )
        endpoint = f"{self.client.base_url}{CONVERSATION_PATH}"
        logger.debug(f"[{request_id}] POST {endpoint} conversation_id={self.conversation_id or '-'}")

        http_client = self.client.http_client
        try:
            outgoing = http_client.build_request(
                "POST",
                endpoint,
                content=body,
                headers=self._headers(access_token),
                cookies=cookies,
            )
            response = await http_client.send(outgoing, stream=True)
            try:
                if tracer:
                    tracer.log_note(f"backend responded with status={response.status_code}")

                if response.status_code != 200:
                    error_body = (await response.aread()).decode("utf-8", "replace")
                    logger.error(f"[{request_id}] Backend error {response.status_code}: {error_body}")
                    if tracer:
                        tracer.log_error(f"status={response.status_code} body={error_body}")
                    raise UpstreamError(response.status_code, error_body)

                frame = await read_final_frame(response.aiter_text(), tracer=tracer)
            finally:
                await response.aclose()
        except httpx.TimeoutException as e:
            if tracer:
                tracer.log_error(f"stream timeout: {e}")
            raise NetworkFailure(f"conversation request timed out: {e}") from e
        except httpx.RequestError as e:
            if tracer:
                tracer.log_error(f"transport error: {e}")
            raise NetworkFailure(f"conversation request failed: {e}") from e
        finally:
            if tracer:
                tracer.close()

        reply = parse_conversation_frame(frame)

        if reply.conversation_id:
            self.conversation_id = reply.conversation_id
        if reply.message_id:
            self.parent_message_id = reply.message_id
        logger.debug(f"[{request_id}] Reply received ({len(reply.text)} chars)")
        return reply.text
