"""Error types shared by the login flow, the conversation client and the dispatcher"""

from typing import Optional


class ChatRelayError(Exception):
    """Base class for every error raised by the relay"""


class InvalidCredentials(ChatRelayError):
    """Email/password missing or rejected by the identity provider"""


class NetworkFailure(ChatRelayError):
    """Transport level failure (DNS, TLS, connection reset, ...)"""


class UnexpectedStatus(ChatRelayError):
    """An HTTP step returned a status code it is not supposed to return"""

    def __init__(self, step: str, code: int, message: Optional[str] = None):
        self.step = step
        self.code = code
        detail = f": {message}" if message else ""
        super().__init__(f"{step}: invalid status code returned ({code}){detail}")


class MalformedResponse(ChatRelayError):
    """A response arrived with the right status but unusable content"""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"{step}: {reason}")


class RateLimited(ChatRelayError):
    """The identity provider redirected the login prompt to its error page"""


class CaptchaRequired(ChatRelayError):
    """Login needs a captcha answer and nobody is around to give one

    Attributes:
        captcha: The captcha that has to be answered
    """

    def __init__(self, captcha: str):
        self.captcha = captcha
        super().__init__("captcha required but no captcha solver configured")


class CaptchaDecodeError(ChatRelayError):
    """The captcha could not be decoded or rasterized"""


class TokenRefreshFailed(ChatRelayError):
    """Session-token exchange did not yield an access token"""


class StreamParseFailure(ChatRelayError):
    """The final conversation frame is missing or is not valid JSON"""


class UpstreamError(ChatRelayError):
    """The chat backend answered with an error

    Attributes:
        code: HTTP status code (200 when the error came inside the stream)
        body: Response body or the error field of the final frame
    """

    def __init__(self, code: int, body: str):
        self.code = code
        self.body = body
        super().__init__(f"unexpected status code: {code}, body: {body}")


class TimeoutExceeded(ChatRelayError):
    """A task did not finish before its deadline"""


class PreconditionViolation(ChatRelayError):
    """An operation was called out of order"""
