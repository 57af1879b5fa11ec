"""ChatGPT authentication module

Reproduces the browser login of the ChatGPT web app (email/password through
Auth0, with an optional image captcha) to obtain a backend access token.
"""

from .models import AuthContext, Credentials, parse_expiry
from .captcha import Captcha, CAPTCHA_SCALE
from .browser import BrowserSession
from .flow import AuthFlow, AuthState

__all__ = [
    "AuthContext",
    "Credentials",
    "parse_expiry",
    "Captcha",
    "CAPTCHA_SCALE",
    "BrowserSession",
    "AuthFlow",
    "AuthState",
]
