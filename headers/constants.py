"""HTTP Request Headers and Browser Fingerprint Constants

These values make the login requests look like they come from a desktop
Chrome 107 on Windows. The identity provider fingerprints header order, so
every profile below lists its headers in the exact order Chrome sends them.
"""

from typing import Dict, List, Optional, Tuple

CHROME_VERSION = "107.0.0.0"

# User-Agent string for every request of a session
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    f"(KHTML, like Gecko) Chrome/{CHROME_VERSION} Safari/537.36"
)

# Client hints matching USER_AGENT
SEC_CH_UA = '"Google Chrome";v="107", "Chromium";v="107", "Not=A?Brand";v="24"'
SEC_CH_UA_MOBILE = "?0"
SEC_CH_UA_PLATFORM = '"Windows"'

ACCEPT_DOCUMENT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
    "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.9"
)
ACCEPT_ENCODING = "gzip, deflate, br"
ACCEPT_LANGUAGE = "en-US,en;q=0.9"

# HTTP/2 pseudo-header order of Chrome (also the order the h2 stack emits)
PSEUDO_HEADER_ORDER: Tuple[str, ...] = (":method", ":authority", ":scheme", ":path")

# Header profiles, one per login step. Values may reference {user_agent},
# {sec_ch_ua}, {origin} and {referer}; a header whose placeholder is not
# supplied is left out.
HEADER_PROFILES: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "landing": (
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("dnt", "1"),
        ("upgrade-insecure-requests", "1"),
        ("user-agent", "{user_agent}"),
        ("accept", ACCEPT_DOCUMENT),
        ("sec-fetch-site", "none"),
        ("sec-fetch-mode", "navigate"),
        ("sec-fetch-user", "?1"),
        ("sec-fetch-dest", "document"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "csrf": (
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("dnt", "1"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("user-agent", "{user_agent}"),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("accept", "*/*"),
        ("sec-fetch-site", "same-origin"),
        ("sec-fetch-mode", "cors"),
        ("sec-fetch-dest", "empty"),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "login_prompt": (
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("dnt", "1"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("user-agent", "{user_agent}"),
        ("content-type", "application/x-www-form-urlencoded"),
        ("accept", "*/*"),
        ("origin", "{origin}"),
        ("sec-fetch-site", "same-origin"),
        ("sec-fetch-mode", "cors"),
        ("sec-fetch-dest", "empty"),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "authorize": (
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("upgrade-insecure-requests", "1"),
        ("dnt", "1"),
        ("user-agent", "{user_agent}"),
        ("accept", ACCEPT_DOCUMENT),
        ("sec-fetch-site", "same-site"),
        ("sec-fetch-mode", "navigate"),
        ("sec-fetch-user", "?1"),
        ("sec-fetch-dest", "document"),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    # identifier and password posts share one profile
    "credentials": (
        ("cache-control", "max-age=0"),
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("origin", "{origin}"),
        ("dnt", "1"),
        ("upgrade-insecure-requests", "1"),
        ("content-type", "application/x-www-form-urlencoded"),
        ("user-agent", "{user_agent}"),
        ("accept", ACCEPT_DOCUMENT),
        ("sec-fetch-site", "same-origin"),
        ("sec-fetch-mode", "navigate"),
        ("sec-fetch-user", "?1"),
        ("sec-fetch-dest", "document"),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "resume": (
        ("cache-control", "max-age=0"),
        ("dnt", "1"),
        ("upgrade-insecure-requests", "1"),
        ("user-agent", "{user_agent}"),
        ("accept", ACCEPT_DOCUMENT),
        ("sec-fetch-site", "same-origin"),
        ("sec-fetch-mode", "navigate"),
        ("sec-fetch-user", "?1"),
        ("sec-fetch-dest", "document"),
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "callback": (
        ("cache-control", "max-age=0"),
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("dnt", "1"),
        ("upgrade-insecure-requests", "1"),
        ("user-agent", "{user_agent}"),
        ("accept", ACCEPT_DOCUMENT),
        ("sec-fetch-site", "same-site"),
        ("sec-fetch-mode", "navigate"),
        ("sec-fetch-dest", "document"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
    "session": (
        ("sec-ch-ua", "{sec_ch_ua}"),
        ("dnt", "1"),
        ("sec-ch-ua-mobile", SEC_CH_UA_MOBILE),
        ("user-agent", "{user_agent}"),
        ("sec-ch-ua-platform", SEC_CH_UA_PLATFORM),
        ("accept", "*/*"),
        ("sec-fetch-site", "same-origin"),
        ("sec-fetch-mode", "cors"),
        ("sec-fetch-dest", "empty"),
        ("referer", "{referer}"),
        ("accept-encoding", ACCEPT_ENCODING),
        ("accept-language", ACCEPT_LANGUAGE),
    ),
}

# Header names whose values must never reach the logs
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie"})


def build_headers(
    profile: str,
    user_agent: str = USER_AGENT,
    origin: Optional[str] = None,
    referer: Optional[str] = None,
) -> List[Tuple[str, str]]:
    """Render a header profile into an ordered list of (name, value) pairs

    Args:
        profile: Key of HEADER_PROFILES
        user_agent: User-Agent for the session
        origin: Value for the origin header, if the profile has one
        referer: Value for the referer header, if the profile has one

    Returns:
        Headers in browser emission order

    Raises:
        KeyError: If the profile does not exist
    """
    values = {
        "user_agent": user_agent,
        "sec_ch_ua": SEC_CH_UA,
        "origin": origin,
        "referer": referer,
    }

    headers: List[Tuple[str, str]] = []
    for name, template in HEADER_PROFILES[profile]:
        if template.startswith("{") and template.endswith("}"):
            value = values.get(template[1:-1])
            if not value:
                continue
            headers.append((name, value))
        else:
            headers.append((name, template))
    return headers
