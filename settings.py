from config.loader import get_config_loader
from headers import USER_AGENT as DEFAULT_USER_AGENT

# Get the config loader instance
config = get_config_loader()

# Server configuration (HTTP relay)
PORT = config.get("PORT", 8081)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "0.0.0.0")

# Upstream endpoints (hardcoded - not user configurable)
CHATGPT_BASE_URL = "https://chat.openai.com"
AUTH0_BASE_URL = "https://auth0.openai.com"
CHATGPT_MODEL = "text-davinci-002-render"

# Credentials
# SESSION_TOKEN is the __Secure-next-auth.session-token cookie; when set it is
# preferred over the email/password login flow
SESSION_TOKEN = config.get("SESSION_TOKEN", "")
CHATGPT_EMAIL = config.get("CHATGPT_EMAIL", "")
CHATGPT_PASSWORD = config.get("CHATGPT_PASSWORD", "")
CF_CLEARANCE = config.get("CF_CLEARANCE", "")
USER_AGENT = config.get("USER_AGENT", DEFAULT_USER_AGENT)

# Outbound proxy for the login flow; None means "use the environment proxies"
RELAY_PROXY = config.get("RELAY_PROXY", None)

# Task handling
# Per-task deadline, Go style duration string ("120s", "2m", "1m30s")
TASK_TIMEOUT = config.get_duration("TASK_TIMEOUT", "120s")
# Accept friend requests automatically (bridge behaviour)
AUTO_ACCEPT = config.get("AUTO_ACCEPT", False)
QUEUE_CAPACITY = 1024

# Captcha artefact written when the login flow needs a human answer
CAPTCHA_FILE = config.get("CAPTCHA_FILE", "captcha.png")

# Timeout configuration
# Connection timeout: Time to establish TCP connection
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
# Read timeout: Time between receiving data chunks, detects stalled streams
READ_TIMEOUT = config.get("READ_TIMEOUT", 60.0)
# Request timeout: Total timeout for the buffered login requests
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 30.0)
# Stream timeout: Total timeout for the conversation stream
STREAM_TIMEOUT = config.get("STREAM_TIMEOUT", 600.0)

# Stream tracing / debugging
STREAM_TRACE_ENABLED = config.get("STREAM_TRACE_ENABLED", False)
STREAM_TRACE_DIR = config.get("STREAM_TRACE_DIR", "stream_traces")
STREAM_TRACE_MAX_BYTES = config.get("STREAM_TRACE_MAX_BYTES", 262144)
