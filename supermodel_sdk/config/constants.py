"""
Pipeline constants.

Central location for well-known ids, provider endpoints and the environment
variables that tune runtime behaviour.
"""

# Well-known "General Conversation" skill used as the fallback primary skill
GENERAL_SKILL_ID = "68415a52-ced4-4aeb-b1aa-01f000000000"

# Fixed platform preamble prepended to every system instruction
PLATFORM_PREAMBLE = "You are SuperModel AI. You are using the '{name}' skill."

# Provider endpoints
OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LOCAL_BASE_URL = "http://localhost:11434"
LOCAL_API_PATH = "/v1"
LOCAL_HEALTH_PATH = "api/tags"

# Anthropic requires max_tokens on every request
ANTHROPIC_DEFAULT_MAX_TOKENS = 4096

# Recommendation router
DEFAULT_ROUTER_MODEL = "gemini-2.5-flash"
ROUTER_HISTORY_SNIPPET_CHARS = 200
ROUTER_HISTORY_WINDOW = 3

# Token estimation: characters per token
CHARS_PER_TOKEN = 4

# Runtime limits (seconds)
DEFAULT_STREAM_IDLE_TIMEOUT = 120.0
DEFAULT_SCRIPT_TIMEOUT = 2.0
LOCAL_HEALTH_TIMEOUT = 5.0

# Environment variables
ENV_GOOGLE_API_KEY = "GOOGLE_API_KEY"
ENV_GEMINI_API_KEY = "GEMINI_API_KEY"
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"
ENV_LOCAL_URL = "SUPERMODEL_LOCAL_URL"
ENV_LOCAL_API_KEY = "SUPERMODEL_LOCAL_API_KEY"
ENV_CUSTOM_PROVIDERS = "SUPERMODEL_CUSTOM_PROVIDERS_JSON"
ENV_STREAM_IDLE_TIMEOUT = "SUPERMODEL_STREAM_IDLE_TIMEOUT"
ENV_SCRIPT_TIMEOUT = "SUPERMODEL_SCRIPT_TIMEOUT"
ENV_ROUTER_MODEL = "SUPERMODEL_ROUTER_MODEL"
