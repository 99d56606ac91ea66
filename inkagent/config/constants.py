"""Hard-coded configuration constants not meant to be user-configurable."""

DEFAULT_MAX_ITERATIONS = 5
DEFAULT_CHAT_TEMPERATURE = 0.7
DEFAULT_CHAT_MAX_TOKENS = 4000
DEFAULT_RETRIEVAL_LIMIT = 10
DEFAULT_SEARCH_TIMEOUT = 10.0
DEFAULT_REASONING_OPEN_MARKER = "<thinking>"
DEFAULT_REASONING_CLOSE_MARKER = "</thinking>"
CONFIG_DIR_NAME = ".inkagent"
