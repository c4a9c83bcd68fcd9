"""Fixed names and defaults that are not read from the config file."""

CONFIG_DIR_NAME = ".parley"
CONFIG_FILE_NAME = "config.json"
DEFAULT_DB_FILE_NAME = "history.sqlite"
# 0 turns SSE keep-alive comments off
DEFAULT_SSE_PING_INTERVAL = 0
