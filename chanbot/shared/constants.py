OP_THROTTLE = 3
MSG_THROTTLE = 2

CONNECT_TIMEOUT = 5
REQUEST_TIMEOUT = 10
USER_AGENT = "chanbot/1.0"

DB_RETRY_COUNT = 5
DB_RETRY_SLEEP = 1

TITLE_MAX_LEN = 400
TITLE_CUT_LEN = 396

RECONNECT_DELAY = 10

NONE = "NONE"
WILDCARD = "*"

DEFAULT_EXPIRE_DAYS = 7
DEFAULT_TIMEZONE = "UTC"
TS_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
