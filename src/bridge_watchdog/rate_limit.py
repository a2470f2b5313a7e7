import enum

RATE_LIMIT_MARKERS = (
    "Your app has exceeded its compute units per second capacity",  # alchemy
    "rate-limit",
    "rate limit",
    "project ID request rate exceeded",  # infura
    "Too Many Requests",
    "Rate limited",
    "RequestRateLimitExceeded",
)


class Classification(enum.Enum):
    RETRYABLE = "retryable"
    NOT_RATE_LIMITED = "not_rate_limited"


def is_rate_limit_error(message: str) -> bool:
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def classify(message: str) -> Classification:
    if is_rate_limit_error(message):
        return Classification.RETRYABLE
    return Classification.NOT_RATE_LIMITED
