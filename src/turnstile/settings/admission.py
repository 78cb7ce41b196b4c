"""Settings for the admission engine (capacity, check-in tokens, locking)."""

from decouple import config

# Check-in token lifetime, in hours. Requested values are clamped to [MIN, MAX].
CHECKIN_TOKEN_DEFAULT_HOURS = config("CHECKIN_TOKEN_DEFAULT_HOURS", default=24, cast=int)
CHECKIN_TOKEN_MIN_HOURS = config("CHECKIN_TOKEN_MIN_HOURS", default=1, cast=int)
CHECKIN_TOKEN_MAX_HOURS = config("CHECKIN_TOKEN_MAX_HOURS", default=168, cast=int)

# Upper bound for waiting on a per-event ledger lock (PostgreSQL only; SQLite uses the connection timeout).
ADMISSION_LOCK_TIMEOUT_MS = config("ADMISSION_LOCK_TIMEOUT_MS", default=5000, cast=int)

# Seconds suggested to clients in Retry-After when a transient failure occurs.
ADMISSION_RETRY_AFTER_SECONDS = config("ADMISSION_RETRY_AFTER_SECONDS", default=1, cast=int)

# Dotted path of the image renderer that turns a check-in deep link into a scannable graphic.
CHECKIN_IMAGE_RENDERER = config("CHECKIN_IMAGE_RENDERER", default="events.service.qr.QRCodeRenderer")
