import os

TESTING = True

SENTRY_DSN = os.getenv("SENTRY_DSN")

# keep pages small so pagination paths are exercised
TABLE_PAGE_DEFAULT_LIMIT = 50
