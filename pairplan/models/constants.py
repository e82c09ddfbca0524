"""Constants for pairplan.

This module centralizes the recurrence engine's bounds and defaults.
Each value can be overridden from the environment (or a .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()


# Timezone used when a definition or request does not name one
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# Custom weekday patterns: a week holds every weekday once, so a scan longer
# than 7 days can never find a match the first 7 days missed.
MAX_WEEKDAY_SCAN_DAYS = int(os.getenv("RECURRENCE_MAX_WEEKDAY_SCAN_DAYS", "7"))

# Upper bound on occurrences generated for a single event in one expansion.
# A daily rule over the default 3-month window needs ~92 steps.
MAX_EXPANSION_ITERATIONS = int(os.getenv("RECURRENCE_MAX_EXPANSION_ITERATIONS", "100"))

# Calendar visibility window when the client does not send one
DEFAULT_WINDOW_MONTHS = int(os.getenv("EVENT_WINDOW_MONTHS", "3"))

# Frequencies that never produce a next occurrence
NON_RECURRING_FREQUENCIES = frozenset({"never", "once"})
