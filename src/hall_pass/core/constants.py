"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_WEEKLY_BATHROOM_LIMIT = 4
DEFAULT_MAX_CONCURRENT_BATHROOM = 2
DEFAULT_BATHROOM_EXPECTED_MINUTES = 5
DEFAULT_LOCKER_EXPECTED_MINUTES = 3
DEFAULT_OFFICE_EXPECTED_MINUTES = 10
DEFAULT_OTHER_EXPECTED_MINUTES = 10

JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6
JOIN_CODE_MAX_ATTEMPTS = 10

QUEUE_WAIT_MINUTES_PER_POSITION = 5
TIMER_WARNING_RATIO = 0.5

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_AUTO_CLEAR_WINDOW_MINUTES = 5
MAX_HISTORY_LIMIT = 200
STAFF_HISTORY_LIMIT = 10
