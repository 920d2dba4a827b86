"""Centralized constants for cadence.

All SM-2 tuning values and selection defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # quality >= 3 counts as a successful recall
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
FAILED_INTERVAL = 1

# ---------- Due-Set Selection ----------
DEFAULT_DUE_LIMIT = 50
UPCOMING_DAYS = 7

# ---------- History ----------
DEFAULT_HISTORY_LIMIT = 50

# ---------- Deployment ----------
DEFAULT_TIMEZONE = "UTC"
