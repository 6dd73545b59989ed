"""Constants shared across the scheduling engine."""

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_META_KEY = "HTTP_X_REQUEST_ID"

# Fallback digest delivery when a recipient batches updates but has no
# explicit schedule configured.
DEFAULT_DIGEST_TIME = "08:00"
DEFAULT_WEEKLY_DIGEST_DAY = "sunday"
DEFAULT_MAX_UPDATES_PER_DIGEST = 10

# Fallback preferences when neither the recipient nor the group configures any.
SYSTEM_DEFAULT_CHANNELS = ["email"]
SYSTEM_DEFAULT_CONTENT_TYPES = ["photos", "text", "milestones"]
SYSTEM_DEFAULT_FREQUENCY = "every_update"

PREFERENCE_CACHE_KEY = "preferences:{recipient_id}:{group_id}"

WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

MAX_MONTHLY_DELIVERY_DAY = 28
RECENT_FAILURES_LIMIT = 10
RECIPIENT_HISTORY_LIMIT = 500

# A quiet window that never closes (00:00-23:59 every day) holds non-urgent
# jobs and looks at them again after this many minutes.
QUIET_HOURS_RECHECK_MINUTES = 60
