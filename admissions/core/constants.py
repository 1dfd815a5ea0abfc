"""Application constants."""

# =============================================================================
# Assignment scoring weights
# =============================================================================

EXPERTISE_MATCH_POINTS = 40
LANGUAGE_MATCH_POINTS = 30
LOW_WORKLOAD_POINTS = 20  # load < 50%
MODERATE_WORKLOAD_POINTS = 10  # load < 80%
NO_CURRENT_LOAD_POINTS = 10

LOW_WORKLOAD_PERCENT = 50
MODERATE_WORKLOAD_PERCENT = 80
FULL_LOAD_PERCENT = 100

# =============================================================================
# Presence thresholds (minutes)
# =============================================================================

AWAY_AFTER_MINUTES = 15
OFFLINE_AFTER_MINUTES = 30
HEARTBEAT_ACCRUAL_CAP_MINUTES = 5
RELEASE_WINDOW_MINUTES = 30
RECENTLY_OFFLINE_MINUTES = 60

# Dashboards filter cancelled sessions on this substring
REASSIGNMENT_MARKER = "requires reassignment"
RELEASED_SESSION_REMARK = f"Counselor went offline - {REASSIGNMENT_MARKER}"

# Unassigned-lead work queue lookback
UNASSIGNED_LEAD_LOOKBACK_DAYS = 7
