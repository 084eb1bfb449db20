from prometheus_client import Counter


# === API Metrics ===

api_exception_counter = Counter(
    "api_exception_count", "Total API exceptions by type",
    ["type"]
)


# === Scheduling Metrics ===

assignment_counter = Counter(
    "interview_assignments_total", "Interview assignment attempts by outcome",
    ["outcome"]  # assigned, assigned_without_meeting, rejected, compensated
)

host_allocation_counter = Counter(
    "host_allocations_total", "Meeting host allocation results",
    ["result"]  # allocated, exhausted
)

meeting_provider_error_counter = Counter(
    "meeting_provider_errors_total", "Meeting provider failures by operation",
    ["operation"]  # create, delete, get
)

compensation_counter = Counter(
    "assignment_compensations_total", "Assignment rollbacks by result",
    ["result"]  # restored, failed
)

notification_counter = Counter(
    "notifications_total", "Notification dispatch results",
    ["kind", "status"]  # kind: assigned/confirmed/cancelled; status: sent/skipped/failed
)
