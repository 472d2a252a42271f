"""Application metrics."""

from prometheus_client import Counter, Gauge, Histogram

# Session metrics
sessions_created_total = Counter(
    "siren_sessions_created_total",
    "Total number of safety sessions created",
    ["mode"],
)

sessions_active = Gauge(
    "siren_sessions_active",
    "Number of safety sessions in a non-terminal tier",
)

tier_transitions_total = Counter(
    "siren_tier_transitions_total",
    "Total number of tier transitions",
    ["from_tier", "to_tier"],
)

# Escalation metrics
escalation_actions_total = Counter(
    "siren_escalation_actions_total",
    "Total number of escalation actions emitted",
    ["action"],
)

notifier_failures_total = Counter(
    "siren_notifier_failures_total",
    "Total number of escalation actions the notifier could not deliver",
    ["action"],
)

notifier_send_seconds = Histogram(
    "siren_notifier_send_seconds",
    "Time spent delivering one escalation action",
    ["backend"],
)

# Timer and trigger metrics
stale_callbacks_total = Counter(
    "siren_stale_callbacks_total",
    "Total number of countdown callbacks dropped as stale",
    ["phase"],
)

triggers_dropped_total = Counter(
    "siren_triggers_dropped_total",
    "Total number of trigger events dropped by the engine",
    ["kind", "reason"],
)

# Health metrics
health_ready_checks_total = Counter(
    "siren_health_ready_checks_total",
    "Total number of readiness checks",
    ["result", "reason"],
)
