"""
Prometheus metrics for agent lifecycle operations
"""
from prometheus_client import Counter, Gauge

AGENT_OPERATIONS = Counter(
    "kommon_agent_operations_total",
    "Agent lifecycle operations",
    ["executor", "operation", "outcome"],
)

ACTIVE_AGENTS = Gauge(
    "kommon_active_agents",
    "Agents currently tracked by the executor",
    ["executor"],
)
