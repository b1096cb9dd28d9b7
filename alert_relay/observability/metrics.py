"""
Metrics definitions for the alert relay service.

Prometheus metrics covering the citizen relay path, domain ingestion,
zone correlation and the status bridge.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
alerts_created = Counter(
    "citizen_alerts_created_total",
    "Number of citizen alerts created",
    ["category"]
)

relays = Counter(
    "alert_relays_total",
    "Relay attempts to domain services",
    ["service", "outcome"]
)

comment_forwards = Counter(
    "comment_forwards_total",
    "Citizen comments forwarded to domain services",
    ["outcome"]
)

ingestions = Counter(
    "alert_ingestions_total",
    "Relayed alerts received by the domain side",
    ["outcome"]
)

alerts_priority = Counter(
    "alert_priority_total",
    "Ingested alerts by computed priority",
    ["priority"]
)

zone_increments = Counter(
    "zone_alert_increments_total",
    "Zone alert counter increments"
)

status_pushes = Counter(
    "status_pushes_total",
    "Status / comment pushes from the domain side back to the citizen side",
    ["kind", "outcome"]
)

redeliveries = Counter(
    "relay_redeliveries_total",
    "Outbox redelivery attempts",
    ["outcome"]
)

# 히스토그램 메트릭
ingest_seconds = Histogram(
    "ingest_duration_seconds",
    "Time spent ingesting a relayed alert",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

relay_seconds = Histogram(
    "relay_duration_seconds",
    "Relay round-trip latency",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0]
)

hotspot_seconds = Histogram(
    "hotspot_detection_duration_seconds",
    "Time spent computing hotspots",
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# 게이지 메트릭
outbox_size = Gauge(
    "relay_outbox_size",
    "Current number of relays waiting for redelivery"
)

uptime_seconds = Gauge(
    "uptime_seconds",
    "Service uptime in seconds"
)
