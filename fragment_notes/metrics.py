"""Prometheus metrics for Fragment Notes.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge

# ---------------------------------------------------------------------------
# Note store metrics
# ---------------------------------------------------------------------------

NOTE_OPERATIONS = Counter(
    "fragment_notes_operations_total",
    "Total number of note store operations",
    ["operation", "status"],  # create/update/delete/load, ok/not_found
)

NOTES_STORED = Gauge(
    "fragment_notes_stored",
    "Number of notes currently held by the store",
)

# ---------------------------------------------------------------------------
# Storage metrics
# ---------------------------------------------------------------------------

STORAGE_LOAD_FAILURES = Counter(
    "fragment_notes_storage_load_failures_total",
    "Stored note collections that could not be parsed",
)
