from prometheus_client import Counter, Gauge, Histogram

# -----------------------------
# Lag metrics
# -----------------------------
CHAIN_LATEST_HEIGHT = Gauge(
    "chain_latest_height",
    "Current chain height reported by the readers",
    ["chain", "job"],
)
CHECKPOINT_HEIGHT = Gauge(
    "indexer_checkpoint_height",
    "Max height recorded in the store",
    ["chain", "job"],
)
CHECKPOINT_LAG = Gauge(
    "indexer_checkpoint_lag",
    "Heights between chain head and store checkpoint",
    ["chain", "job"],
)

# -----------------------------
# Throughput
# -----------------------------
HEIGHTS_INDEXED = Counter(
    "indexer_heights_total",
    "Total number of heights run through both phases",
    ["chain", "job"],
)
ITERATION_DURATION = Histogram(
    "indexer_iteration_seconds",
    "Wall time of one resolve + phase1 + phase2 iteration",
    ["chain", "job"],
    buckets=(1, 2, 5, 10, 30, 60, 120, 300, 600, 1800),
)

# -----------------------------
# Tasks
# -----------------------------
TASK_SUBMITTED = Counter(
    "indexer_task_submitted_total",
    "Indexing tasks submitted to the work queue",
    ["chain", "job", "kind"],
)
TASK_COMPLETED = Counter(
    "indexer_task_completed_total",
    "Indexing tasks completed successfully",
    ["chain", "job", "kind", "reader"],
)
TASK_FAILED = Counter(
    "indexer_task_failed_total",
    "Indexing tasks that exhausted primary and fallback",
    ["chain", "job", "kind"],
)
TASK_ATTEMPTS = Counter(
    "indexer_task_attempts_total",
    "Attempts made against a reader",
    ["chain", "job", "kind", "reader"],
)
TASK_FAILOVER = Counter(
    "indexer_task_failover_total",
    "Tasks that moved from primary to fallback reader",
    ["chain", "job", "kind"],
)
TASK_LATENCY = Histogram(
    "indexer_task_latency_seconds",
    "Indexing task latency including retries",
    ["chain", "job", "kind"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

# -----------------------------
# Scheduling
# -----------------------------
SLOTS_IN_USE = Gauge(
    "indexer_slots_in_use",
    "Concurrency slots currently granted",
    ["chain", "job"],
)
SLOTS_CAPACITY = Gauge(
    "indexer_slots_capacity",
    "Configured concurrency capacity",
    ["chain", "job"],
)
QUEUE_SIZE = Gauge(
    "indexer_queue_size",
    "Tasks waiting for a worker",
    ["chain", "job"],
)
PENDING_ACCOUNTS = Gauge(
    "indexer_pending_accounts",
    "Discovered addresses waiting for a slot",
    ["chain", "job"],
)
