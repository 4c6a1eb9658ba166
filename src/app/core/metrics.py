from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)

SEARCH_BRANCH_DURATION = Histogram(
    "search_branch_duration_seconds",
    "Duration of a single entity search (count + page) in seconds",
    ["entity_type"],
)

CACHE_HITS = Counter("cache_hits_total", "Total number of cache hits")
CACHE_MISSES = Counter("cache_misses_total", "Total number of cache misses")
CACHE_FAILURES = Counter(
    "cache_operation_failures_total",
    "Cache operations that failed after exhausting all retries",
    ["operation"],
)
