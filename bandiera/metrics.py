from prometheus_client import Counter, Histogram

REQUESTS = Counter("bandiera_client_requests_total", "Total Bandiera API requests", ["operation", "outcome"])
LATENCY = Histogram("bandiera_client_request_latency_seconds", "Bandiera API request latency", ["operation"])
CACHE_LOOKUPS = Counter("bandiera_client_cache_lookups_total", "Feature flag cache lookups", ["result"])
