from prometheus_client import Counter, Histogram
REQUESTS = Counter("offers_requests_total", "Total requests", ["endpoint","method","status"])
ERRORS   = Counter("offers_errors_total", "Unexpected request failures", ["endpoint"])
LATENCY  = Histogram("offers_request_duration_seconds", "Request latency (s)", buckets=(0.05,0.1,0.2,0.5,1,2,5))
OFFERS_APPLIED  = Counter("offers_applied_total", "Carts discounted by an offer", ["offer_type"])
SEGMENT_LOOKUPS = Counter("offers_segment_lookups_total", "User segment lookups", ["outcome"])
