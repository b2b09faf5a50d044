from prometheus_client import Counter, Gauge, Histogram

poll_duration_seconds = Histogram('poll_duration_seconds', 'Duration of a polling cycle', ['platform', 'method'])
poll_errors_total = Counter('poll_errors_total', 'Number of failed poll cycles', ['platform', 'method'])
last_poll_timestamp = Gauge('last_poll_timestamp', 'Unix timestamp of last successful poll', ['platform', 'method'])
poll_backoff_seconds = Gauge('poll_backoff_seconds', 'Current retry backoff before the next poll', ['platform', 'method'])

platform_live = Gauge('platform_live', 'Whether the last poll found the platform live (0/1)', ['platform'])
jobs_published_total = Counter('jobs_published_total', 'Number of jobs published to the bus', ['platform'])
jobs_deferred_total = Counter('jobs_deferred_total', 'Live signals deferred to a higher-priority platform', ['platform'])

platforms_total = Gauge('platforms_total', 'Total number of platforms being polled')
