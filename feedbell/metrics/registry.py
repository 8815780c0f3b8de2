from prometheus_client import Counter, Gauge, Histogram

poll_duration_seconds = Histogram('poll_duration_seconds', 'Duration of a polling round')
poll_errors_total = Counter('poll_errors_total', 'Number of failed source checks', ['source'])
last_poll_timestamp = Gauge('last_poll_timestamp', 'Unix timestamp of last finished round')

updates_detected_total = Counter('updates_detected_total', 'New items detected per source', ['source'])
deliveries_total = Counter('deliveries_total', 'Delivered notifications by tier reached', ['channel', 'tier'])
delivery_failures_total = Counter('delivery_failures_total', 'Notifications that exhausted every tier', ['channel'])

live_state = Gauge('live_state', 'Last observed live state of a room (0=offline,1=live)', ['room'])
sources_total = Gauge('sources_total', 'Total number of tracked sources')
