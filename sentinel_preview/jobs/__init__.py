"""Single-slot asynchronous job tracking.

- store: The one job record and its last-resolved-wins write policy
- spawner: Background task ownership (no cancellation)
- tracker: submit / query_status / fetch_now
"""
