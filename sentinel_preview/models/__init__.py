"""Domain data models.

- region: Caller-supplied polygon boundary
- job: Job state machine, snapshots and acknowledgements
- imagery: Provider filters, render parameters, image references, config
- responses: Pydantic wire bodies for the HTTP endpoints
"""
