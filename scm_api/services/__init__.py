"""Services package — all business logic lives here, never in routers.

Files:
  coordinator.py  — workflow transitions (claims, rating acceptance) + eligibility view
  claim.py        — claim creation, gated edits, reads
  rating.py       — rating requests, rating submission, reads
  audit_log.py    — append-only audit trail
  notifier.py     — queued outbound email (fire-and-forget)
  base.py         — shared compare-and-swap / audit / commit / notify write path

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
