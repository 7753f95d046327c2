"""v1 router package — all /api/v1/* endpoints live here.

Files:
  claims.py       — claim create / list / read / gated edit
  ratings.py      — rating requests, rating submission, reads
  transitions.py  — workflow transitions + eligibility view
  audit.py        — audit trail (read only)

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to scm_api/services/.
"""
