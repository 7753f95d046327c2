"""Pydantic schemas package.

Folder intent:
  common.py    — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  claim.py     — claim create/edit DTOs and ClaimOut
  rating.py    — rating and rating-request DTOs
  workflow.py  — transition request + eligibility view
  audit.py     — audit trail entries
"""
