"""Workflow package — pure decision logic, no I/O.

Files:
  states.py         — roles, statuses, actions, decision values
  claim_engine.py   — claim transition table, edit rights, claim numbering format
  rating_engine.py  — rating acceptance window and overall-rating computation

Rule: nothing here touches the database, the clock or the notifier.
      Services pass in ``now`` and persist what the engines decide.
"""
