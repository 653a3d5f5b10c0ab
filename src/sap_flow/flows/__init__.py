"""Prefect flows.

Flows:
  - analytics: compute weather analytics for a season and write a report
    to ``derived/analytics/{season}.json``.
"""
