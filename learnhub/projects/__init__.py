"""Hands-on projects.

Provides:
- Project briefs created by HR
- Set-based assignment with a start, submit, evaluate lifecycle
- The evaluation backlog per project
"""
