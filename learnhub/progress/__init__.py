"""Enrollment and progress tracking module.

Provides:
- Enrollment management with a one-way status lifecycle
- Module completion and assessment attempts
- Progress aggregation and the gated mark-complete action
"""
