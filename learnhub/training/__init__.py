"""Live training sessions.

Provides:
- Scheduling with trainer, attendees and meeting link
- Invitation emails, sent only to newly added attendees on changes
- Pre-/post-joining classification
"""
