"""
Workflow Kernel - content lifecycle and transition authorization.

A synchronous, thread-safe engine with:
- A role catalog with one protected (never lockable-out) role
- Runtime-editable role permissions and transition authorizations
- A draft/review/ready/published/archived state machine for pages,
  news items and events
- An append-only, ordered audit trail per entity
"""

__version__ = "0.1.0"
