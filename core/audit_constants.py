"""
Canonical audit event type strings.
"""

EVENT_PART_CREATED = "part.created"
EVENT_PART_DELETED = "part.deleted"
EVENT_ASSOCIATION_CREATED = "part_association.created"
EVENT_ASSOCIATION_UPDATED = "part_association.updated"
EVENT_ASSOCIATION_DELETED = "part_association.deleted"

__all__ = [
    "EVENT_PART_CREATED",
    "EVENT_PART_DELETED",
    "EVENT_ASSOCIATION_CREATED",
    "EVENT_ASSOCIATION_UPDATED",
    "EVENT_ASSOCIATION_DELETED",
]
