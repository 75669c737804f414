"""
Database layer: engine/session management and the change notification feed.
"""

from healthcover.db.change_feed import (
    ChangeEvent,
    ChangeFeed,
    Subscription,
    get_change_feed,
    note_change,
)

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "Subscription",
    "get_change_feed",
    "note_change",
]
