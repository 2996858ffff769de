"""In-memory implementations of the collaborator ports."""
from .memory import (
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    InMemoryPushTokenRegistry,
    InMemoryUserDirectory,
)

__all__ = [
    "InMemoryNotificationStore",
    "InMemoryPreferenceStore",
    "InMemoryPushTokenRegistry",
    "InMemoryUserDirectory",
]
