"""Services for groups."""

from .group_service import GroupService, clean_description, clean_group_name
from .subscriptions import GroupSubscription, MembershipSubscription, sort_groups
from .sync import GroupSyncEngine

__all__ = [
    "GroupService",
    "GroupSubscription",
    "GroupSyncEngine",
    "MembershipSubscription",
    "clean_description",
    "clean_group_name",
    "sort_groups",
]
