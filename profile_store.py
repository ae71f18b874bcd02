"""Profile queries for the admin panel (Supabase `profiled` table)."""

import math
from enum import IntEnum
from typing import List, Dict, Optional, Any, Union

from supabase_client import get_supabase_client

PROFILES_TABLE = 'profiled'
STATUS_COLUMN = 'Status'
PAGE_SIZE = 10

# Embedded select: profile -> profiledtags -> tags.tag
PROFILE_WITH_TAGS = '*, profiledtags(tagid, tags(tag))'


class ProfileStatus(IntEnum):
    """Review status stored in the `Status` column."""

    PROCESSING = 1
    ERRORED = 2
    PARTIAL = 3
    COMPLETED = 4

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "ProfileStatus":
        try:
            return LABEL_TO_STATUS[label]
        except KeyError:
            raise ValueError(f"Unknown profile status: {label!r}") from None

    @classmethod
    def coerce(cls, value: Union["ProfileStatus", int, str]) -> "ProfileStatus":
        """Accept a ProfileStatus, its integer code or its label."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_label(value)
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown profile status: {value!r}") from None


STATUS_LABELS = {
    ProfileStatus.PROCESSING: "Processing",
    ProfileStatus.ERRORED: "Errored",
    ProfileStatus.PARTIAL: "Partial",
    ProfileStatus.COMPLETED: "Completed",
}
LABEL_TO_STATUS = {label: status for status, label in STATUS_LABELS.items()}

FILTER_ALL = "all"
# Filter choices in display order; "all" applies no status predicate
STATUS_FILTERS = [FILTER_ALL] + [STATUS_LABELS[status] for status in ProfileStatus]


def parse_status_filter(value: Union[None, ProfileStatus, int, str]) -> Optional[ProfileStatus]:
    """Map a filter choice to a status, or None for "all"."""
    if value is None or value == FILTER_ALL:
        return None
    return ProfileStatus.coerce(value)


def flatten_profile_tags(row: Dict[str, Any]) -> Dict[str, Any]:
    """Replace the nested `profiledtags` join rows with a flat list of labels."""
    profile = dict(row)
    links = profile.pop('profiledtags', None) or []
    profile['tags'] = [
        link['tags']['tag']
        for link in links
        if link.get('tags') and link['tags'].get('tag') is not None
    ]
    return profile


class ProfileStore:
    """Reads and updates profile rows in Supabase."""

    def __init__(self, client=None):
        """Initialize ProfileStore with a Supabase connection.

        Args:
            client: Optional client; defaults to the shared Supabase client
        """
        self.client = client or get_supabase_client()

    def _apply_status(self, query, status: Optional[ProfileStatus]):
        if status is None:
            return query
        return query.eq(STATUS_COLUMN, int(status))

    def count_profiles(self, status: Optional[ProfileStatus] = None) -> int:
        """Count profiles matching a status filter.

        Args:
            status: Status to filter on, or None for all profiles

        Returns:
            Exact number of matching rows
        """
        query = self.client.table(PROFILES_TABLE).select('*', count='exact', head=True)
        result = self._apply_status(query, status).execute()
        return result.count if result.count is not None else 0

    def fetch_profiles(self, status: Optional[ProfileStatus] = None,
                       offset: int = 0, limit: int = PAGE_SIZE) -> List[Dict[str, Any]]:
        """Fetch one slice of profiles, ordered by ascending id.

        Args:
            status: Status to filter on, or None for all profiles
            offset: Zero-based index of the first row
            limit: Maximum number of rows

        Returns:
            List of profile dictionaries with a flat 'tags' list
        """
        query = (
            self.client.table(PROFILES_TABLE)
            .select(PROFILE_WITH_TAGS)
            .range(offset, offset + limit - 1)
            .order('id', desc=False)
        )
        result = self._apply_status(query, status).execute()
        return [flatten_profile_tags(row) for row in result.data or []]

    def list_profiles(self, page: int = 1, status: Optional[ProfileStatus] = None,
                      page_size: int = PAGE_SIZE) -> Dict[str, Any]:
        """Get a page of profiles together with the filter's totals.

        Args:
            page: 1-based page number
            status: Status to filter on, or None for all profiles
            page_size: Rows per page

        Returns:
            Dictionary with 'items', 'total_count' and 'total_pages'
        """
        total_count = self.count_profiles(status)
        items = self.fetch_profiles(status, offset=(page - 1) * page_size, limit=page_size)
        return {
            'items': items,
            'total_count': total_count,
            'total_pages': math.ceil(total_count / page_size),
        }

    def update_profile(self, profile_id: int, title: Optional[str], name: Optional[str],
                       description: Optional[str], status: ProfileStatus) -> List[Dict[str, Any]]:
        """Write the editable fields and review status of a profile.

        Returns:
            Updated rows as returned by Supabase
        """
        result = self.client.table(PROFILES_TABLE).update({
            'title': title,
            'name': name,
            'description': description,
            STATUS_COLUMN: int(status),
        }).eq('id', profile_id).execute()
        return result.data
