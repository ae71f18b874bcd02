"""Tag dictionary and profile-tag links for the profile admin panel."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Dict, Optional, Iterable

from supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

TAGS_TABLE = 'tags'
LINKS_TABLE = 'profiledtags'


def normalize_tag_labels(labels: Iterable[str]) -> List[str]:
    """De-duplicate tag labels, keeping first-seen order.

    Comparison is case-sensitive, so "News" and "news" stay distinct.
    Blank labels are dropped.
    """
    seen = {}
    for label in labels:
        if label is None or not str(label).strip():
            continue
        seen.setdefault(label, None)
    return list(seen)


class TagManager:
    """Manages the shared tag dictionary and profile-tag relationships."""

    def __init__(self, client=None, max_workers: int = 8):
        """Initialize TagManager with a Supabase connection.

        Args:
            client: Optional client; defaults to the shared Supabase client
            max_workers: Thread pool size used to resolve labels
        """
        self.client = client or get_supabase_client()
        self.max_workers = max_workers

    def find_tag_by_label(self, label: str) -> Optional[int]:
        """Look up a tag by exact label.

        Args:
            label: Tag label (case-sensitive)

        Returns:
            Tag ID, or None if no tag has this label
        """
        result = self.client.table(TAGS_TABLE).select('id').eq('tag', label).execute()
        return result.data[0]['id'] if result.data else None

    def insert_tag(self, label: str) -> int:
        """Add a new tag to the dictionary.

        Args:
            label: Tag label (must be unique)

        Returns:
            Generated ID of the new tag
        """
        result = self.client.table(TAGS_TABLE).insert({'tag': label}).execute()
        return result.data[0]['id']

    def get_or_create_tag_id(self, label: str) -> int:
        """Get a tag ID by label, creating the tag if it doesn't exist."""
        tag_id = self.find_tag_by_label(label)
        if tag_id is None:
            tag_id = self.insert_tag(label)
            logger.info(f"Created tag {label!r} with id {tag_id}")
        return tag_id

    def delete_links(self, profile_id: int):
        """Remove all tag links of a profile."""
        self.client.table(LINKS_TABLE).delete().eq('profileid', profile_id).execute()

    def insert_links(self, profile_id: int, tag_ids: List[int]):
        """Link a profile to each of the given tags in one insert."""
        if not tag_ids:
            return

        self.client.table(LINKS_TABLE).insert([
            {'profileid': profile_id, 'tagid': tag_id}
            for tag_id in tag_ids
        ]).execute()

    def resolve_tag_ids(self, labels: List[str]) -> Dict[str, int]:
        """Resolve labels to tag IDs concurrently.

        Every lookup/insert must finish before this returns. If any label
        fails to resolve, the first error is re-raised.

        Returns:
            Mapping of label to tag ID
        """
        resolved = {}
        errors = []

        if not labels:
            return resolved

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(labels))) as executor:
            future_to_label = {
                executor.submit(self.get_or_create_tag_id, label): label
                for label in labels
            }

            for future in as_completed(future_to_label):
                label = future_to_label[future]
                try:
                    resolved[label] = future.result()
                except Exception as e:
                    logger.error(f"Failed to resolve tag {label!r}: {e}")
                    errors.append(e)

        if errors:
            raise errors[0]

        return resolved

    def reconcile_profile_tags(self, profile_id: int, labels: Iterable[str]) -> List[str]:
        """Replace a profile's tags with the given labels.

        Existing links are deleted first, then each label is resolved to an
        existing or newly created tag and one link per distinct tag is
        inserted. This is a full replace, not a merge. The steps are separate
        writes: a failure part-way leaves earlier writes in place.

        Args:
            profile_id: ID of the profile
            labels: Desired tag labels (duplicates allowed)

        Returns:
            The de-duplicated labels now linked to the profile
        """
        normalized = normalize_tag_labels(labels)

        self.delete_links(profile_id)

        resolved = self.resolve_tag_ids(normalized)

        tag_ids = []
        for label in normalized:
            tag_id = resolved[label]
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)

        self.insert_links(profile_id, tag_ids)
        logger.info(f"Profile {profile_id} now has {len(tag_ids)} tag(s)")

        return normalized

