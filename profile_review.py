"""Review-and-curation workflow behind the profile admin screen.

Holds the displayed page of profiles, the per-profile edit drafts and the
status-gated save. Nothing here depends on Textual, so the screen in
profile_ui.py only forwards user actions and renders the resulting state.
"""

import logging
from typing import List, Dict, Optional, Any, Union

from profile_store import (
    ProfileStore, ProfileStatus, PAGE_SIZE, STATUS_COLUMN, parse_status_filter,
)
from tag_manager import TagManager

logger = logging.getLogger(__name__)

DRAFT_FIELDS = ('title', 'name', 'description', 'tags', 'tag_input')

# Sentinel: load_page keeps the current status filter
KEEP_FILTER = object()


class DraftNotFoundError(KeyError):
    """Raised when a draft operation targets a profile that is not being edited."""


class EditDrafts:
    """Working copies of profiles being edited, keyed by profile ID.

    One instance belongs to one review session. An absent key means the
    profile is not being edited.
    """

    def __init__(self):
        self._drafts: Dict[int, Dict[str, Any]] = {}

    def __contains__(self, profile_id) -> bool:
        return profile_id in self._drafts

    def __len__(self) -> int:
        return len(self._drafts)

    def get(self, profile_id: int) -> Optional[Dict[str, Any]]:
        return self._drafts.get(profile_id)

    def _require(self, profile_id: int) -> Dict[str, Any]:
        draft = self._drafts.get(profile_id)
        if draft is None:
            raise DraftNotFoundError(f"Profile {profile_id} is not being edited")
        return draft

    def start(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        """Seed a draft from a displayed profile."""
        draft = {
            'title': profile.get('title'),
            'name': profile.get('name'),
            'description': profile.get('description'),
            'tags': list(profile.get('tags') or []),
            'tag_input': '',
        }
        self._drafts[profile['id']] = draft
        return draft

    def discard(self, profile_id: int):
        self._drafts.pop(profile_id, None)

    def clear(self):
        self._drafts.clear()

    def change(self, profile_id: int, field: str, value: Union[str, List[str]]):
        """Merge a single field into an existing draft."""
        if field not in DRAFT_FIELDS:
            raise ValueError(f"Unknown draft field: {field!r}")
        draft = self._require(profile_id)
        if field == 'tags':
            value = list(value)
        self._drafts[profile_id] = {**draft, field: value}

    def commit_tag_input(self, profile_id: int) -> bool:
        """Move the pending tag input into the draft's tag list.

        Returns:
            True if a new tag was added
        """
        draft = self._require(profile_id)
        pending = (draft.get('tag_input') or '').strip()
        if not pending:
            return False

        tags = draft.get('tags') or []
        added = pending not in tags
        if added:
            self.change(profile_id, 'tags', tags + [pending])
        self.change(profile_id, 'tag_input', '')
        return added

    def remove_tag(self, profile_id: int, index: int):
        """Drop the tag at a position from the draft's tag list."""
        tags = self._require(profile_id).get('tags') or []
        self.change(profile_id, 'tags', [tag for i, tag in enumerate(tags) if i != index])


class ProfileListController:
    """Paginated, status-filtered profile list with inline editing."""

    def __init__(self, profile_store: Optional[ProfileStore] = None,
                 tag_manager: Optional[TagManager] = None, page_size: int = PAGE_SIZE):
        self.profile_store = profile_store or ProfileStore()
        self.tag_manager = tag_manager or TagManager()
        self.page_size = page_size
        self.page = 1
        self.status_filter: Optional[ProfileStatus] = None
        self.profiles: List[Dict[str, Any]] = []
        self.total_pages = 1
        self.total_count = 0
        self.drafts = EditDrafts()
        self.saving = False

    # Listing

    def load_page(self, page: Optional[int] = None, status_filter=KEEP_FILTER) -> bool:
        """Fetch a page and replace the displayed list.

        Args:
            page: 1-based page number; defaults to the current page
            status_filter: Status to show, or None for all; defaults to the
                current filter. Only recorded once the fetch succeeds.

        Returns:
            True on success. On failure the error is logged and the previous
            list, filter and page are left in place.
        """
        if self.saving:
            logger.info("Ignoring page load while a save is pending")
            return False

        page = self.page if page is None else page
        if status_filter is KEEP_FILTER:
            status_filter = self.status_filter
        try:
            result = self.profile_store.list_profiles(page, status_filter, self.page_size)
        except Exception as e:
            label = status_filter.label if status_filter is not None else "all"
            logger.error(f"Fetch error (page {page}, filter {label}): {e}")
            return False

        self.status_filter = status_filter
        self.page = page
        self.profiles = result['items']
        self.total_count = result['total_count']
        self.total_pages = result['total_pages']
        # Drafts point at rows that may no longer be displayed
        self.drafts.clear()
        return True

    def set_filter(self, status_filter: Union[None, ProfileStatus, int, str]) -> bool:
        """Switch the status filter and reload from page 1."""
        if self.saving:
            return False
        return self.load_page(1, parse_status_filter(status_filter))

    @property
    def filter_label(self) -> str:
        return self.status_filter.label if self.status_filter is not None else "all"

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def next_page(self) -> bool:
        if not self.has_next or self.saving:
            return False
        return self.load_page(self.page + 1)

    def previous_page(self) -> bool:
        if not self.has_previous or self.saving:
            return False
        return self.load_page(self.page - 1)

    def summary(self) -> str:
        if self.status_filter is None:
            return f"Total {self.total_count} Records Found"
        return f"Total {self.total_count} - {self.status_filter.label} Records Found"

    def page_label(self) -> str:
        return f"Page {self.page} of {self.total_pages}"

    def get_profile(self, profile_id: int) -> Optional[Dict[str, Any]]:
        for profile in self.profiles:
            if profile['id'] == profile_id:
                return profile
        return None

    # Editing

    def is_editing(self, profile_id: int) -> bool:
        return profile_id in self.drafts

    def start_edit(self, profile_id: int) -> bool:
        profile = self.get_profile(profile_id)
        if profile is None:
            return False
        self.drafts.start(profile)
        return True

    def cancel_edit(self, profile_id: int):
        self.drafts.discard(profile_id)

    def handle_change(self, profile_id: int, field: str, value: Union[str, List[str]]):
        self.drafts.change(profile_id, field, value)

    def commit_tag_input(self, profile_id: int) -> bool:
        return self.drafts.commit_tag_input(profile_id)

    def remove_tag(self, profile_id: int, index: int):
        self.drafts.remove_tag(profile_id, index)

    # Saving

    def save_profile(self, profile_id: int, status: Union[ProfileStatus, int, str]) -> bool:
        """Write a draft with the chosen status, then replace the profile's tags.

        The field update and the tag replacement are separate writes. If
        either fails the displayed profile is left untouched and the draft is
        kept so the user can retry; writes that already succeeded are not
        rolled back. Concurrent sessions overwrite each other (last write
        wins).

        Returns:
            True if both steps succeeded
        """
        status = ProfileStatus.coerce(status)
        draft = self.drafts.get(profile_id)
        if draft is None:
            return False

        self.saving = True
        try:
            self.profile_store.update_profile(
                profile_id,
                title=draft.get('title'),
                name=draft.get('name'),
                description=draft.get('description'),
                status=status,
            )
            tags = draft.get('tags')
            if isinstance(tags, list):
                tags = self.tag_manager.reconcile_profile_tags(profile_id, tags)
            else:
                tags = None
        except Exception as e:
            logger.error(f"Update error for profile {profile_id}: {e}")
            return False
        finally:
            self.saving = False

        self._patch_profile(profile_id, draft, status, tags)
        self.drafts.discard(profile_id)
        logger.info(f"Profile {profile_id} saved as {status.label}")
        return True

    def _patch_profile(self, profile_id: int, draft: Dict[str, Any],
                       status: ProfileStatus, tags: Optional[List[str]]):
        patched = []
        for profile in self.profiles:
            if profile['id'] == profile_id:
                profile = {
                    **profile,
                    'title': draft.get('title'),
                    'name': draft.get('name'),
                    'description': draft.get('description'),
                    STATUS_COLUMN: int(status),
                    'tags': list(tags) if tags is not None else profile.get('tags', []),
                }
            patched.append(profile)
        self.profiles = patched
