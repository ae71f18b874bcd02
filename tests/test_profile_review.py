import pytest

from profile_review import DraftNotFoundError, EditDrafts
from profile_store import ProfileStatus


def test_load_page_sets_totals(controller):
    assert controller.load_page(1)

    assert controller.total_count == 25
    assert controller.total_pages == 3
    assert len(controller.profiles) == 10
    assert controller.summary() == "Total 25 Records Found"
    assert controller.page_label() == "Page 1 of 3"


def test_load_failure_keeps_previous_list(controller, fake_client):
    controller.load_page(1)
    before = list(controller.profiles)

    fake_client.fail('profiled', 'select')
    assert not controller.load_page(2)

    assert controller.page == 1
    assert controller.profiles == before
    assert controller.total_count == 25


def test_changing_filter_resets_to_first_page(controller, fake_client):
    controller.load_page(1)
    controller.next_page()
    assert controller.page == 2

    assert controller.set_filter("Errored")

    assert controller.page == 1
    assert controller.status_filter is ProfileStatus.ERRORED
    assert controller.total_count == 7
    assert [p['id'] for p in controller.profiles] == [1, 5, 9, 13, 17, 21, 25]
    assert controller.summary() == "Total 7 - Errored Records Found"


def test_all_filter_clears_status_predicate(controller):
    controller.set_filter(ProfileStatus.PARTIAL)
    controller.set_filter("all")

    assert controller.status_filter is None
    assert controller.total_count == 25


def test_failed_filter_change_keeps_previous_filter_and_page(controller, fake_client):
    controller.load_page(1)
    controller.next_page()
    before = list(controller.profiles)

    fake_client.fail('profiled', 'select')
    assert not controller.set_filter("Errored")

    assert controller.status_filter is None
    assert controller.page == 2
    assert controller.profiles == before
    assert controller.summary() == "Total 25 Records Found"
    assert controller.page_label() == "Page 2 of 3"

    fake_client.failures.clear()
    assert controller.next_page()
    assert controller.page == 3
    assert controller.status_filter is None
    assert [p['id'] for p in controller.profiles] == [21, 22, 23, 24, 25]


def test_navigation_stays_in_range(controller):
    controller.load_page(1)
    assert not controller.has_previous
    assert not controller.previous_page()

    assert controller.next_page()
    assert controller.next_page()
    assert controller.page == 3
    assert not controller.has_next
    assert not controller.next_page()
    assert controller.page == 3

    assert controller.previous_page()
    assert controller.page == 2


def test_navigation_refused_while_saving(controller):
    controller.load_page(1)
    controller.saving = True

    assert not controller.next_page()
    assert not controller.set_filter("Completed")
    assert controller.page == 1


def test_start_then_cancel_leaves_nothing_behind(controller):
    controller.load_page(1)
    before = dict(controller.get_profile(3))

    assert controller.start_edit(3)
    assert controller.is_editing(3)
    controller.cancel_edit(3)

    assert not controller.is_editing(3)
    assert controller.drafts.get(3) is None
    assert controller.get_profile(3) == before


def test_start_edit_unknown_profile_is_noop(controller):
    controller.load_page(1)

    assert not controller.start_edit(999)
    assert len(controller.drafts) == 0


def test_draft_seeded_from_displayed_profile(controller):
    controller.load_page(1)
    controller.start_edit(1)

    draft = controller.drafts.get(1)
    assert draft['title'] == "Title 1"
    assert draft['tags'] == ['news', 'tech']
    assert draft['tag_input'] == ''


def test_handle_change_merges_single_field(controller):
    controller.load_page(1)
    controller.start_edit(2)

    controller.handle_change(2, 'title', "Changed")

    draft = controller.drafts.get(2)
    assert draft['title'] == "Changed"
    assert draft['name'] == "Name 2"
    assert controller.get_profile(2)['title'] == "Title 2"


def test_handle_change_requires_active_draft(controller):
    controller.load_page(1)

    with pytest.raises(DraftNotFoundError):
        controller.handle_change(2, 'title', "x")
    assert controller.drafts.get(2) is None


def test_handle_change_rejects_unknown_field(controller):
    controller.load_page(1)
    controller.start_edit(2)

    with pytest.raises(ValueError):
        controller.handle_change(2, 'Status', 4)


def test_draft_tags_do_not_alias_displayed_tags(controller):
    controller.load_page(1)
    controller.start_edit(1)
    controller.remove_tag(1, 0)

    assert controller.drafts.get(1)['tags'] == ['tech']
    assert controller.get_profile(1)['tags'] == ['news', 'tech']


def test_commit_tag_input_rules():
    drafts = EditDrafts()
    drafts.start({'id': 1, 'title': 't', 'name': 'n', 'description': 'd', 'tags': ['a']})

    drafts.change(1, 'tag_input', '  b  ')
    assert drafts.commit_tag_input(1)
    assert drafts.get(1)['tags'] == ['a', 'b']
    assert drafts.get(1)['tag_input'] == ''

    drafts.change(1, 'tag_input', 'a')
    assert not drafts.commit_tag_input(1)
    assert drafts.get(1)['tags'] == ['a', 'b']
    assert drafts.get(1)['tag_input'] == ''

    drafts.change(1, 'tag_input', 'A')
    assert drafts.commit_tag_input(1)
    assert drafts.get(1)['tags'] == ['a', 'b', 'A']

    drafts.change(1, 'tag_input', '   ')
    assert not drafts.commit_tag_input(1)
    assert drafts.get(1)['tags'] == ['a', 'b', 'A']


def test_remove_tag_by_position():
    drafts = EditDrafts()
    drafts.start({'id': 1, 'tags': ['x', 'y', 'z']})

    drafts.remove_tag(1, 1)

    assert drafts.get(1)['tags'] == ['x', 'z']


def test_page_load_clears_drafts(controller):
    controller.load_page(1)
    controller.start_edit(1)

    controller.next_page()

    assert len(controller.drafts) == 0


def test_save_patches_display_and_discards_draft(controller, fake_client):
    controller.load_page(1)
    controller.start_edit(3)
    controller.handle_change(3, 'title', "Curated")
    controller.handle_change(3, 'tags', ['news', 'draft', 'news'])

    assert controller.save_profile(3, ProfileStatus.COMPLETED)

    row = next(r for r in fake_client.tables['profiled'] if r['id'] == 3)
    assert row['title'] == "Curated"
    assert row['Status'] == 4

    profile = controller.get_profile(3)
    assert profile['title'] == "Curated"
    assert profile['Status'] == 4
    assert profile['tags'] == ['news', 'draft']
    assert 'tag_input' not in profile
    assert not controller.is_editing(3)
    assert fake_client.links_for(3) == sorted([7, fake_client.tag_id('draft')])
    # No re-fetch after saving
    assert len(fake_client.calls_for('profiled', 'select')) == 2


def test_failed_field_update_changes_nothing(controller, fake_client):
    controller.load_page(1)
    before = dict(controller.get_profile(1))
    controller.start_edit(1)
    controller.handle_change(1, 'title', "Lost")
    controller.handle_change(1, 'tags', ['other'])
    fake_client.fail('profiled', 'update')

    assert not controller.save_profile(1, ProfileStatus.PARTIAL)

    assert controller.get_profile(1) == before
    assert controller.drafts.get(1)['title'] == "Lost"
    assert fake_client.links_for(1) == [7, 8]
    assert fake_client.calls_for('profiledtags', 'delete') == []
    assert not controller.saving


def test_failed_tag_reconciliation_keeps_display_and_draft(controller, fake_client):
    controller.load_page(1)
    before = dict(controller.get_profile(1))
    controller.start_edit(1)
    controller.handle_change(1, 'tags', ['news', 'broken'])
    fake_client.fail('tags', 'insert', value='broken')

    assert not controller.save_profile(1, ProfileStatus.ERRORED)

    assert controller.get_profile(1) == before
    assert controller.is_editing(1)


def test_save_without_draft_does_nothing(controller, fake_client):
    controller.load_page(1)

    assert not controller.save_profile(1, ProfileStatus.COMPLETED)
    assert fake_client.calls_for('profiled', 'update') == []


def test_save_rejects_unknown_status(controller):
    controller.load_page(1)
    controller.start_edit(1)

    with pytest.raises(ValueError):
        controller.save_profile(1, 7)
    assert controller.is_editing(1)
