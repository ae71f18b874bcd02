"""Profile review UI for the admin panel."""

import json
import logging
import subprocess
from typing import List, Optional

from rich.markup import escape
from textual.app import ComposeResult
from textual.widgets import DataTable, Footer, Header, Static, Input, Button, Label, TextArea
from textual.containers import Container, VerticalScroll, Horizontal
from textual.binding import Binding
from textual.screen import Screen
from textual import events

from extract_client import ExtractionError, request_extraction
from profile_review import ProfileListController
from profile_store import ProfileStatus, STATUS_FILTERS, STATUS_COLUMN

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    ProfileStatus.PROCESSING: "yellow",
    ProfileStatus.ERRORED: "red",
    ProfileStatus.PARTIAL: "magenta",
    ProfileStatus.COMPLETED: "green",
}

STATUS_BUTTON_VARIANTS = {
    ProfileStatus.PROCESSING: "warning",
    ProfileStatus.ERRORED: "error",
    ProfileStatus.PARTIAL: "primary",
    ProfileStatus.COMPLETED: "success",
}

# Draft field edited by each input widget
INPUT_FIELDS = {
    "title-input": "title",
    "name-input": "name",
    "tag-input": "tag_input",
}


def format_status(value) -> str:
    """Render a Status column value as a colored label."""
    try:
        status = ProfileStatus.coerce(value)
    except (TypeError, ValueError):
        return "[dim]-[/dim]"
    color = STATUS_COLORS[status]
    return f"[{color}]{status.label}[/{color}]"


def format_tags(tags: List[str]) -> str:
    if not tags:
        return "[dim]No Tags Found[/dim]"
    return ", ".join(f"[cyan]{escape(tag)}[/cyan]" for tag in tags)


class FilterByStatusModal(Screen):
    """Modal screen for filtering profiles by review status."""

    CSS = """
    FilterByStatusModal {
        align: center middle;
    }

    #filter-status-container {
        width: 50;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss", "Cancel", priority=True),
    ]

    def __init__(self, current_filter: str = "all"):
        super().__init__()
        self.current_filter = current_filter

    def compose(self) -> ComposeResult:
        """Create the modal content."""
        with Container(id="filter-status-container"):
            yield Static("[bold cyan]Filter Profiles by Status[/bold cyan]\n", id="modal-title")
            yield Static(self._format_choices(), id="status-list")
            yield Static("\n[dim]Press a number to apply, ESC to cancel[/dim]", id="modal-help")

    def _format_choices(self) -> str:
        lines = []
        for idx, choice in enumerate(STATUS_FILTERS, 1):
            marker = "[✓]" if choice == self.current_filter else "[ ]"
            label = "All" if choice == "all" else choice
            lines.append(f"{marker} ({idx}) - {label}")
        return "\n".join(lines)

    def on_key(self, event: events.Key) -> None:
        """Apply the filter chosen by number."""
        if event.key.isdigit():
            idx = int(event.key) - 1
            if 0 <= idx < len(STATUS_FILTERS):
                event.prevent_default()
                event.stop()
                self.dismiss(STATUS_FILTERS[idx])

    def action_dismiss(self):
        """Cancel the modal."""
        self.dismiss(None)


class EditProfileModal(Screen):
    """Modal screen for editing a profile draft and saving it with a status."""

    CSS = """
    EditProfileModal {
        align: center middle;
    }

    #edit-profile-container {
        width: 90;
        height: 90%;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }

    .input-field {
        margin: 0 0 1 0;
    }

    #description-input {
        height: 6;
    }

    #tag-chips {
        height: auto;
        min-height: 1;
    }

    .tag-chip {
        min-width: 4;
        margin: 0 1 0 0;
    }

    .button-row {
        height: auto;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss", "Cancel", priority=True),
    ]

    def __init__(self, controller: ProfileListController, profile_id: int):
        super().__init__()
        self.controller = controller
        self.profile_id = profile_id

    @property
    def draft(self) -> dict:
        return self.controller.drafts.get(self.profile_id) or {}

    def compose(self) -> ComposeResult:
        """Create the modal content."""
        profile = self.controller.get_profile(self.profile_id) or {}
        draft = self.draft

        with VerticalScroll(id="edit-profile-container"):
            yield Static(
                f"[bold cyan]Edit Profile {self.profile_id}[/bold cyan] "
                f"[dim]{escape(profile.get('url') or '')}[/dim]\n",
                id="modal-title"
            )
            yield Label("Title")
            yield Input(value=draft.get('title') or '', placeholder="Title", id="title-input", classes="input-field")
            yield Label("Name")
            yield Input(value=draft.get('name') or '', placeholder="Name", id="name-input", classes="input-field")
            yield Label("Description")
            yield TextArea(draft.get('description') or '', id="description-input", classes="input-field")
            yield Label("Tags (press a tag to remove it)")
            yield Horizontal(*self._tag_chips(), id="tag-chips")
            yield Input(placeholder="Type a tag and press Enter", id="tag-input", classes="input-field")
            yield Label("Save As:")
            with Horizontal(classes="button-row"):
                for status in ProfileStatus:
                    yield Button(status.label, variant=STATUS_BUTTON_VARIANTS[status], id=f"save-{int(status)}")
                yield Button("Cancel", variant="default", id="cancel-button")

    def _tag_chips(self) -> list:
        tags = self.draft.get('tags') or []
        if not tags:
            return [Static("[dim]No tags[/dim]")]
        return [
            Button(f"{escape(tag)} ×", name=str(idx), classes="tag-chip")
            for idx, tag in enumerate(tags)
        ]

    def _refresh_tag_chips(self):
        chips = self.query_one("#tag-chips", Horizontal)
        chips.remove_children()
        chips.mount(*self._tag_chips())

    def _commit_tag_input(self):
        if self.controller.commit_tag_input(self.profile_id):
            self._refresh_tag_chips()
        tag_input = self.query_one("#tag-input", Input)
        pending = self.draft.get('tag_input') or ''
        if tag_input.value != pending:
            tag_input.value = pending

    def on_mount(self):
        """Focus the title input when modal opens."""
        self.query_one("#title-input", Input).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Mirror input edits into the draft."""
        field = INPUT_FIELDS.get(event.input.id)
        if field is None or not self.controller.is_editing(self.profile_id):
            return

        if field == 'tag_input' and event.value.endswith(','):
            # Comma commits the tag typed so far
            self.controller.handle_change(self.profile_id, field, event.value[:-1])
            self._commit_tag_input()
            return

        self.controller.handle_change(self.profile_id, field, event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Enter in the tag input commits the pending tag."""
        if event.input.id == "tag-input" and self.controller.is_editing(self.profile_id):
            self._commit_tag_input()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if self.controller.is_editing(self.profile_id):
            self.controller.handle_change(self.profile_id, 'description', event.text_area.text)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        button = event.button

        if button.has_class("tag-chip"):
            self.controller.remove_tag(self.profile_id, int(button.name))
            self._refresh_tag_chips()
        elif button.id and button.id.startswith("save-"):
            status = ProfileStatus(int(button.id.split("-", 1)[1]))
            if self.controller.save_profile(self.profile_id, status):
                self.app.notify("Profile updated.", severity="information")
                self.dismiss(True)
            else:
                self.notify("Failed to update profile.", severity="error")
        elif button.id == "cancel-button":
            self.action_dismiss()

    def action_dismiss(self):
        """Discard the draft and close the modal."""
        self.controller.cancel_edit(self.profile_id)
        self.dismiss(False)


class ExtractMetadataScreen(Screen):
    """Screen that sends a URL to the extraction proxy and shows the result."""

    CSS = """
    #extract-container {
        padding: 1 2;
    }

    #extract-result {
        margin: 1 0;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss", "Back", priority=True),
    ]

    def __init__(self):
        super().__init__()
        self.loading = False

    def compose(self) -> ComposeResult:
        """Create the screen content."""
        yield Header()
        with VerticalScroll(id="extract-container"):
            yield Static("[bold cyan]Extract Metadata[/bold cyan]\n")
            yield Input(placeholder="Enter URL here", id="url-input")
            yield Button("Extract Metadata", variant="primary", id="extract-button")
            yield Static(id="extract-result")
        yield Footer()

    def on_mount(self):
        self.query_one("#url-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.start_extraction()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "extract-button":
            self.start_extraction()

    def start_extraction(self):
        if self.loading:
            return

        url = self.query_one("#url-input", Input).value
        if not url.strip():
            self._show_error("Please enter a URL")
            return

        self.loading = True
        self.query_one("#extract-button", Button).label = "Extracting..."
        self.app.run_worker(lambda: self.extract(url), thread=True)

    def extract(self, url: str):
        """Worker: call the proxy off the UI thread."""
        try:
            result = request_extraction(url)
        except ExtractionError as e:
            logger.error(f"Extraction failed for {url}: {e}")
            self.app.call_from_thread(self._show_error, str(e))
        else:
            self.app.call_from_thread(self._show_result, result)
        finally:
            self.app.call_from_thread(self._reset_button)

    def _reset_button(self):
        self.loading = False
        self.query_one("#extract-button", Button).label = "Extract Metadata"

    def _show_error(self, message: str):
        self.query_one("#extract-result", Static).update(f"[red]Error: {escape(message)}[/red]")

    def _show_result(self, result):
        formatted = escape(json.dumps(result, indent=2, ensure_ascii=False))
        self.query_one("#extract-result", Static).update(
            f"[bold]Extracted Data:[/bold]\n{formatted}"
        )

    def action_dismiss(self):
        """Return to the profile list."""
        self.dismiss()


class ProfileReviewScreen(Screen):
    """Main screen for reviewing profiles."""

    CSS = """
    ProfileReviewScreen DataTable {
        height: 1fr;
    }

    #profile-status-bar {
        dock: top;
        height: 1;
        background: $surface;
        color: $text;
        padding: 0 1;
    }

    #page-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("e", "edit_profile", "Edit"),
        Binding("f", "filter_by_status", "Filter"),
        Binding("n", "next_page", "Next Page"),
        Binding("p", "previous_page", "Previous Page"),
        Binding("r", "refresh", "Refresh"),
        Binding("o", "open_profile_url", "Open URL"),
        Binding("x", "extract_metadata", "Extract"),
        Binding("q", "app.quit", "Quit"),
        Binding("right", "next_page", "Next", show=False),
        Binding("left", "previous_page", "Previous", show=False),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
    ]

    def __init__(self, controller: Optional[ProfileListController] = None, status_filter: Optional[str] = None):
        super().__init__()
        self.controller = controller or ProfileListController()
        self.initial_filter = status_filter

    def compose(self) -> ComposeResult:
        """Create child widgets for the screen."""
        yield Header()
        yield Static(id="profile-status-bar")
        yield DataTable(cursor_type="row")
        yield Static(id="page-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Set up the table and load the first page."""
        table = self.query_one(DataTable)
        table.add_column("ID", key="id", width=6)
        table.add_column("URL", key="url", width=30)
        table.add_column("Title", key="title", width=30)
        table.add_column("Name", key="name", width=20)
        table.add_column("Status", key="status", width=11)
        table.add_column("Tags", key="tags", width=30)

        if self.initial_filter:
            loaded = self.controller.set_filter(self.initial_filter)
        else:
            loaded = self.controller.load_page(1)
        if not loaded:
            self.notify("Failed to load profiles.", severity="error")

        self.display_profiles()
        table.focus()

    def display_profiles(self, preserve_cursor_profile_id: Optional[int] = None):
        """Populate the table from the controller's current page.

        Args:
            preserve_cursor_profile_id: If provided, restore cursor to this profile ID
        """
        table = self.query_one(DataTable)
        table.clear()

        target_row_idx = None
        for idx, profile in enumerate(self.controller.profiles):
            table.add_row(
                str(profile['id']),
                escape(profile.get('url') or ''),
                escape(profile.get('title') or ''),
                escape(profile.get('name') or ''),
                format_status(profile.get(STATUS_COLUMN)),
                format_tags(profile.get('tags') or []),
                key=str(profile['id']),
            )
            if preserve_cursor_profile_id is not None and profile['id'] == preserve_cursor_profile_id:
                target_row_idx = idx

        self.update_status_bars()

        if target_row_idx is not None:
            table.move_cursor(row=target_row_idx)

    def update_status_bars(self):
        """Update record counts and the page indicator."""
        status_bar = self.query_one("#profile-status-bar", Static)
        if self.controller.profiles:
            status_bar.update(self.controller.summary())
        else:
            status_bar.update(f"{self.controller.summary()} [italic]No profiles found.[/italic]")

        prev_hint = "[bold]< p[/bold]" if self.controller.has_previous else "[dim]< p[/dim]"
        next_hint = "[bold]n >[/bold]" if self.controller.has_next else "[dim]n >[/dim]"
        page_bar = self.query_one("#page-bar", Static)
        page_bar.update(f"{prev_hint}  {self.controller.page_label()}  {next_hint}")

    def _selected_profile_id(self) -> Optional[int]:
        table = self.query_one(DataTable)
        cursor_row = table.cursor_row

        if cursor_row is None:
            return None
        row_keys = list(table.rows.keys())
        if cursor_row < len(row_keys):
            return int(row_keys[cursor_row].value)
        return None

    def _reload(self, loaded: bool):
        if not loaded:
            self.notify("Failed to load profiles.", severity="error")
        self.display_profiles()

    def action_next_page(self):
        """Show the next page."""
        if self.controller.has_next:
            self._reload(self.controller.next_page())

    def action_previous_page(self):
        """Show the previous page."""
        if self.controller.has_previous:
            self._reload(self.controller.previous_page())

    def action_refresh(self):
        """Reload the current page."""
        self._reload(self.controller.load_page())

    def action_filter_by_status(self):
        """Pick a status filter; always restarts at page 1."""
        def handle_filter(result):
            if result is not None:
                self._reload(self.controller.set_filter(result))

        self.app.push_screen(FilterByStatusModal(self.controller.filter_label), handle_filter)

    def action_edit_profile(self):
        """Edit the currently selected profile."""
        profile_id = self._selected_profile_id()
        if profile_id is None or not self.controller.start_edit(profile_id):
            return

        def handle_edit(saved):
            if saved:
                # Controller already patched its list; no re-fetch
                self.display_profiles(preserve_cursor_profile_id=profile_id)

        self.app.push_screen(EditProfileModal(self.controller, profile_id), handle_edit)

    def on_data_table_row_selected(self, event):
        """Enter on a row opens the editor."""
        self.action_edit_profile()

    def action_open_profile_url(self):
        """Open the URL of the currently selected profile."""
        profile_id = self._selected_profile_id()
        if profile_id is None:
            return
        profile = self.controller.get_profile(profile_id)
        url = profile.get('url') if profile else None
        if url:
            subprocess.run(["open", url])

    def action_extract_metadata(self):
        """Open the URL extraction screen."""
        self.app.push_screen(ExtractMetadataScreen())

    def action_cursor_down(self):
        """Move cursor down."""
        table = self.query_one(DataTable)
        table.action_cursor_down()

    def action_cursor_up(self):
        """Move cursor up."""
        table = self.query_one(DataTable)
        table.action_cursor_up()
