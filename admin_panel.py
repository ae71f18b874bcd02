#!/usr/bin/env python3
"""
Admin panel for reviewing and curating extracted profile records.
"""

import argparse
import logging
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding

from profile_store import STATUS_FILTERS
from supabase_client import get_supabase_client
from profile_ui import ProfileReviewScreen

# Setup debug logging
LOG_DIR = Path("log")
LOG_FILE = LOG_DIR / "debug.log"

logger = logging.getLogger(__name__)


def setup_logging():
    """Log to a file only; console output would disrupt the TUI."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE)
        ]
    )


class ProfileAdminApp(App):
    """Profile review admin application."""

    TITLE = "Admin Panel"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(self, status_filter: str = None):
        super().__init__()
        self.status_filter = status_filter

    def on_mount(self) -> None:
        self.push_screen(ProfileReviewScreen(status_filter=self.status_filter))

    def compose(self) -> ComposeResult:
        # Empty compose as we push the review screen immediately
        yield from []


def main():
    """Run the application."""
    parser = argparse.ArgumentParser(
        description="Review, tag and set the status of extracted profiles."
    )
    parser.add_argument(
        "--status",
        choices=STATUS_FILTERS,
        default="all",
        help="Initial status filter (default: all)"
    )
    args = parser.parse_args()

    setup_logging()

    try:
        get_supabase_client()
    except ValueError as e:
        print(f"✗ Error: {e}")
        sys.exit(1)

    logger.info(f"Starting admin panel (filter: {args.status})")

    app = ProfileAdminApp(status_filter=args.status)
    app.run()


if __name__ == "__main__":
    main()
