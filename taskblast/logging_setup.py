"""Logging configuration for the command-line entry point."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from taskblast.display import console


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich, on the same console as the UI.

    Call this once, before the first log call.  Library code never
    configures logging itself; it only uses ``logging.getLogger(__name__)``.
    """
    root = logging.getLogger()
    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = RichHandler(console=console, show_path=verbose, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("taskblast").setLevel(logging.DEBUG if verbose else logging.INFO)
