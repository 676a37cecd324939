"""Destination prompts used by manual backups."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from core.errors import CancelledByUser


class DestinationPrompt(Protocol):
    def __call__(self, default_name: str) -> Optional[Path]:
        """Return the chosen path, or ``None`` when the user cancels."""


class TkSaveDialogPrompt:
    """Ask for a destination with the Tk "Save As" dialog."""

    def __init__(self, title: str = "Save Backup", extension: str = "db") -> None:
        self._title = title
        self._extension = extension.lstrip(".")

    def __call__(self, default_name: str) -> Optional[Path]:
        import tkinter as tk
        from tkinter import filedialog

        root = tk.Tk()
        root.withdraw()
        try:
            chosen = filedialog.asksaveasfilename(
                title=self._title,
                initialfile=default_name,
                defaultextension=f".{self._extension}",
                filetypes=[("Database Files", f"*.{self._extension}"), ("All Files", "*.*")],
            )
        finally:
            root.destroy()
        if not chosen:
            raise CancelledByUser("Backup cancelled")
        return Path(chosen)


class NoPrompt:
    """Prompt for headless runs: every manual backup is cancelled."""

    def __call__(self, default_name: str) -> Optional[Path]:
        return None


__all__ = ["DestinationPrompt", "NoPrompt", "TkSaveDialogPrompt"]
