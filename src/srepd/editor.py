"""External editor integration for incident notes.

The editor is opened on a temp file seeded with a commented header. Lines
starting with ``#`` are stripped when the note is read back, so saving
the untouched template yields empty content.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from pathlib import Path

from srepd.pd.models import Incident

COMMENT_PREFIX = "#"


def note_template(incident: Incident) -> str:
    lines = [
        f"# Note for incident {incident.id}: {incident.title}",
        f"# Service: {incident.service_name or 'unknown'}",
    ]
    if incident.html_url:
        lines.append(f"# {incident.html_url}")
    lines += [
        "#",
        "# Lines starting with '#' are ignored. Save an empty note to cancel.",
        "",
    ]
    return "\n".join(lines) + "\n"


def write_note_file(incident: Incident) -> Path:
    """Create the temp file the editor works on. Caller owns deletion."""
    fd, path = tempfile.mkstemp(prefix=f"srepd-{incident.id}-", suffix=".md")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(note_template(incident))
    return Path(path)


def editor_argv(editor: str, path: Path) -> list[str]:
    """argv for ``editor`` (which may carry its own flags) opening ``path``."""
    return [*shlex.split(editor), str(path)]


def read_note(path: Path) -> str:
    """Edited note content with template comment lines removed."""
    text = path.read_text(encoding="utf-8")
    kept = [line for line in text.splitlines() if not line.startswith(COMMENT_PREFIX)]
    return "\n".join(kept).strip()
