"""External executable resolution helpers.

Responsibilities:
- Resolve external tool paths (`pdftotext`) with deterministic precedence.
"""

from __future__ import annotations

import os
import shutil


def resolve_executable(command_name: str) -> str:
    """Resolve an executable path for a command name.

    Resolution order:
    1. `MANUALPRESS_<COMMAND>` environment variable pointing at an existing file.
    2. System `PATH`.
    3. Raw command name (allowing subprocess to raise a native missing-binary error).
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    override = os.environ.get(f"MANUALPRESS_{normalized.upper().replace('-', '_')}")
    if override and os.path.isfile(override):
        return override

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized
