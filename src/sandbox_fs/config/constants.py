"""Named constants for values that appear in multiple places or need explanation.

Each constant has a comment explaining what depends on it, so future
maintainers can decide whether a change is safe without grepping for side-effects.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Chunked reads
# ---------------------------------------------------------------------------

# Nominal size of one part returned by read_file_by_parts, in bytes.
# Agents consume parts as tool results; 95k keeps a part under common
# tool-result limits while still covering most source files in one call.
PART_SIZE: int = 95_000

# How far the reader looks backward (for the start of a part) and forward
# (for the end of a part) for a newline. Lines longer than this are cut.
MAX_BACKTRACK: int = 300

# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

# Size of one base64 chunk passed on a shell command line when writing a file.
# Stays far below ARG_MAX and the wsl.exe command-line limit.
WRITE_CHUNK_SIZE: int = 4096

# Marker inserted into temp file names so stray files from an interrupted
# write are easy to recognise and clean up.
TEMP_FILE_MARKER: str = ".sandbox-fs-"

# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

# Default wall-clock timeout for one backend command, in seconds.
# None means wait forever (a hung backend blocks the calling task).
BACKEND_DEFAULT_TIMEOUT_S: float | None = None

# Separator between files in read_multiple_files output.
MULTI_FILE_SEPARATOR: str = "\n---\n"
