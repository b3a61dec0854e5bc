"""Shared constants for taskmgr."""

import re

# Used when neither the caller, the config nor project_metadata supplies a code
FALLBACK_PROJECT_CODE = "TM"

PROJECT_CODE_PATTERN = re.compile(r'^[A-Z0-9]+$')
PROJECT_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# <CODE>-<type>-<n>, e.g. TM-track-12
SEQUENCED_ID_PATTERN = re.compile(r'^(?P<code>[A-Z0-9]+)-(?P<type>[a-z]+)-(?P<seq>[0-9]+)$')

MIN_RANK = 1
MAX_RANK = 1000
DEFAULT_RANK = 500

DEFAULT_DB_FILE = "roadmap.db"
