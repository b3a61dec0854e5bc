"""
Safe .env file reader/writer for project.env.

Parses KEY=value files without shell execution and rejects values that look
like shell injection.
"""

import re
from pathlib import Path

FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
    r';',           # command chaining
    r'&&',
    r'\|',          # pipe / OR chaining
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _check_value(lineno: int, value: str) -> None:
    for pattern in FORBIDDEN_PATTERNS:
        if re.search(pattern, value):
            raise ValueError(f"Line {lineno}: Forbidden pattern in value")


def load_env(filepath: str | Path) -> dict[str, str]:
    """
    Parse env file safely, return dict.

    Raises:
        FileNotFoundError: if file doesn't exist
        ValueError: if syntax invalid or forbidden pattern found
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Env file not found: {filepath}")

    result: dict[str, str] = {}
    for lineno, raw in enumerate(path.read_text().splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue

        key, sep, value = line.partition('=')
        if not sep:
            raise ValueError(f"Line {lineno}: Invalid syntax (no '=')")

        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Line {lineno}: Invalid key '{key}'")

        value = _unquote(value.strip())
        _check_value(lineno, value)
        result[key] = value

    return result


def write_env(filepath: str | Path, values: dict[str, str]) -> None:
    """Write values as KEY="value" lines, validating keys and values first."""
    lines = []
    for lineno, (key, value) in enumerate(values.items(), 1):
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Invalid key '{key}'")
        value = str(value)
        if '"' in value or '\n' in value:
            raise ValueError(f"Value for {key} may not contain quotes or newlines")
        _check_value(lineno, value)
        lines.append(f'{key}="{value}"')

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
