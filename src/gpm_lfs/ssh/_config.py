"""SSH client configuration lookup.

Understands the subset of the ``~/.ssh/config`` grammar needed to pick a
private key for a host: ``Host <pattern...>`` blocks followed by
``Key Value`` (or ``Key=Value``) option lines.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import SSHConfigError

logger = logging.getLogger(__name__)

_COMMENT = "#"
_LINE_PATTERN = re.compile(
    r"^\s*(?P<key>[A-Za-z][A-Za-z0-9]*)(?:\s*=\s*|\s+)(?P<value>.*?)\s*$"
)


@dataclass(frozen=True)
class SSHConfigEntry:
    """One ``Host`` block of an SSH client configuration file."""

    patterns: tuple[str, ...]
    """Host patterns, in file order."""

    options: dict[str, str] = field(default_factory=dict)
    """Option name to value. The first occurrence of an option wins."""

    def matches(self, host: str) -> bool:
        return any(_pattern_matches(pattern, host) for pattern in self.patterns)

    def get(self, option: str) -> str | None:
        """Look up an option value, ignoring case in the option name."""
        option = option.lower()
        for key, value in self.options.items():
            if key.lower() == option:
                return value
        return None


def _pattern_matches(pattern: str, host: str) -> bool:
    if "*" not in pattern:
        return pattern == host

    regexp = re.escape(pattern).replace(r"\*", ".*")
    return re.fullmatch(regexp, host) is not None


def parse_ssh_config(text: str) -> list[SSHConfigEntry]:
    """Parse SSH client configuration text into ``Host`` blocks.

    Options that appear before the first ``Host`` line and ``Match`` blocks
    are skipped: they never select a host by name.

    Raises:
        SSHConfigError: If a line has no value or a ``Host`` line has no
            pattern.
    """
    entries: list[SSHConfigEntry] = []
    current: SSHConfigEntry | None = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(_COMMENT):
            continue

        match = _LINE_PATTERN.match(stripped)
        if match is None or not match.group("value"):
            raise SSHConfigError(
                f"line {lineno}: expected 'Key Value', got {stripped!r}"
            )

        key = match.group("key")
        value = _unquote(match.group("value"))

        if key.lower() == "host":
            patterns = tuple(value.split())
            if not patterns:
                raise SSHConfigError(f"line {lineno}: Host without pattern")
            current = SSHConfigEntry(patterns=patterns)
            entries.append(current)
        elif key.lower() == "match":
            current = None
        elif current is not None:
            current.options.setdefault(key, value)

    return entries


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def find_identity_file(
    host: str,
    config_path: Path,
    home: Path | None = None,
) -> Path | None:
    """Find the ``IdentityFile`` configured for a host.

    Blocks are scanned in file order and the first block with a pattern
    matching ``host`` decides: its ``IdentityFile`` is returned, or None if
    it has none. Later blocks are never consulted.

    The file is read on every call. An unreadable or malformed file yields
    None so that the caller can fall back to a default key.

    Args:
        host: Host name to look up.
        config_path: Path of the SSH client configuration file.
        home: Home directory used to expand a leading ``~`` in the value.
    """
    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("could not read SSH config %s: %s", config_path, e)
        return None

    logger.debug("parsing %s to find host %s", config_path, host)

    try:
        entries = parse_ssh_config(text)
    except SSHConfigError as e:
        logger.warning("could not parse SSH config %s: %s", config_path, e)
        return None

    for entry in entries:
        if not entry.matches(host):
            continue

        logger.debug(
            "found matching host with patterns %s", " ".join(entry.patterns)
        )
        identity_file = entry.get("IdentityFile")
        if identity_file is None:
            return None

        logger.debug("found IdentityFile option with value %s", identity_file)
        return _expand_home(identity_file, home)

    return None


def _expand_home(value: str, home: Path | None) -> Path:
    if home is not None and (value == "~" or value.startswith("~/")):
        return home / value[2:]
    return Path(value).expanduser()
