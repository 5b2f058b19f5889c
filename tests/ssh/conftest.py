from collections.abc import Callable
from pathlib import Path

import pytest

KeyWriter = Callable[[str, str], Path]


@pytest.fixture
def write_key(ssh_home: Path) -> KeyWriter:
    """Factory writing a private key file into the fixture ``.ssh`` directory."""

    def _write(name: str, text: str) -> Path:
        path = ssh_home / ".ssh" / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
