import hashlib
import os
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from gpm_lfs._pointer import LFS_POINTER_VERSION

sys.path.append(os.path.join(os.path.dirname(__file__), "helpers"))

PointerFactory = Callable[[Path, bytes], str]


def _write_lfs_pointer(path: Path, content: bytes) -> str:
    """Write an LFS pointer file and return the OID for the real content."""
    oid = hashlib.sha256(content).hexdigest()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f"{LFS_POINTER_VERSION}\noid sha256:{oid}\nsize {len(content)}\n",
        encoding="utf-8",
    )
    return oid


@pytest.fixture
def make_pointer() -> PointerFactory:
    return _write_lfs_pointer


@pytest.fixture
def ssh_home(tmp_path: Path) -> Path:
    """Fixture home directory with an empty ``.ssh`` directory."""
    home = tmp_path / "home"
    (home / ".ssh").mkdir(parents=True)
    return home
