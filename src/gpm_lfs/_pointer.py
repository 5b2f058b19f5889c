"""LFS pointer file detection and parsing."""

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ._util.sink import ByteSink
from .exceptions import LFSPointerError

logger = logging.getLogger(__name__)

LFS_POINTER_VERSION = "version https://git-lfs.github.com/spec/v1"
_LFS_POINTER_VERSION_LINE = (LFS_POINTER_VERSION + "\n").encode("utf-8")
_OID_PREFIX = b"oid sha256:"
_SIZE_PREFIX = b"size "
_OID_PATTERN = re.compile(r"^[0-9a-f]{64}$")
_SIZE_PATTERN = re.compile(r"^[0-9]+$")
_MAX_SIZE = 2**64 - 1
# longer than any valid oid or size line
_MAX_FIELD_LINE = 128
_HASH_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class LFSPointer:
    """Parsed LFS pointer file."""

    oid: str
    """SHA-256 content hash (64 lowercase hex characters)."""

    size: int
    """File size in bytes."""


def is_lfs_pointer(file_path: Path) -> bool:
    """Check if a file is an LFS pointer.

    Reads only the first line to minimize I/O.
    """
    try:
        with open(file_path, "rb") as f:
            first_line = f.readline(len(_LFS_POINTER_VERSION_LINE))
        return first_line == _LFS_POINTER_VERSION_LINE
    except OSError:
        return False


def parse_lfs_pointer(file_path: Path) -> LFSPointer | None:
    """Parse an LFS pointer file.

    Returns:
        Parsed pointer, or None if the file is not an LFS pointer (its
        first line is not the version line, or it cannot be read). Such a
        file is meant to be used as literal content.

    Raises:
        LFSPointerError: If the version line is present but the oid or
            size line that follows is malformed.
    """
    logger.debug("attempting to match %s as an LFS pointer", file_path)

    try:
        f = open(file_path, "rb")
    except OSError as e:
        logger.debug("could not open %s: %s", file_path, e)
        return None

    with f:
        try:
            first_line = f.readline(len(_LFS_POINTER_VERSION_LINE))
        except OSError as e:
            logger.debug("could not read %s: %s", file_path, e)
            return None

        if first_line != _LFS_POINTER_VERSION_LINE:
            logger.debug("%s is not an LFS pointer", file_path)
            return None

        oid_line = f.readline(_MAX_FIELD_LINE)
        size_line = f.readline(_MAX_FIELD_LINE)

    oid = _parse_field(file_path, oid_line, _OID_PREFIX, _OID_PATTERN, "oid")
    size = int(_parse_field(file_path, size_line, _SIZE_PREFIX, _SIZE_PATTERN, "size"))
    if size > _MAX_SIZE:
        raise LFSPointerError(f"{file_path}: LFS pointer size {size} out of range")

    logger.debug("oid = %s, size = %d", oid, size)
    return LFSPointer(oid=oid, size=size)


def _parse_field(
    file_path: Path,
    line: bytes,
    prefix: bytes,
    pattern: re.Pattern[str],
    name: str,
) -> str:
    if not line.startswith(prefix):
        raise LFSPointerError(
            f"{file_path}: expected LFS pointer {name} line, got {line!r}"
        )

    raw = line[len(prefix) :]
    if raw.endswith(b"\n"):
        raw = raw[:-1]

    try:
        value = raw.decode("ascii")
    except UnicodeDecodeError:
        value = ""

    if not pattern.match(value):
        raise LFSPointerError(f"{file_path}: invalid LFS pointer {name} {raw!r}")
    return value


def compute_oid(stream: ByteSink) -> str:
    """Return the SHA-256 hex digest of a seekable stream's whole content.

    The stream is rewound to its start before hashing.
    """
    stream.seek(0)
    hasher = hashlib.sha256()
    while True:
        chunk = stream.read(_HASH_CHUNK_SIZE)
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.hexdigest()
