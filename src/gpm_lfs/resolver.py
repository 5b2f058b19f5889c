"""LFS pointer resolution.

Turns a pointer file checked out from a package repository into the bytes
of the object it stands for.

The batch API is first called without credentials, at the URL guessed from
the Git remote. If, and only if, the server answers 401 Unauthorized, an
LFS token is obtained over SSH and the batch call is retried once with it.
A second 401 is final.
"""

import logging
import shutil
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from ._auth import get_lfs_auth_token
from ._client import LFSDownloadLink, download_lfs_object, fetch_download_link
from ._pointer import LFSPointer, parse_lfs_pointer
from ._server import guess_lfs_url
from ._util.sink import ByteSink, ProgressCallback, ProgressWriter
from .exceptions import LFSAuthenticationError
from .ssh.credentials import CredentialSource

logger = logging.getLogger(__name__)


def resolve_lfs_link(
    repository: str,
    refspec: str | None,
    pointer_path: Path,
    target: ByteSink,
    credentials: CredentialSource,
    *,
    client: httpx.Client | None = None,
) -> bool:
    """Download the object a pointer file refers to into ``target``.

    Args:
        repository: Git remote URL of the repository holding the pointer.
        refspec: Git reference the pointer was checked out from.
        pointer_path: File that may be an LFS pointer.
        target: Empty sink receiving the object content.
        credentials: Source of SSH credentials, consulted only after a 401.
        client: HTTP client to use.

    Returns:
        True if the object was downloaded and verified, False if
        ``pointer_path`` is not an LFS pointer and should be used as is.

    Raises:
        LFSError: If resolution, download or verification fails.
    """
    pointer = parse_lfs_pointer(pointer_path)
    if pointer is None:
        return False

    link = _resolve_download_link(repository, refspec, pointer, credentials, client)
    download_lfs_object(pointer, link, target, client=client)
    return True


def _resolve_download_link(
    repository: str,
    refspec: str | None,
    pointer: LFSPointer,
    credentials: CredentialSource,
    client: httpx.Client | None,
) -> LFSDownloadLink:
    lfs_url = guess_lfs_url(repository)

    logger.debug("attempting LFS download without further authentication")
    try:
        return fetch_download_link(pointer, lfs_url, refspec=refspec, client=client)
    except LFSAuthenticationError as e:
        # basic auth from the remote URL was already rejected
        if urlsplit(lfs_url).username:
            raise
        logger.debug("unauthorized LFS download failed: %s", e.message)

    logger.debug("retrying with authentication")
    host = urlsplit(repository).hostname
    if not host:
        raise LFSAuthenticationError(f"no host to authenticate with in {repository}")

    with credentials.resolve(host) as credential:
        if credential.key_path is None:
            raise LFSAuthenticationError(f"no SSH private key available for {host}")
        token = get_lfs_auth_token(
            repository, "download", credential.key_path, credential.passphrase
        )

    return fetch_download_link(
        pointer,
        token.href,
        refspec=refspec,
        authorization=token.header,
        client=client,
    )


def fetch_package_file(
    repository: str,
    refspec: str | None,
    source_path: Path,
    dest_path: Path,
    credentials: CredentialSource,
    *,
    on_progress: ProgressCallback | None = None,
    client: httpx.Client | None = None,
) -> bool:
    """Materialize a repository file at ``dest_path``.

    LFS pointers are resolved into their object; any other file is copied
    as is. Objects are downloaded to ``<dest_path>.downloading`` and moved
    into place only once verified, so ``dest_path`` never holds partial or
    corrupted content.

    Args:
        repository: Git remote URL of the repository holding the file.
        refspec: Git reference the file was checked out from.
        source_path: File in the repository working directory.
        dest_path: Where to write the real content. Overwritten if present.
        credentials: Source of SSH credentials, consulted only after a 401.
        on_progress: Called with ``(written, total)`` bytes while downloading.
        client: HTTP client to use.

    Returns:
        True if the file was downloaded from LFS, False if it was copied.

    Raises:
        LFSError: If resolution, download or verification fails.
        OSError: If ``source_path`` cannot be read or ``dest_path`` cannot be
            written.
    """
    pointer = parse_lfs_pointer(source_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    if pointer is None:
        shutil.copyfile(source_path, dest_path)
        return False

    link = _resolve_download_link(repository, refspec, pointer, credentials, client)
    partial_file = dest_path.with_suffix(dest_path.suffix + ".downloading")

    try:
        with open(partial_file, "w+b") as f:
            target: ByteSink = f
            if on_progress is not None:
                target = ProgressWriter(f, pointer.size, on_progress)
            download_lfs_object(pointer, link, target, client=client)
        partial_file.replace(dest_path)
    except Exception:
        partial_file.unlink(missing_ok=True)
        raise

    logger.info("fetched %s into %s", source_path.name, dest_path)
    return True
