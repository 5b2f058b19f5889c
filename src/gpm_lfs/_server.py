"""LFS server discovery from a Git remote URL.

Follows the Git LFS server discovery convention: the batch API lives under
``<remote>.git/info/lfs`` served over HTTPS.
"""

import logging
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

SSH_SCHEMES = frozenset({"ssh", "git+ssh", "ssh+git"})


def guess_lfs_url(repository: str) -> str:
    """Derive the LFS batch API base URL from a Git remote URL.

    The scheme is forced to ``https`` and any explicit port is dropped.
    User info of an HTTP(S) remote is kept, so that the batch call can use
    it for HTTP basic auth. User info of an SSH remote, as in
    ``ssh://git@host/...``, is the SSH login and is dropped.

    Examples:
        >>> guess_lfs_url("ssh://git@example.com:2222/group/repo.git")
        'https://example.com/group/repo.git/info/lfs'
        >>> guess_lfs_url("https://example.com/group/repo")
        'https://example.com/group/repo.git/info/lfs'
    """
    logger.debug("guessing LFS server URL from %s", redact_url(repository))

    parts = urlsplit(repository)
    netloc = parts.hostname or ""
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if parts.username and parts.scheme not in SSH_SCHEMES:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    # query and fragment are not part of the repository location
    base = urlunsplit(("https", netloc, parts.path or "/", "", ""))

    if base.endswith(".git"):
        lfs_url = f"{base}/info/lfs"
    else:
        lfs_url = f"{base}.git/info/lfs"

    logger.debug("guessed LFS server URL is %s", redact_url(lfs_url))
    return lfs_url


def redact_url(url: str) -> str:
    """Hide the password of a URL, for logging."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))
