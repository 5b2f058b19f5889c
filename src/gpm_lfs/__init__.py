"""Git LFS pointer resolution for a Git-based package manager."""

from ._auth import LFSAuthToken, get_lfs_auth_token
from ._client import LFSDownloadLink, download_lfs_object, fetch_download_link
from ._pointer import (
    LFS_POINTER_VERSION,
    LFSPointer,
    compute_oid,
    is_lfs_pointer,
    parse_lfs_pointer,
)
from ._server import guess_lfs_url
from ._util.secret import SecretBuffer
from ._util.sink import ByteSink, ProgressWriter
from .exceptions import (
    LFSAuthenticationError,
    LFSError,
    LFSIntegrityError,
    LFSObjectError,
    LFSPointerError,
    LFSResponseError,
    LFSServerError,
    LFSTransportError,
    SSHAuthenticationError,
    SSHConfigError,
    SSHError,
    SSHKeyFormatError,
)
from .resolver import fetch_package_file, resolve_lfs_link
from .ssh import Credential, CredentialSource, SSHCredentialProvider, SSHSettings

__all__ = [
    "LFS_POINTER_VERSION",
    "ByteSink",
    "Credential",
    "CredentialSource",
    "LFSAuthToken",
    "LFSAuthenticationError",
    "LFSDownloadLink",
    "LFSError",
    "LFSIntegrityError",
    "LFSObjectError",
    "LFSPointer",
    "LFSPointerError",
    "LFSResponseError",
    "LFSServerError",
    "LFSTransportError",
    "ProgressWriter",
    "SSHAuthenticationError",
    "SSHConfigError",
    "SSHCredentialProvider",
    "SSHError",
    "SSHKeyFormatError",
    "SSHSettings",
    "SecretBuffer",
    "compute_oid",
    "download_lfs_object",
    "fetch_download_link",
    "fetch_package_file",
    "get_lfs_auth_token",
    "guess_lfs_url",
    "is_lfs_pointer",
    "parse_lfs_pointer",
    "resolve_lfs_link",
]
