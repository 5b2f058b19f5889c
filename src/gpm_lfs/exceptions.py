"""LFS-related exceptions."""


class LFSError(Exception):
    """Base exception for LFS operations."""


class LFSPointerError(LFSError):
    """Pointer file has the LFS version line but a broken oid or size line."""


class LFSTransportError(LFSError):
    """Error reaching the LFS batch API or the object download URL."""


class LFSServerError(LFSError):
    """LFS server answered with a non-2xx status other than 401."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"LFS server error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class LFSAuthenticationError(LFSError):
    """LFS server answered 401 Unauthorized."""

    def __init__(self, message: str) -> None:
        super().__init__(f"LFS authentication error: {message}")
        self.message = message


class LFSObjectError(LFSError):
    """Batch API reported an error for the requested object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(
            f"could not get LFS download link, error {code}: {message}"
        )
        self.code = code
        self.message = message


class LFSResponseError(LFSError):
    """Malformed JSON or missing field in a server response."""


class LFSIntegrityError(LFSError):
    """Downloaded content does not hash to the pointer's oid."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"SHA-256 mismatch for LFS object: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class SSHError(LFSError):
    """Error connecting or running a command over SSH."""


class SSHAuthenticationError(SSHError):
    """SSH public key authentication was rejected."""


class SSHConfigError(LFSError):
    """SSH client configuration file could not be parsed."""


class SSHKeyFormatError(LFSError):
    """Private key container is truncated or not valid UTF-8."""
