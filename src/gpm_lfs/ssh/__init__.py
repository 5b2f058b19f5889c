"""SSH credential resolution for LFS authentication."""

from ._config import SSHConfigEntry, find_identity_file, parse_ssh_config
from ._key import key_requires_passphrase
from .credentials import (
    Credential,
    CredentialSource,
    SSHCredentialProvider,
    SSHSettings,
)

__all__ = [
    "Credential",
    "CredentialSource",
    "SSHConfigEntry",
    "SSHCredentialProvider",
    "SSHSettings",
    "find_identity_file",
    "key_requires_passphrase",
    "parse_ssh_config",
]
