"""LFS authentication over SSH.

Follows the Git LFS SSH authentication convention: the client runs
``git-lfs-authenticate <path> <operation>`` on the Git host and receives a
short-lived ``Authorization`` header together with the LFS API URL to use
it with.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import paramiko
from pydantic import ValidationError

from ._models import LFSAuthResponse
from ._util.secret import SecretBuffer
from .exceptions import LFSResponseError, SSHAuthenticationError, SSHError

logger = logging.getLogger(__name__)

SSH_USER = "git"
DEFAULT_SSH_PORT = 22


@dataclass(frozen=True)
class LFSAuthToken:
    """Credentials for the LFS API returned by ``git-lfs-authenticate``."""

    href: str
    header: str | None = None
    """Value of the ``Authorization`` header, if any."""


def get_lfs_auth_token(
    repository: str,
    operation: str,
    key_path: Path,
    passphrase: SecretBuffer | None = None,
) -> LFSAuthToken:
    """Obtain an LFS API token by running ``git-lfs-authenticate`` over SSH.

    Args:
        repository: Git remote URL. Its host and port (default 22) are
            connected to, and its path names the repository.
        operation: ``download`` or ``upload``.
        key_path: Private key used for public key authentication.
        passphrase: Passphrase of the private key, if it is encrypted.

    Raises:
        SSHAuthenticationError: If the key is rejected or cannot be unlocked.
        SSHError: If the connection or the remote command fails.
        LFSResponseError: If the command output is not a valid response.
    """
    parts = urlsplit(repository)
    host = parts.hostname
    if not host:
        raise SSHError(f"no host in remote URL {repository}")
    port = parts.port or DEFAULT_SSH_PORT
    command = f"git-lfs-authenticate {parts.path[1:]} {operation}"

    logger.debug("attempting to fetch Git LFS auth token from %s:%d", host, port)

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    try:
        with client:
            client.load_system_host_keys()
            logger.debug(
                "attempting SSH public key authentication with key %s", key_path
            )
            # paramiko only takes the passphrase as a str
            client.connect(
                host,
                port=port,
                username=SSH_USER,
                key_filename=str(key_path),
                passphrase=passphrase.reveal() if passphrase is not None else None,
                allow_agent=False,
                look_for_keys=False,
            )
            logger.debug("SSH session authenticated")

            logger.debug('execute "%s" command over SSH', command)
            _stdin, stdout, stderr = client.exec_command(command)
            output = stdout.read()
            exit_status = stdout.channel.recv_exit_status()
            error_output = stderr.read()
    except paramiko.AuthenticationException as e:
        raise SSHAuthenticationError(
            f"SSH authentication as {SSH_USER}@{host} failed: {e}"
        ) from e
    except (paramiko.SSHException, OSError) as e:
        raise SSHError(f"SSH error with {host}:{port}: {e}") from e

    if exit_status != 0:
        raise SSHError(
            f"{command!r} exited with status {exit_status}: "
            f"{error_output.decode('utf-8', errors='replace').strip()}"
        )

    try:
        response = LFSAuthResponse.model_validate_json(output)
    except ValidationError as e:
        raise LFSResponseError(
            f"Failed to parse git-lfs-authenticate response: {e}"
        ) from e

    return LFSAuthToken(href=response.href, header=response.header.authorization)
