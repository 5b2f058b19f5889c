"""SSH credential resolution.

Picks the private key to authenticate with for a host and, when the key is
encrypted, obtains its passphrase.

Resolution order for the key path:

1. the key path environment override (``GPM_SSH_KEY`` by default);
2. the ``IdentityFile`` of the first matching ``Host`` block of the SSH
   client configuration file;
3. the first conventional default identity file that exists.

The passphrase comes from the passphrase environment override
(``GPM_SSH_PASS`` by default) or, failing that, an interactive prompt.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from rich.console import Console
from rich.prompt import Prompt
from typing_extensions import Self

from .._util.secret import SecretBuffer
from ..exceptions import SSHKeyFormatError
from ._config import find_identity_file
from ._key import key_requires_passphrase

logger = logging.getLogger(__name__)

KEY_ENV_VAR = "GPM_SSH_KEY"
PASSPHRASE_ENV_VAR = "GPM_SSH_PASS"
DEFAULT_IDENTITY_FILES = ("id_rsa", "id_ecdsa", "id_ed25519")

PassphrasePrompt = Callable[[str], str]


@dataclass
class Credential:
    """Private key path and optional passphrase for one authentication.

    Use as a context manager: the passphrase is wiped on exit.
    """

    key_path: Path | None = None
    passphrase: SecretBuffer | None = None

    def wipe(self) -> None:
        if self.passphrase is not None:
            self.passphrase.wipe()
            self.passphrase = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Any) -> None:
        self.wipe()


class CredentialSource(Protocol):
    """Provides the credential to authenticate against a host."""

    def resolve(self, host: str) -> Credential: ...


@dataclass(frozen=True)
class SSHSettings:
    """Host-level inputs of SSH credential resolution."""

    ssh_dir: Path = field(default_factory=lambda: Path.home() / ".ssh")
    config_path: Path | None = None
    """SSH client configuration file. Defaults to ``<ssh_dir>/config``."""

    default_identity_files: tuple[str, ...] = DEFAULT_IDENTITY_FILES
    """Key file names tried under ``ssh_dir``, in order."""

    key_env_var: str = KEY_ENV_VAR
    passphrase_env_var: str = PASSPHRASE_ENV_VAR
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)

    @classmethod
    def from_home(cls, home: Path, **kwargs: Any) -> SSHSettings:
        """Settings for the ``.ssh`` directory of the given home directory."""
        return cls(ssh_dir=home / ".ssh", **kwargs)

    @property
    def home(self) -> Path:
        return self.ssh_dir.parent

    @property
    def resolved_config_path(self) -> Path:
        return self.config_path or self.ssh_dir / "config"


def prompt_passphrase(message: str) -> str:
    """Ask for a passphrase on the terminal without echoing it."""
    console = Console(stderr=True)
    return Prompt.ask(message, password=True, console=console)


class SSHCredentialProvider:
    """Resolves the SSH key and passphrase to use for a host."""

    def __init__(
        self,
        settings: SSHSettings | None = None,
        prompt: PassphrasePrompt = prompt_passphrase,
    ) -> None:
        self.settings = settings or SSHSettings()
        self.prompt = prompt

    def resolve(self, host: str) -> Credential:
        key_path = self.find_key(host)
        if key_path is None:
            logger.warning("unable to get private key for host %s", host)
            return Credential()

        logger.debug("authenticate with private key located in %s", key_path)
        try:
            passphrase = self.get_passphrase(key_path)
        except OSError as e:
            logger.warning("could not read private key %s: %s", key_path, e)
            passphrase = None

        return Credential(key_path=key_path, passphrase=passphrase)

    def find_key(self, host: str) -> Path | None:
        settings = self.settings

        override = settings.environ.get(settings.key_env_var)
        if override:
            key_path = Path(override)
            if key_path.is_file():
                return key_path
            logger.warning(
                "ignoring %s: %s is not a file", settings.key_env_var, key_path
            )

        key_path = find_identity_file(
            host, settings.resolved_config_path, home=settings.home
        )
        if key_path is not None:
            return key_path

        for name in settings.default_identity_files:
            key_path = settings.ssh_dir / name
            if key_path.is_file():
                return key_path

        return None

    def get_passphrase(self, key_path: Path) -> SecretBuffer | None:
        """Return the key's passphrase, or None if the key is not encrypted.

        A key whose format cannot be inspected is treated as unencrypted.

        Raises:
            OSError: If the key file cannot be read.
        """
        with open(key_path, "rb") as f:
            try:
                encrypted = key_requires_passphrase(f)
            except SSHKeyFormatError as e:
                logger.warning("could not inspect private key %s: %s", key_path, e)
                encrypted = False

        if not encrypted:
            return None

        passphrase = self.settings.environ.get(self.settings.passphrase_env_var)
        if passphrase is not None:
            return SecretBuffer(passphrase)

        logger.debug("prompt for passphrase")
        return SecretBuffer(self.prompt(f"Enter passphrase for key {key_path}"))
