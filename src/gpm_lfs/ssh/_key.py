"""Private key inspection.

Decides whether a private key file needs a passphrase without decrypting
it. Two container formats are recognized:

- legacy PEM keys, where encryption is announced by a header line such as
  ``Proc-Type: 4,ENCRYPTED`` (or an ``ENCRYPTED PRIVATE KEY`` armor line);
- OpenSSH keys (``openssh-key-v1``), where the cipher name is the first
  field after the magic marker and is ``none`` for unencrypted keys.
"""

import binascii
import logging
import re
from typing import IO

from .._util.secret import SecretBuffer
from ..exceptions import SSHKeyFormatError

logger = logging.getLogger(__name__)

OPENSSH_KEY_MAGIC = b"openssh-key-v1\x00"
_LENGTH_SIZE = 4
_ARMOR_PATTERN = re.compile(r"^-+(BEGIN|END) .*-+$")
_METADATA_PATTERN = re.compile(r"^[A-Za-z0-9-]+:")
_BASE64_VALUES = {
    char: value
    for value, char in enumerate(
        b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
    )
}
_BASE64_PAD = ord("=")


def key_requires_passphrase(stream: IO[bytes]) -> bool:
    """Check whether a private key needs a passphrase to be used.

    Args:
        stream: Binary stream positioned at the start of the key file.

    Returns:
        True if the key is encrypted. False if it is not, or if the format
        gives no indication either way.

    Raises:
        SSHKeyFormatError: If the key is not valid UTF-8 or an OpenSSH key
            has a truncated or undecodable cipher name.
    """
    with SecretBuffer() as payload:
        for raw_line in stream:
            try:
                line = raw_line.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise SSHKeyFormatError("private key is not valid UTF-8") from e

            if not line:
                continue

            if _ARMOR_PATTERN.match(line) or _METADATA_PATTERN.match(line):
                if "ENCRYPTED" in line:
                    logger.debug("legacy key header marks the key as encrypted")
                    return True
                continue

            payload.extend(line.encode("utf-8"))

        cipher = _openssh_cipher_name(payload.raw)

    if cipher is None:
        return False

    logger.debug("OpenSSH key cipher is %s", cipher)
    return cipher != "none"


def _openssh_cipher_name(payload: bytearray) -> str | None:
    """Read the cipher name of an OpenSSH key, or None for other formats."""
    prefix_size = len(OPENSSH_KEY_MAGIC) + _LENGTH_SIZE

    try:
        prefix = _decode_prefix(payload, prefix_size)
    except binascii.Error:
        return None

    with prefix:
        if not prefix.raw.startswith(OPENSSH_KEY_MAGIC):
            return None
        if len(prefix.raw) < prefix_size:
            raise SSHKeyFormatError("truncated OpenSSH key: missing cipher name length")
        length = int.from_bytes(prefix.raw[len(OPENSSH_KEY_MAGIC) :], "big")

    try:
        header = _decode_prefix(payload, prefix_size + length)
    except binascii.Error as e:
        raise SSHKeyFormatError("truncated OpenSSH key: invalid cipher name") from e

    with header:
        name = header.raw[prefix_size:]
        if len(name) < length:
            raise SSHKeyFormatError("truncated OpenSSH key: short cipher name")
        try:
            return name.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SSHKeyFormatError("OpenSSH key cipher name is not UTF-8") from e


def _decode_prefix(payload: bytearray, size: int) -> SecretBuffer:
    """Base64-decode at most ``size`` bytes of the payload.

    Decodes straight into a ``SecretBuffer`` so that no immutable copy of
    the key material is made. Stops early at padding or the end of the
    payload, so the result may be shorter than ``size``.

    Raises:
        binascii.Error: If a character outside the base64 alphabet is met.
    """
    size = min(size, len(payload) * 3 // 4)
    buffer = SecretBuffer(bytes(size))
    raw = buffer.raw
    written = 0
    bits = 0
    bit_count = 0
    for char in payload:
        if written == size or char == _BASE64_PAD:
            break
        value = _BASE64_VALUES.get(char)
        if value is None:
            buffer.wipe()
            raise binascii.Error(f"invalid base64 character {chr(char)!r}")
        bits = ((bits << 6) | value) & 0xFFF
        bit_count += 6
        if bit_count >= 8:
            bit_count -= 8
            raw[written] = (bits >> bit_count) & 0xFF
            written += 1

    # the tail was never written to
    del raw[written:]
    return buffer
