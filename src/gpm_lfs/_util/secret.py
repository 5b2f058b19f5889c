from typing import Any

from typing_extensions import Self


class SecretBuffer:
    """Mutable byte buffer that is overwritten with zeros when released.

    Python ``str`` and ``bytes`` objects are immutable and cannot be wiped, so
    secret material (passphrases, decoded private key bytes) is held in a
    ``bytearray`` owned by this class instead.

    Use as a context manager to guarantee the overwrite on every exit path:

        with SecretBuffer(passphrase) as secret:
            use(secret.reveal())
    """

    def __init__(self, data: bytes | bytearray | str = b"") -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer = bytearray(data)
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def raw(self) -> bytearray:
        """The underlying buffer. Do not keep references past release."""
        self._check()
        return self._buffer

    def extend(self, data: bytes | bytearray) -> None:
        self._check()
        # bytearray.extend() may reallocate and leave the old bytes behind
        grown = bytearray(len(self._buffer) + len(data))
        grown[: len(self._buffer)] = self._buffer
        grown[len(self._buffer) :] = data
        self.wipe()
        self._buffer = grown
        self._released = False

    def reveal(self) -> str:
        """Decode the buffer as UTF-8."""
        self._check()
        return self._buffer.decode("utf-8")

    def wipe(self) -> None:
        """Overwrite the buffer with zeros and mark it released."""
        self._buffer[:] = bytes(len(self._buffer))
        self._released = True

    def _check(self) -> None:
        if self._released:
            raise ValueError("secret buffer has already been released")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Any) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "released" if self._released else "****"
        return f"SecretBuffer({state})"
