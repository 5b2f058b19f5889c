from collections.abc import Callable
from typing import IO, Protocol


class ByteSink(Protocol):
    """Minimal writable, readable and seekable binary stream.

    Downloads are streamed into a sink and then read back from the start to
    verify the content hash, so plain write-only streams are not enough.
    Binary files opened with ``w+b`` and ``io.BytesIO`` both qualify.
    """

    def write(self, data: bytes, /) -> int: ...
    def read(self, size: int = -1, /) -> bytes: ...
    def seek(self, offset: int, whence: int = 0, /) -> int: ...
    def flush(self) -> None: ...


ProgressCallback = Callable[[int, int], None]


class ProgressWriter(ByteSink):
    """Sink wrapper that reports ``(written, total)`` after every write.

    Reads and seeks are forwarded untouched, so the wrapper can be handed to
    the downloader in place of the file itself.
    """

    def __init__(
        self, file: IO[bytes] | ByteSink, total: int, on_progress: ProgressCallback
    ) -> None:
        self._file = file
        self.total = total
        self.written = 0
        self._on_progress = on_progress

    def write(self, data: bytes, /) -> int:
        count = self._file.write(data)
        self.written += count
        self._on_progress(self.written, self.total)
        return count

    def read(self, size: int = -1, /) -> bytes:
        return self._file.read(size)

    def seek(self, offset: int, whence: int = 0, /) -> int:
        return self._file.seek(offset, whence)

    def flush(self) -> None:
        self._file.flush()
