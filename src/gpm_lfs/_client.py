"""Git LFS batch API client.

Exchanges an object's (oid, size) for a download URL through the batch API
and streams the object into a sink, verifying its SHA-256 digest.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit, urlunsplit

import httpx
from pydantic import ValidationError

from ._models import LFSBatchRequest, LFSBatchResponse, LFSObjectSpec, LFSRef
from ._pointer import LFSPointer, compute_oid
from ._util.sink import ByteSink
from .exceptions import (
    LFSAuthenticationError,
    LFSIntegrityError,
    LFSObjectError,
    LFSResponseError,
    LFSServerError,
    LFSTransportError,
)

logger = logging.getLogger(__name__)

LFS_MEDIA_TYPE = "application/vnd.git-lfs+json"
_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class LFSDownloadLink:
    """Download URL for a single LFS object."""

    href: str
    authorization: str | None = None
    """Value of the ``Authorization`` header to send with the download."""


@contextmanager
def _http_client(client: httpx.Client | None) -> Iterator[httpx.Client]:
    """Use the caller's client, or a short-lived one without timeouts."""
    if client is not None:
        yield client
        return

    with httpx.Client(timeout=None) as new_client:
        yield new_client


def _split_credentials(url: str) -> tuple[str, httpx.BasicAuth | None]:
    """Remove user info from a URL, returning it as HTTP basic auth."""
    parts = urlsplit(url)
    if not parts.username:
        return url, None

    netloc = parts.hostname or ""
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"

    sanitized = urlunsplit(
        (parts.scheme, netloc, parts.path, parts.query, parts.fragment)
    )
    auth = httpx.BasicAuth(unquote(parts.username), unquote(parts.password or ""))
    return sanitized, auth


def fetch_download_link(
    pointer: LFSPointer,
    lfs_url: str,
    *,
    refspec: str | None = None,
    authorization: str | None = None,
    client: httpx.Client | None = None,
) -> LFSDownloadLink:
    """Get the download URL of an LFS object via the batch API.

    Args:
        pointer: Object to request.
        lfs_url: Base URL of the LFS server (without ``/objects/batch``).
            User info embedded in it is sent as HTTP basic auth, in which
            case ``authorization`` is ignored.
        refspec: Git reference the object is requested for.
        authorization: ``Authorization`` header value, if any.
        client: HTTP client to use.

    Raises:
        LFSAuthenticationError: If the server answers 401.
        LFSServerError: If the server answers any other non-2xx status.
        LFSObjectError: If the server reports an error for the object.
        LFSResponseError: If the response is not a valid batch response.
        LFSTransportError: If the server cannot be reached.
    """
    batch_endpoint, auth = _split_credentials(f"{lfs_url}/objects/batch")
    payload = LFSBatchRequest(
        objects=[LFSObjectSpec(oid=pointer.oid, size=pointer.size)],
        ref=LFSRef(name=refspec) if refspec is not None else None,
    ).model_dump(exclude_none=True)

    headers = {
        "Content-Type": LFS_MEDIA_TYPE,
        "Accept": LFS_MEDIA_TYPE,
    }
    if auth is None and authorization is not None:
        headers["Authorization"] = authorization

    logger.debug("sending LFS object batch payload to %s", batch_endpoint)

    try:
        with _http_client(client) as http:
            response = http.post(
                batch_endpoint,
                content=json.dumps(payload),
                headers=headers,
                auth=auth if auth is not None else httpx.USE_CLIENT_DEFAULT,
            )
    except httpx.RequestError as e:
        raise LFSTransportError(f"Failed to reach LFS batch API: {e}") from e

    if response.status_code == httpx.codes.UNAUTHORIZED:
        raise LFSAuthenticationError(response.text.strip())
    if not response.is_success:
        raise LFSServerError(response.status_code, response.text.strip())

    try:
        body = LFSBatchResponse.model_validate_json(response.content)
    except ValidationError as e:
        raise LFSResponseError(f"Failed to parse LFS batch API response: {e}") from e

    if not body.objects:
        raise LFSResponseError("LFS batch API response lists no objects")

    obj = body.objects[0]
    if obj.error is not None:
        raise LFSObjectError(obj.error.code, obj.error.message)

    download = obj.actions.download if obj.actions is not None else None
    if download is None:
        raise LFSResponseError(
            f"LFS object {pointer.oid[:12]}: no download action in response"
        )

    return LFSDownloadLink(
        href=download.href, authorization=download.header.authorization
    )


def download_lfs_object(
    pointer: LFSPointer,
    link: LFSDownloadLink,
    target: ByteSink,
    *,
    client: httpx.Client | None = None,
) -> None:
    """Download a single LFS object and verify its integrity.

    The object is streamed into ``target``, which must be empty. Once the
    transfer completes, ``target`` is read back from the start and its
    SHA-256 digest compared with the pointer's oid.

    Raises:
        LFSIntegrityError: If the content does not match the pointer's oid.
        LFSServerError: If the server answers a non-2xx status.
        LFSTransportError: If the transfer fails.
    """
    headers: dict[str, str] = {}
    if link.authorization is not None:
        headers["Authorization"] = link.authorization

    logger.debug("start downloading LFS object %s", pointer.oid[:12])

    total_bytes = 0
    try:
        with (
            _http_client(client) as http,
            http.stream(
                "GET", link.href, headers=headers, follow_redirects=True
            ) as response,
        ):
            if not response.is_success:
                response.read()
                raise LFSServerError(response.status_code, response.text.strip())

            for chunk in response.iter_bytes(_CHUNK_SIZE):
                target.write(chunk)
                total_bytes += len(chunk)
    except httpx.RequestError as e:
        raise LFSTransportError(
            f"Failed to download LFS object {pointer.oid[:12]}: {e}"
        ) from e

    target.flush()

    if total_bytes != pointer.size:
        logger.warning(
            "LFS object %s: expected %d bytes, got %d",
            pointer.oid[:12],
            pointer.size,
            total_bytes,
        )

    actual_oid = compute_oid(target)
    if actual_oid != pointer.oid:
        raise LFSIntegrityError(expected=pointer.oid, actual=actual_oid)

    logger.info("downloaded LFS object %s (%d bytes)", pointer.oid[:12], total_bytes)
