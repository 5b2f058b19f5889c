"""Tests for the LFS batch API client.

The HTTP layer is replaced by ``httpx.MockTransport``; no request leaves
the process.
"""

import base64
import hashlib
import io
import json
from collections.abc import Callable

import httpx
import pytest

from gpm_lfs._client import (
    LFS_MEDIA_TYPE,
    LFSDownloadLink,
    download_lfs_object,
    fetch_download_link,
)
from gpm_lfs._pointer import LFSPointer
from gpm_lfs.exceptions import (
    LFSAuthenticationError,
    LFSIntegrityError,
    LFSObjectError,
    LFSResponseError,
    LFSServerError,
    LFSTransportError,
)

LFS_URL = "https://git.example.com/group/repo.git/info/lfs"
CONTENT = b"package archive bytes" * 50
POINTER = LFSPointer(oid=hashlib.sha256(CONTENT).hexdigest(), size=len(CONTENT))

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _batch_response(href: str, authorization: str | None = None) -> httpx.Response:
    action: dict[str, object] = {"href": href}
    if authorization is not None:
        action["header"] = {"Authorization": authorization}
    return httpx.Response(
        200,
        json={
            "transfer": "basic",
            "objects": [
                {
                    "oid": POINTER.oid,
                    "size": POINTER.size,
                    "actions": {"download": action},
                }
            ],
        },
    )


# =============================================================================
# fetch_download_link
# =============================================================================


class TestFetchDownloadLink:
    def test_request_payload_and_headers(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return _batch_response("https://cdn.example.com/obj", "Bearer dl")

        link = fetch_download_link(
            POINTER, LFS_URL, refspec="refs/tags/tools/1.0.0", client=_client(handler)
        )

        assert link == LFSDownloadLink(
            href="https://cdn.example.com/obj", authorization="Bearer dl"
        )
        (request,) = requests
        assert request.method == "POST"
        assert str(request.url) == f"{LFS_URL}/objects/batch"
        assert request.headers["Accept"] == LFS_MEDIA_TYPE
        assert request.headers["Content-Type"] == LFS_MEDIA_TYPE
        assert "Authorization" not in request.headers
        assert json.loads(request.content) == {
            "operation": "download",
            "transfers": ["basic"],
            "objects": [{"oid": POINTER.oid, "size": POINTER.size}],
            "ref": {"name": "refs/tags/tools/1.0.0"},
        }

    def test_ref_omitted_without_refspec(self) -> None:
        payloads: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            payloads.append(json.loads(request.content))
            return _batch_response("https://cdn.example.com/obj")

        link = fetch_download_link(POINTER, LFS_URL, client=_client(handler))

        assert "ref" not in payloads[0]
        assert link.authorization is None

    def test_authorization_header_is_sent(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "RemoteAuth token"
            return _batch_response("https://cdn.example.com/obj")

        fetch_download_link(
            POINTER,
            LFS_URL,
            authorization="RemoteAuth token",
            client=_client(handler),
        )

    def test_url_credentials_become_basic_auth(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            expected = base64.b64encode(b"user:s3cret").decode("ascii")
            assert request.headers["Authorization"] == f"Basic {expected}"
            assert str(request.url) == f"{LFS_URL}/objects/batch"
            return _batch_response("https://cdn.example.com/obj")

        fetch_download_link(
            POINTER,
            LFS_URL.replace("https://", "https://user:s3cret@"),
            authorization="ignored",
            client=_client(handler),
        )

    def test_unauthorized(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="Credentials needed\n")

        with pytest.raises(LFSAuthenticationError) as exc_info:
            fetch_download_link(POINTER, LFS_URL, client=_client(handler))

        assert exc_info.value.message == "Credentials needed"

    @pytest.mark.parametrize("status", [403, 404, 500, 503])
    def test_server_error(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="nope")

        with pytest.raises(LFSServerError) as exc_info:
            fetch_download_link(POINTER, LFS_URL, client=_client(handler))

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"

    def test_object_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "objects": [
                        {
                            "oid": POINTER.oid,
                            "size": POINTER.size,
                            "error": {"code": 404, "message": "Object does not exist"},
                        }
                    ]
                },
            )

        with pytest.raises(LFSObjectError) as exc_info:
            fetch_download_link(POINTER, LFS_URL, client=_client(handler))

        assert exc_info.value.code == 404
        assert exc_info.value.message == "Object does not exist"

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"{}",
            b'{"objects": []}',
            b'{"objects": [{"actions": {}}]}',
            b'{"objects": [{"actions": {"download": {"header": {}}}}]}',
            b'{"objects": [{"error": {"message": "no code"}}]}',
        ],
    )
    def test_malformed_response(self, body: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body)

        with pytest.raises(LFSResponseError):
            fetch_download_link(POINTER, LFS_URL, client=_client(handler))

    def test_connection_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network down", request=request)

        with pytest.raises(LFSTransportError, match="network down"):
            fetch_download_link(POINTER, LFS_URL, client=_client(handler))


# =============================================================================
# download_lfs_object
# =============================================================================


class TestDownloadLFSObject:
    def test_download_verifies_content(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.headers["Authorization"] == "Bearer dl"
            return httpx.Response(200, content=CONTENT)

        target = io.BytesIO()
        download_lfs_object(
            POINTER,
            LFSDownloadLink(
                href="https://cdn.example.com/obj", authorization="Bearer dl"
            ),
            target,
            client=_client(handler),
        )

        assert target.getvalue() == CONTENT

    def test_no_authorization_header_without_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert "Authorization" not in request.headers
            return httpx.Response(200, content=CONTENT)

        download_lfs_object(
            POINTER,
            LFSDownloadLink(href="https://cdn.example.com/obj"),
            io.BytesIO(),
            client=_client(handler),
        )

    def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "lfs.example.com":
                return httpx.Response(
                    302, headers={"Location": "https://cdn.example.com/obj"}
                )
            return httpx.Response(200, content=CONTENT)

        target = io.BytesIO()
        download_lfs_object(
            POINTER,
            LFSDownloadLink(href="https://lfs.example.com/obj"),
            target,
            client=_client(handler),
        )

        assert target.getvalue() == CONTENT

    def test_flipped_byte_fails_integrity_check(self) -> None:
        corrupted = bytearray(CONTENT)
        corrupted[len(corrupted) // 2] ^= 0x01

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=bytes(corrupted))

        with pytest.raises(LFSIntegrityError) as exc_info:
            download_lfs_object(
                POINTER,
                LFSDownloadLink(href="https://cdn.example.com/obj"),
                io.BytesIO(),
                client=_client(handler),
            )

        assert exc_info.value.expected == POINTER.oid
        assert exc_info.value.actual == hashlib.sha256(corrupted).hexdigest()

    def test_integrity_error_is_not_a_transport_error(self) -> None:
        assert not issubclass(LFSIntegrityError, (LFSTransportError, LFSServerError))

    def test_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="gone")

        with pytest.raises(LFSServerError) as exc_info:
            download_lfs_object(
                POINTER,
                LFSDownloadLink(href="https://cdn.example.com/obj"),
                io.BytesIO(),
                client=_client(handler),
            )

        assert exc_info.value.status_code == 404

    def test_transfer_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("stalled", request=request)

        with pytest.raises(LFSTransportError, match="stalled"):
            download_lfs_object(
                POINTER,
                LFSDownloadLink(href="https://cdn.example.com/obj"),
                io.BytesIO(),
                client=_client(handler),
            )
