"""Wire structures of the LFS batch API and of ``git-lfs-authenticate``.

Responses are validated at the parse boundary so that a malformed server
answer fails with a named error instead of a missing key deep in the
resolution logic.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class LFSHeaders(BaseModel):
    """HTTP headers the server asks the client to send."""

    model_config = ConfigDict(populate_by_name=True)

    authorization: str | None = Field(default=None, alias="Authorization")


class LFSObjectSpec(BaseModel):
    oid: str
    size: int


class LFSRef(BaseModel):
    name: str


class LFSBatchRequest(BaseModel):
    operation: Literal["download", "upload"] = "download"
    transfers: list[str] = Field(default_factory=lambda: ["basic"])
    objects: list[LFSObjectSpec]
    ref: LFSRef | None = None


class LFSAction(BaseModel):
    href: str
    header: LFSHeaders = Field(default_factory=LFSHeaders)


class LFSActions(BaseModel):
    download: LFSAction | None = None


class LFSObjectErrorInfo(BaseModel):
    code: int
    message: str = ""


class LFSBatchObject(BaseModel):
    oid: str | None = None
    size: int | None = None
    actions: LFSActions | None = None
    error: LFSObjectErrorInfo | None = None


class LFSBatchResponse(BaseModel):
    transfer: str | None = None
    objects: list[LFSBatchObject]


class LFSAuthResponse(BaseModel):
    """Output of ``git-lfs-authenticate``."""

    header: LFSHeaders = Field(default_factory=LFSHeaders)
    href: str
