"""Archive session routes: login, status, logout."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from fanreader.api.deps import get_archive_client
from fanreader.errors import AuthFailureError
from fanreader.responses import success_response
from fanreader.schemas.session import LoginRequest, SessionOut
from fanreader.services.archive_client import ArchiveClient

router = APIRouter()


@router.post("/session/login")
async def login(
    body: LoginRequest,
    client: Annotated[ArchiveClient, Depends(get_archive_client)],
) -> dict:
    """Log in to the archive.

    Errors:
        E_AUTH_FAILED: credentials rejected
        E_TOKEN_NOT_FOUND: login form changed
        E_NETWORK: archive unreachable
    """
    if not await client.login(body.username, body.password):
        raise AuthFailureError("Invalid username or password")

    identity = await client.resolve_identity()
    return success_response(SessionOut(logged_in=True, identity=identity).model_dump())


@router.get("/session")
async def get_session(client: Annotated[ArchiveClient, Depends(get_archive_client)]) -> dict:
    logged_in = await client.is_logged_in()
    identity = await client.resolve_identity() if logged_in else None
    return success_response(SessionOut(logged_in=logged_in, identity=identity).model_dump())


@router.delete("/session", status_code=204)
async def logout(client: Annotated[ArchiveClient, Depends(get_archive_client)]) -> Response:
    await client.logout()
    return Response(status_code=204)
