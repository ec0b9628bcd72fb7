from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/peers")
async def list_peers(request: Request):
    """
    List registered rendezvous identities (debug/admin).
    """
    repo = request.app.state.repo
    wsman = request.app.state.wsman

    peers = []
    for identity in await repo.list_identities():
        record = await repo.get_peer(identity)
        if record is None:
            continue
        peers.append(
            {
                **record.model_dump(),
                "connected_here": await wsman.has(identity),
            }
        )

    return {"peers": peers}


@router.post("/peers/{identity}/close")
async def close_peer(identity: str, request: Request):
    """
    Force release an identity (debug/admin). Deletes Redis keys and closes the socket.
    """
    repo = request.app.state.repo
    wsman = request.app.state.wsman

    if not await repo.identity_exists(identity):
        raise HTTPException(status_code=404, detail="Peer not found")

    await repo.force_release(identity)
    await wsman.close_peer(identity, code=4000)

    return {"ok": True, "identity": identity}
