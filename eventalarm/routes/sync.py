"""Sync routes: receive device alarm state and test push delivery."""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from eventalarm.core.database import get_session
from eventalarm.core.errors import TransportFailure
from eventalarm.edge.dispatcher import EdgeDispatcher
from eventalarm.edge.transport import PushTransport, get_transport
from eventalarm.schemas import AlarmSyncPayload, PushTestRequest

router = APIRouter(tags=["sync"])


@router.post("/sync")
def sync_alarms(
    payload: AlarmSyncPayload,
    session: Session = Depends(get_session),
    transport: PushTransport = Depends(get_transport),
):
    """
    Store a device's alarm state and evaluate it right away.

    The payload replaces whatever was previously stored for the same push
    endpoint. Malformed bodies are rejected with 422 by request validation
    before anything is stored.
    """
    return EdgeDispatcher(session, transport).sync(payload)


@router.post("/push/test")
def push_test(
    request: PushTestRequest,
    session: Session = Depends(get_session),
    transport: PushTransport = Depends(get_transport),
):
    """
    Send a single notification immediately.

    Returns 502 if the push service rejects the message.
    """
    try:
        EdgeDispatcher(session, transport).send_test(
            request.delivery_address, request.title, request.body
        )
    except TransportFailure as e:
        raise HTTPException(status_code=502, detail=f"Push failed: {e}")
    return {"ok": True}
