"""Connected viewer subscriptions.

GET    /api/v1/viewers        — list live subscriptions
DELETE /api/v1/viewers/{id}   — terminate one subscription
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from loggery.schemas import SubscriptionInfo
from loggery.viewer import Subscription, ViewerServer

router = APIRouter(prefix="/viewers", tags=["viewers"])


def get_viewer_server(request: Request) -> ViewerServer:
    return request.app.state.viewer_server


def _info(sub: Subscription) -> SubscriptionInfo:
    return SubscriptionInfo(
        id=sub.id,
        state=sub.state.value,
        min_level=sub.min_level.name,
        refresh_ms=sub.refresh_ms,
        cursor=sub.cursor,
        delivered=sub.delivered,
        connected_at=sub.connected_at,
    )


@router.get("", response_model=list[SubscriptionInfo])
async def list_viewers(server: ViewerServer = Depends(get_viewer_server)) -> list[SubscriptionInfo]:
    return [_info(sub) for sub in server.subscriptions()]


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_viewer(subscription_id: str, server: ViewerServer = Depends(get_viewer_server)) -> Response:
    if not await server.close_subscription(subscription_id, reason="terminated"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
