"""Notification center endpoints and the realtime websocket."""

from __future__ import annotations

from typing import Literal

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.orm import Session

from edunotify.application.services import NotificationService
from edunotify.application.use_cases import notifications as center
from edunotify.domain.entities import Notification, NotificationFilters, User
from edunotify.domain.exceptions import NotificationError
from edunotify.domain.notifications import build_kind
from edunotify.infrastructure.database import SessionLocal, get_db
from edunotify.infrastructure.notifications import notification_manager, serialize_notification
from edunotify.infrastructure.repositories import NotificationRepository, UserRepository
from edunotify.interfaces.api.dependencies import (
    get_current_active_user,
    get_notification_service,
    require_admin,
    resolve_current_user,
)
from edunotify.interfaces.api.schemas import (
    AffectedCountResponse,
    DispatchRequest,
    DispatchResponse,
    NotificationIdsRequest,
    NotificationPageRead,
    NotificationRead,
    NotificationStatsRead,
    NotificationTypeRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_NOT_FOUND = "Notification not found"


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        user_id=notification.user_id,
        type=notification.type,
        type_label=center.notification_type_label(notification.type),
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        icon=center.notification_icon(notification),
        color=center.notification_color(notification),
        action_text=notification.action_text,
        action_url=notification.action_url,
        is_read=notification.is_read,
        created_at=notification.created_at,
        read_at=notification.read_at,
    )


@router.get("/", response_model=NotificationPageRead)
def list_notifications(
    search: str | None = Query(default=None, max_length=255),
    type: str | None = Query(default=None),
    status_filter: Literal["read", "unread"] | None = Query(default=None, alias="status"),
    sort_by: str = Query(default="created_at"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=center.DEFAULT_PER_PAGE, ge=1, le=center.MAX_PER_PAGE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationPageRead:
    """Return one filtered page of the authenticated user's notifications."""

    filters = NotificationFilters(
        search=search,
        type=type,
        status=status_filter,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    result = center.list_notifications(
        db, current_user.id, filters=filters, page=page, per_page=per_page
    )
    return NotificationPageRead(
        items=[_notification_to_schema(item) for item in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        pages=result.pages,
        has_next=result.has_next,
    )


@router.get("/stats", response_model=NotificationStatsRead)
def notification_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationStatsRead:
    stats = center.get_notification_stats(db, current_user.id)
    return NotificationStatsRead(
        total=stats.total,
        unread=stats.unread,
        read=stats.read,
        today=stats.today,
        this_week=stats.this_week,
        this_month=stats.this_month,
    )


@router.get("/types", response_model=list[NotificationTypeRead])
def notification_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[NotificationTypeRead]:
    return [
        NotificationTypeRead(type=type_, label=label)
        for type_, label in center.list_notification_types(db, current_user.id)
    ]


@router.post("/bulk/read", response_model=AffectedCountResponse)
def bulk_mark_as_read(
    payload: NotificationIdsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AffectedCountResponse:
    count = center.bulk_mark_as_read(db, current_user.id, payload.unique_ids())
    return AffectedCountResponse(count=count)


@router.post("/bulk/delete", response_model=AffectedCountResponse)
def bulk_delete(
    payload: NotificationIdsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AffectedCountResponse:
    count = center.bulk_delete(db, current_user.id, payload.unique_ids())
    return AffectedCountResponse(count=count)


@router.post("/read-all", response_model=AffectedCountResponse)
def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AffectedCountResponse:
    return AffectedCountResponse(count=center.mark_all_as_read(db, current_user.id))


@router.delete("/read", response_model=AffectedCountResponse)
def delete_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AffectedCountResponse:
    return AffectedCountResponse(count=center.delete_all_read(db, current_user.id))


@router.post("/dispatch", response_model=DispatchResponse)
def dispatch_notification(
    payload: DispatchRequest,
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
    _: User = Depends(require_admin),
) -> DispatchResponse:
    """Send a notification kind to the selected users (administrators only)."""

    try:
        build_kind(payload.kind, payload.data)
    except NotificationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if payload.recipients == "all":
        recipients = UserRepository(db).list_active_ids()
    else:
        recipients = list(dict.fromkeys(payload.recipients))

    result = service.send_bulk(payload.kind, recipients, payload.data)
    return DispatchResponse(success=result.success, count=result.count, errors=list(result.errors))


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> None:
    if not center.mark_as_read(db, current_user.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.post("/{notification_id}/unread", status_code=status.HTTP_204_NO_CONTENT)
def mark_as_unread(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> None:
    if not center.mark_as_unread(db, current_user.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> None:
    if not center.delete_notification(db, current_user.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
        pending_notifications = NotificationRepository(session).list_unread_for_user(user.id)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    await notification_manager.connect(user.id, websocket)
    try:
        await websocket.send_json(
            {"type": "init", "data": [serialize_notification(n) for n in pending_notifications]}
        )
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    ack_session = SessionLocal()
                    try:
                        center.bulk_mark_as_read(ack_session, user.id, [str(i) for i in ids])
                    finally:
                        ack_session.close()
    except WebSocketDisconnect:
        pass
    finally:
        notification_manager.disconnect(user.id, websocket)
