from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .db import get_db
from .deps import get_current_user, get_now
from .models import Message, User
from .schemas import MessageCreate, MessageOut, MessageResponseCreate, MessageResponseOut, MessageStatusUpdate
from .services import add_message_response, create_message, get_message, list_messages, update_message_status
from .statuses import InvalidTransition

router = APIRouter(prefix="/api/messages", tags=["messages"])


def _to_message_out(m: Message) -> MessageOut:
    return MessageOut(
        id=m.id,
        sender_id=m.sender_id,
        sender_name=m.sender_name,
        sender_type=m.sender_type,
        subject=m.subject,
        content=m.content,
        category=m.category,
        status=m.status,
        created_at=m.created_at,
        responses=[
            MessageResponseOut(
                id=r.id,
                sender_name=r.sender_name,
                sender_type=r.sender_type,
                content=r.content,
                created_at=r.created_at,
            )
            for r in m.responses
        ],
    )


def _message_or_404(db: Session, message_id: int) -> Message:
    message = get_message(db, message_id)
    if not message:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


@router.get("", response_model=List[MessageOut])
def get_messages(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_to_message_out(m) for m in list_messages(db, user)]


@router.post("", response_model=MessageOut)
def add_message(
    payload: MessageCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    try:
        message = create_message(
            db=db,
            sender=user,
            subject=payload.subject,
            content=payload.content,
            category=payload.category,
            now=now,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _to_message_out(message)


@router.post("/{message_id}/responses", response_model=MessageOut)
def respond(
    message_id: int,
    payload: MessageResponseCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    message = _message_or_404(db, message_id)
    try:
        message = add_message_response(db, message, user, payload.content, now)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _to_message_out(message)


@router.patch("/{message_id}/status", response_model=MessageOut)
def patch_message_status(
    message_id: int,
    payload: MessageStatusUpdate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    user: User = Depends(get_current_user),
):
    message = _message_or_404(db, message_id)
    try:
        message = update_message_status(db, message, payload.status, user, now)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return _to_message_out(message)
