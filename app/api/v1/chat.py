"""Human-to-human chat endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from typing import Optional

from app.api.live import stream_snapshots
from app.core.dependencies import authenticate_token, get_current_user
from app.core.exceptions import AuthenticationError, ConversationNotFoundError, UserNotFoundError
from app.database import get_db
from app.models.user import User
from app.schemas.chat import (
    ChatUser,
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    UserSearchResponse,
)
from app.services.change_feed import change_feed, conversations_topic, messages_topic
from app.services.chat_service import ChatService

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/users", response_model=UserSearchResponse)
def search_users(
    email: str = Query(..., min_length=3, max_length=255),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Find other users by exact email address"""
    users = ChatService(db).search_users_by_email(email, current_user.uid)
    return UserSearchResponse(users=[ChatUser.model_validate(u) for u in users])


@router.post("/conversations", response_model=ConversationResponse)
def start_conversation(
    body: ConversationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get or create the conversation with another user

    Calling this again for the same pair, from either side, returns the same
    conversation.
    """
    if body.other_uid == current_user.uid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot start a conversation with yourself")

    try:
        conversation = ChatService(db).get_or_create_conversation(current_user, body.other_uid)
        return ConversationResponse.model_validate(conversation)

    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get("/conversations", response_model=ConversationListResponse)
def get_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's conversations, most recent activity first"""
    conversations = ChatService(db).conversation_snapshot(current_user.uid)
    return ConversationListResponse(conversations=conversations, total=len(conversations))


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
def get_messages(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the most recent messages of a conversation, oldest first"""
    service = ChatService(db)
    try:
        service.get_conversation(conversation_id, current_user.uid)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    return MessageListResponse(
        messages=service.message_snapshot(conversation_id),
        conversation_id=conversation_id,
    )


@router.post("/conversations/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    conversation_id: str,
    body: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Send a message to a conversation you take part in"""
    try:
        message = ChatService(db).send_message(conversation_id, current_user.uid, body.text)
        return MessageResponse.model_validate(message)

    except ConversationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.websocket("/live")
async def live_chat(
    websocket: WebSocket,
    token: str = Query(...),
    conversation_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Stream conversation list snapshots, plus message snapshots for
    `conversation_id` when given

    Messages are `{"type": "conversations" | "messages", "data": [...]}`.
    """
    try:
        user = authenticate_token(token, db)
    except AuthenticationError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    service = ChatService(db)
    topics = [conversations_topic(user.uid)]
    if conversation_id:
        try:
            service.get_conversation(conversation_id, user.uid)
        except ConversationNotFoundError as e:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
            return
        topics.append(messages_topic(conversation_id))

    await websocket.accept()
    subscription = change_feed.subscribe(*topics)

    await websocket.send_json(jsonable_encoder({"type": "conversations", "data": service.conversation_snapshot(user.uid)}))
    if conversation_id:
        await websocket.send_json(jsonable_encoder({"type": "messages", "data": service.message_snapshot(conversation_id)}))
    db.close()

    async def on_event(topic, snapshot):
        kind = "conversations" if topic == conversations_topic(user.uid) else "messages"
        return {"type": kind, "data": snapshot}

    await stream_snapshots(websocket, subscription, on_event)
