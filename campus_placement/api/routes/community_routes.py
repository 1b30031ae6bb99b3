"""
Community Routes

GET /discussions - Discussions in my university
POST /discussions - Start a discussion (student only)
POST /discussions/{discussion_id}/like - Like / unlike toggle (student only)
GET /discussions/{discussion_id}/replies - Replies
POST /discussions/{discussion_id}/replies - Reply (student only)
POST /messages - Send a direct message (student only)
GET /messages/unread - Unread message count (student only)
GET /messages/{student_id} - Conversation, marks received messages read (student only)
"""

from fastapi import APIRouter, Depends
from typing import List

from campus_placement.core.auth import get_current_principal, require_student
from campus_placement.schemas.schemas import (
    Discussion, DiscussionCreate, DiscussionView, LikeResponse, MessageCreate,
    MessageView, Principal, Reply, ReplyCreate, ReplyView
)
from campus_placement.services.community_service import get_community_service

router = APIRouter(tags=["Community"])


# ============================================================
# DISCUSSIONS
# ============================================================

@router.get("/discussions", response_model=List[DiscussionView])
def list_discussions(principal: Principal = Depends(get_current_principal)):
    return get_community_service().list_discussions(principal)


@router.post("/discussions", response_model=Discussion, status_code=201)
def create_discussion(discussion: DiscussionCreate, principal: Principal = Depends(require_student)):
    return get_community_service().create_discussion(principal, discussion)


@router.post("/discussions/{discussion_id}/like", response_model=LikeResponse)
def toggle_like(discussion_id: int, principal: Principal = Depends(require_student)):
    return get_community_service().toggle_like(principal, discussion_id)


@router.get("/discussions/{discussion_id}/replies", response_model=List[ReplyView])
def list_replies(discussion_id: int, principal: Principal = Depends(get_current_principal)):
    return get_community_service().list_replies(principal, discussion_id)


@router.post("/discussions/{discussion_id}/replies", response_model=Reply, status_code=201)
def create_reply(discussion_id: int, reply: ReplyCreate, principal: Principal = Depends(require_student)):
    return get_community_service().create_reply(principal, discussion_id, reply)


# ============================================================
# MESSAGES
# ============================================================

@router.post("/messages", response_model=MessageView, status_code=201)
def send_message(message: MessageCreate, principal: Principal = Depends(require_student)):
    return get_community_service().send_message(principal, message)


@router.get("/messages/unread")
def unread_count(principal: Principal = Depends(require_student)):
    return {"unread": get_community_service().unread_count(principal)}


@router.get("/messages/{student_id}", response_model=List[MessageView])
def get_conversation(student_id: int, principal: Principal = Depends(require_student)):
    return get_community_service().conversation(principal, student_id)
