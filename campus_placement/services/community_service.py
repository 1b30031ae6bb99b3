"""
Community Layer - Discussions, replies, likes and direct messages.

Everything is scoped to one coordinator's student population: a student
sees discussions and peers from their own university only.

discussions.likes_count is stored, not derived. It is changed in the
same transaction as the discussion_likes row it mirrors, and the
UNIQUE (discussion_id, student_id) constraint rejects double likes.
"""

import logging
from typing import List

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from campus_placement.core.errors import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
    validate_payload,
)
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import (
    discussion_likes,
    discussion_replies,
    discussions,
    messages,
    students,
)
from campus_placement.schemas.schemas import (
    AuthorSummary,
    Discussion,
    DiscussionCreate,
    DiscussionView,
    LikeResponse,
    MessageCreate,
    MessageView,
    Principal,
    Reply,
    ReplyCreate,
    ReplyView,
)
from campus_placement.services.identity_service import IdentityService, require_student

logger = logging.getLogger(__name__)


def _with_author(row, model):
    data = dict(row._mapping)
    data["author"] = AuthorSummary(name=data.pop("author_name"), branch=data.pop("author_branch"))
    return model.model_validate(data)


class CommunityService:

    def __init__(self):
        self.identity = IdentityService()

    def _scope(self, principal: Principal) -> int:
        if principal.is_coordinator:
            return principal.id
        return self.identity.get_student(principal.id).coordinator_id

    def _check_discussion(self, db, discussion_id: int, coordinator_id: int) -> None:
        row = db.execute(
            select(discussions.c.id)
            .join(students, students.c.id == discussions.c.author_id)
            .where(discussions.c.id == discussion_id)
            .where(students.c.coordinator_id == coordinator_id)
        ).fetchone()
        if not row:
            raise NotFoundError("Discussion not found")

    # ============================================================
    # DISCUSSIONS
    # ============================================================

    def create_discussion(self, principal: Principal, payload) -> Discussion:
        require_student(principal)
        data = validate_payload(DiscussionCreate, payload)

        with get_db_session() as db:
            result = db.execute(
                insert(discussions).values(
                    title=data.title,
                    content=data.content,
                    author_id=principal.id,
                    tags=[t.strip() for t in data.tags if t.strip()],
                    likes_count=0,
                )
            )
            discussion_id = result.inserted_primary_key[0]
            row = db.execute(select(discussions).where(discussions.c.id == discussion_id)).fetchone()

        logger.info("Student %s started discussion %s", principal.id, discussion_id)
        return Discussion.model_validate(dict(row._mapping))

    def list_discussions(self, principal: Principal) -> List[DiscussionView]:
        """Discussions in the caller's university, newest first, with author and reply count."""
        coordinator_id = self._scope(principal)
        reply_count = (
            select(func.count(discussion_replies.c.id))
            .where(discussion_replies.c.discussion_id == discussions.c.id)
            .scalar_subquery()
        )
        query = (
            select(
                discussions,
                students.c.name.label("author_name"),
                students.c.branch.label("author_branch"),
                reply_count.label("replies_count"),
            )
            .join(students, students.c.id == discussions.c.author_id)
            .where(students.c.coordinator_id == coordinator_id)
            .order_by(discussions.c.created_at.desc(), discussions.c.id.desc())
        )
        with get_db_session() as db:
            rows = db.execute(query).fetchall()
        return [_with_author(row, DiscussionView) for row in rows]

    # ------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------

    def _likes_count(self, db, discussion_id: int) -> int:
        return db.execute(
            select(discussions.c.likes_count).where(discussions.c.id == discussion_id)
        ).scalar_one()

    def _has_liked(self, db, discussion_id: int, student_id: int) -> bool:
        row = db.execute(
            select(discussion_likes.c.id)
            .where(discussion_likes.c.discussion_id == discussion_id)
            .where(discussion_likes.c.student_id == student_id)
        ).fetchone()
        return row is not None

    def like(self, principal: Principal, discussion_id: int) -> int:
        """Like a discussion; returns the new likes_count. Double like -> ConflictError."""
        require_student(principal)
        coordinator_id = self._scope(principal)
        try:
            with get_db_session() as db:
                self._check_discussion(db, discussion_id, coordinator_id)
                if self._has_liked(db, discussion_id, principal.id):
                    raise ConflictError("Discussion already liked")
                db.execute(
                    insert(discussion_likes).values(discussion_id=discussion_id, student_id=principal.id)
                )
                db.execute(
                    update(discussions)
                    .where(discussions.c.id == discussion_id)
                    .values(likes_count=discussions.c.likes_count + 1)
                )
                count = self._likes_count(db, discussion_id)
        except IntegrityError as exc:
            raise ConflictError("Discussion already liked") from exc
        return count

    def unlike(self, principal: Principal, discussion_id: int) -> int:
        """Remove the caller's like; returns the new likes_count. NotFoundError if not liked."""
        require_student(principal)
        coordinator_id = self._scope(principal)
        with get_db_session() as db:
            self._check_discussion(db, discussion_id, coordinator_id)
            result = db.execute(
                delete(discussion_likes)
                .where(discussion_likes.c.discussion_id == discussion_id)
                .where(discussion_likes.c.student_id == principal.id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Like not found")
            db.execute(
                update(discussions)
                .where(discussions.c.id == discussion_id)
                .values(likes_count=discussions.c.likes_count - 1)
            )
            return self._likes_count(db, discussion_id)

    def toggle_like(self, principal: Principal, discussion_id: int) -> LikeResponse:
        """Like if not liked yet, otherwise unlike."""
        require_student(principal)
        with get_db_session() as db:
            liked = self._has_liked(db, discussion_id, principal.id)
        if liked:
            return LikeResponse(liked=False, likes_count=self.unlike(principal, discussion_id))
        return LikeResponse(liked=True, likes_count=self.like(principal, discussion_id))

    # ------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------

    def list_replies(self, principal: Principal, discussion_id: int) -> List[ReplyView]:
        """Replies in posting order."""
        coordinator_id = self._scope(principal)
        with get_db_session() as db:
            self._check_discussion(db, discussion_id, coordinator_id)
            rows = db.execute(
                select(
                    discussion_replies,
                    students.c.name.label("author_name"),
                    students.c.branch.label("author_branch"),
                )
                .join(students, students.c.id == discussion_replies.c.author_id)
                .where(discussion_replies.c.discussion_id == discussion_id)
                .order_by(discussion_replies.c.created_at, discussion_replies.c.id)
            ).fetchall()
        return [_with_author(row, ReplyView) for row in rows]

    def create_reply(self, principal: Principal, discussion_id: int, payload) -> Reply:
        require_student(principal)
        data = validate_payload(ReplyCreate, payload)
        coordinator_id = self._scope(principal)

        with get_db_session() as db:
            self._check_discussion(db, discussion_id, coordinator_id)
            result = db.execute(
                insert(discussion_replies).values(
                    discussion_id=discussion_id,
                    author_id=principal.id,
                    content=data.content,
                )
            )
            row = db.execute(
                select(discussion_replies).where(discussion_replies.c.id == result.inserted_primary_key[0])
            ).fetchone()
        return Reply.model_validate(dict(row._mapping))

    # ============================================================
    # MESSAGES
    # ============================================================

    def _check_peer(self, principal: Principal, other_id: int) -> None:
        me = self.identity.get_student(principal.id)
        try:
            other = self.identity.get_student(other_id)
        except NotFoundError:
            raise NotFoundError("Student not found") from None
        if other.coordinator_id != me.coordinator_id:
            raise NotFoundError("Student not found")

    def send_message(self, principal: Principal, payload) -> MessageView:
        require_student(principal)
        data = validate_payload(MessageCreate, payload)
        if data.receiver_id == principal.id:
            raise ValidationFailedError("Cannot send a message to yourself")
        self._check_peer(principal, data.receiver_id)

        with get_db_session() as db:
            result = db.execute(
                insert(messages).values(
                    sender_id=principal.id,
                    receiver_id=data.receiver_id,
                    content=data.content,
                    is_read=False,
                )
            )
            row = db.execute(
                select(messages).where(messages.c.id == result.inserted_primary_key[0])
            ).fetchone()
        return MessageView(**dict(row._mapping), is_own=True)

    def conversation(self, principal: Principal, other_id: int) -> List[MessageView]:
        """
        Both directions of a conversation, oldest first. Messages from the
        other student are marked read in the same transaction.
        """
        require_student(principal)
        self._check_peer(principal, other_id)

        with get_db_session() as db:
            db.execute(
                update(messages)
                .where(messages.c.sender_id == other_id)
                .where(messages.c.receiver_id == principal.id)
                .where(messages.c.is_read.is_(False))
                .values(is_read=True)
            )
            rows = db.execute(
                select(messages)
                .where(
                    or_(
                        and_(messages.c.sender_id == principal.id, messages.c.receiver_id == other_id),
                        and_(messages.c.sender_id == other_id, messages.c.receiver_id == principal.id),
                    )
                )
                .order_by(messages.c.created_at, messages.c.id)
            ).fetchall()

        return [
            MessageView(**dict(row._mapping), is_own=row.sender_id == principal.id)
            for row in rows
        ]

    def unread_count(self, principal: Principal) -> int:
        require_student(principal)
        with get_db_session() as db:
            return db.execute(
                select(func.count(messages.c.id))
                .where(messages.c.receiver_id == principal.id)
                .where(messages.c.is_read.is_(False))
            ).scalar_one()


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_community_service() -> CommunityService:
    """Get community service instance."""
    return CommunityService()
