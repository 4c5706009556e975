import logging
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mentorlink.models import Conversation, User
from mentorlink.realtime.bus import EventBus
from mentorlink.realtime.events import CollaborationEvent
from mentorlink.repositories.conversation_repository import ConversationRepository
from mentorlink.repositories.user_repository import UserRepository
from mentorlink.schemas.conversation import ConversationStatus, MentoringPlanUpdate
from mentorlink.schemas.user import UserRole

from .exceptions import (
    BusinessRuleError,
    ConflictError,
    ConversationNotFoundError,
    DatabaseError,
    ServiceError,
)

logger = logging.getLogger(__name__)

# One message for every start failure so lookups cannot probe for emails
START_FAILED_MESSAGE = "Unable to start conversation."


class ConversationService:
    def __init__(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        event_bus: EventBus,
    ):
        self.conv_repo = conversation_repository
        self.user_repo = user_repository
        self.bus = event_bus
        self.session = conversation_repository.session

    async def get_conversation_for_user(
        self, conversation_id: UUID, user: User
    ) -> Conversation:
        """Loads a conversation the user takes part in.

        Unknown conversations and non-participants both get not-found.
        """
        conversation = await self.conv_repo.get_conversation_by_id(conversation_id)
        if conversation is None or conversation.role_of(user.id) is None:
            raise ConversationNotFoundError()
        return conversation

    async def get_conversation(self, conversation_id: UUID) -> Conversation | None:
        return await self.conv_repo.get_conversation_by_id(conversation_id)

    async def list_conversations_for_user(self, user: User) -> Sequence[Conversation]:
        try:
            return await self.conv_repo.list_conversations_for_user(user.id)
        except SQLAlchemyError as e:
            logger.error(f"Database error listing conversations: {e}", exc_info=True)
            raise DatabaseError("Failed to list conversations due to a database error.")

    async def start_conversation(
        self, user: User, other_email: str, goal: str | None = None
    ) -> tuple[Conversation, bool]:
        """Returns the pair's active conversation, or opens a new one.

        The second element tells whether a conversation was created.
        Completed or cancelled conversations are history and never reopened.
        """
        other = await self.user_repo.get_user_by_email(other_email)
        if other is None or other.id == user.id or not other.is_active:
            raise BusinessRuleError(START_FAILED_MESSAGE)

        if user.role == UserRole.MENTEE and other.role in (
            UserRole.MENTOR,
            UserRole.ADMIN,
        ):
            mentor_id, mentee_id = other.id, user.id
        elif user.role in (UserRole.MENTOR, UserRole.ADMIN) and (
            other.role == UserRole.MENTEE
        ):
            mentor_id, mentee_id = user.id, other.id
        else:
            raise BusinessRuleError(START_FAILED_MESSAGE)

        existing = await self.conv_repo.get_active_conversation_for_pair(
            mentor_id, mentee_id
        )
        if existing is not None:
            return existing, False

        try:
            conversation = await self.conv_repo.create_conversation(
                mentor_id, mentee_id, goal=goal
            )
            await self.session.commit()
        except IntegrityError as e:
            # Another request opened the pair's conversation first
            await self.session.rollback()
            logger.info(f"Active conversation already exists for pair: {e}")
            existing = await self.conv_repo.get_active_conversation_for_pair(
                mentor_id, mentee_id
            )
            if existing is None:
                raise ConflictError("Could not start conversation due to a data conflict.")
            return existing, False
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error creating conversation: {e}", exc_info=True)
            raise DatabaseError("Failed to create conversation due to a database error.")

        logger.info(
            f"Conversation {conversation.id} started between mentor {mentor_id} "
            f"and mentee {mentee_id}"
        )
        return conversation, True

    async def update_status(
        self, conversation_id: UUID, user: User, new_status: ConversationStatus
    ) -> Conversation:
        conversation = await self.get_conversation_for_user(conversation_id, user)
        if conversation.status != ConversationStatus.ACTIVE:
            raise ConflictError("Only active conversations can change status.")
        if new_status == ConversationStatus.ACTIVE:
            raise BusinessRuleError("Conversation is already active.")

        try:
            conversation = await self.conv_repo.update_status(conversation, new_status)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error updating conversation: {e}", exc_info=True)
            raise DatabaseError("Failed to update conversation due to a database error.")
        return conversation

    async def update_mentoring_plan(
        self, conversation_id: UUID, user: User, update: MentoringPlanUpdate
    ) -> Conversation:
        conversation = await self.get_conversation_for_user(conversation_id, user)
        plan: dict[str, Any] = dict(conversation.mentoring_plan or {})
        plan.update(update.model_dump(exclude_unset=True))

        try:
            conversation = await self.conv_repo.set_mentoring_plan(conversation, plan)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error saving mentoring plan: {e}", exc_info=True)
            raise DatabaseError("Failed to save mentoring plan due to a database error.")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Unexpected error saving mentoring plan: {e}", exc_info=True)
            raise ServiceError("An unexpected error occurred saving the mentoring plan.")

        self.bus.publish(
            CollaborationEvent.MENTORING_PLAN_UPDATED,
            {
                "conversationId": str(conversation.id),
                "mentoringPlan": plan,
                "updatedBy": conversation.role_of(user.id),
            },
        )
        return conversation
