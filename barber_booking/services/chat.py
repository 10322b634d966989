# barber_booking/services/chat.py

"""Client-barber conversations tied to an appointment."""

import logging
from typing import Optional

from sqlmodel import Session, select

from ..config import RETENTION_DAYS
from ..errors import NotFoundError
from ..models import Appointment, Conversation, Message

logger = logging.getLogger(__name__)

CLIENT_BARBER = "client_barber"
RETENTION_POLICY = "RETENTION_POLICY"

RETENTION_NOTICE = (
    f"Notice: messages are deleted automatically {RETENTION_DAYS} days after they are sent. "
    "You can delete a conversation yourself; it is removed permanently once both parties delete it."
)


def get_or_create_conversation(session: Session, appointment_id: int) -> int:
    """Return the client-barber conversation for an appointment, creating it if needed.

    Every conversation carries exactly one system retention notice.
    """
    appt = session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFoundError("Appointment not found for conversation")

    conversation = session.exec(
        select(Conversation)
        .where(Conversation.type == CLIENT_BARBER)
        .where(Conversation.appointment_id == appt.id)
        .where(Conversation.client_id == appt.client_id)
        .where(Conversation.barber_id == appt.barber_id)
    ).first()

    if conversation is None:
        conversation = Conversation(
            type=CLIENT_BARBER,
            client_id=appt.client_id,
            barber_id=appt.barber_id,
            appointment_id=appt.id,
        )
        session.add(conversation)
        session.flush()
        logger.info(f"Created conversation {conversation.id} for appointment {appt.id}")

    notice = session.exec(
        select(Message.id)
        .where(Message.conversation_id == conversation.id)
        .where(Message.is_system == True)  # noqa: E712
        .where(Message.related_action == RETENTION_POLICY)
    ).first()
    if notice is None:
        post_message(
            session,
            conversation.id,
            sender_id=appt.client_id,
            receiver_id=appt.barber_id,
            text=RETENTION_NOTICE,
            is_system=True,
            related_action=RETENTION_POLICY,
        )

    return conversation.id


def post_message(
    session: Session,
    conversation_id: int,
    sender_id: Optional[int],
    receiver_id: Optional[int],
    text: str,
    is_system: bool = False,
    related_action: Optional[str] = None,
    related_id: Optional[str] = None,
) -> Message:
    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        is_system=is_system,
        related_action=related_action,
        related_id=related_id,
    )
    session.add(message)
    session.flush()
    return message
