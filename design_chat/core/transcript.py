"""Append-only transcript helpers"""

from design_chat.models.schemas import Message, MessageSender, SessionState


def add_message(state: SessionState, text: str, sender: MessageSender = MessageSender.BOT, **flags) -> Message:
    """Append a message with the next id of this session"""
    message = Message(id=state.next_message_id, text=text, sender=sender, **flags)
    state.next_message_id += 1
    state.messages.append(message)
    return message


def add_user_message(state: SessionState, text: str) -> Message:
    return add_message(state, text, MessageSender.USER)
