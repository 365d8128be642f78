from __future__ import annotations

from lobby_chat.domain.entities.message import Message
from lobby_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        display_name=model.display_name,
        body=model.body,
        is_admin=model.is_admin,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        display_name=entity.display_name,
        body=entity.body,
        is_admin=entity.is_admin,
        created_at=entity.created_at,
    )
