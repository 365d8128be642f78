"""Import all models so Base.metadata sees every table."""
from lobby_chat.infrastructure.db.models.account import AccountModel
from lobby_chat.infrastructure.db.models.address_ban import AddressBanModel
from lobby_chat.infrastructure.db.models.message import MessageModel

__all__ = [
    "AccountModel",
    "AddressBanModel",
    "MessageModel",
]
