"""Database models."""
from hippo.models.conversation import Conversation, ConversationStatus
from hippo.models.message import Message, MessageType
from hippo.models.loan import Loan, LoanStatus

__all__ = ["Conversation", "ConversationStatus", "Message", "MessageType", "Loan", "LoanStatus"]
