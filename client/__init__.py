from client.coach_client import CoachClient
from client.reconstructor import ConversationReconstructor, ReaderState, TurnResult

__all__ = ["CoachClient", "ConversationReconstructor", "ReaderState", "TurnResult"]
