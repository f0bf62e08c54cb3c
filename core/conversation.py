"""Conversation service - multi-turn sessions against a prompt."""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from models.test_case import ConversationTurn
from core.evaluator import compose_system_prompt
from utils.error_handling import ConversationNotFoundError
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.reply_decoder import decode_json_object

logger = setup_logging()


@dataclass
class Conversation:
    """State of one conversation."""
    id: str
    messages: List[ConversationTurn] = field(default_factory=list)
    parameters: Optional[Dict[str, Any]] = None
    is_complete: bool = False


@dataclass(frozen=True)
class ConversationReply:
    """What the assistant said, plus parameters once it emits them."""
    response: str
    is_complete: bool
    parameters: Optional[Dict[str, Any]] = None


class ConversationStore(ABC):
    """Keyed store of conversation id -> Conversation."""

    @abstractmethod
    def put(self, conversation: Conversation):
        ...

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[Conversation]:
        ...

    @abstractmethod
    def list_ids(self) -> List[str]:
        ...


class InMemoryConversationStore(ConversationStore):

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}

    def put(self, conversation: Conversation):
        self._conversations[conversation.id] = conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def list_ids(self) -> List[str]:
        return list(self._conversations.keys())


class ConversationService:
    """Runs a prompt as a conversational agent, one user message at a time."""

    def __init__(self, oracle: CompletionOracle, store: Optional[ConversationStore] = None):
        self.oracle = oracle
        self.store = store or InMemoryConversationStore()

    def start_conversation(self) -> str:
        """Start a new conversation and return its id."""
        conversation_id = str(uuid.uuid4())
        self.store.put(Conversation(id=conversation_id))
        logger.info("Started conversation", conversation_id=conversation_id)
        return conversation_id

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.store.get(conversation_id)

    def send_message(
        self,
        conversation_id: str,
        message: str,
        global_prompt: str,
        prompt: str
    ) -> ConversationReply:
        """
        Send a user message and get the assistant's reply.

        The whole transcript so far is sent as the user prompt. A reply that
        is a JSON object is taken as the final parameters and completes the
        conversation.

        Raises:
            ConversationNotFoundError: if the id is unknown
        """
        conversation = self.store.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        conversation.messages.append(ConversationTurn(role="user", content=message))
        transcript = "\n\n".join(turn.content for turn in conversation.messages)

        response = self.oracle.get_completion(compose_system_prompt(global_prompt, prompt), transcript)
        conversation.messages.append(ConversationTurn(role="assistant", content=response))

        decoded = decode_json_object(response)
        if decoded.ok:
            conversation.parameters = decoded.value
            conversation.is_complete = True
        elif decoded.strategy == "strict":
            logger.warning(f"Failed to parse response as JSON: {decoded.error}", conversation_id=conversation_id)

        self.store.put(conversation)
        return ConversationReply(
            response=response,
            is_complete=conversation.is_complete,
            parameters=decoded.value if decoded.ok else None
        )
