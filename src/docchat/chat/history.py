"""In-memory conversation history."""

from __future__ import annotations

import re
import secrets
import string
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal, Optional

Role = Literal["user", "assistant"]
ContextUsed = Literal["document", "web", "both"]

TOPIC_KEYWORDS = (
    "vacation",
    "sick leave",
    "benefits",
    "insurance",
    "remote work",
    "policy",
    "hours",
    "overtime",
    "performance",
    "review",
    "training",
    "development",
    "reimbursement",
    "expense",
    "equipment",
    "technology",
    "security",
    "stock",
    "price",
    "market",
    "nasdaq",
    "nyse",
)
MAX_TOPICS = 5
MAX_SUMMARY_CHARS = 100

_PUNCTUATION = re.compile(r"[^\w\s]")
_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_conversation_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"conv_{int(time.time() * 1000)}_{suffix}"


def generate_conversation_title(first_message: str) -> str:
    """Title from the first six words of the opening message."""
    words = _PUNCTUATION.sub("", first_message).strip().split()
    title = " ".join(words[:6])
    if len(title) > 50:
        title = title[:47] + "..."
    if not title:
        return "New Conversation"
    return title[0].upper() + title[1:]


@dataclass(slots=True)
class StoredMessage:
    role: Role
    content: str
    timestamp: str
    sources: List[str] = field(default_factory=list)
    used_web_search: bool = False
    context_used: Optional[ContextUsed] = None


@dataclass(slots=True)
class ConversationMetadata:
    title: str
    summary: str
    key_topics: List[str]
    created_at: str
    updated_at: str


@dataclass(slots=True)
class ConversationSummary:
    id: str
    title: str
    message_count: int
    last_activity: Optional[str]
    key_topics: List[str]
    summary: str
    created_at: Optional[str]


def extract_key_topics(messages: Iterable[StoredMessage]) -> List[str]:
    """Known topic keywords mentioned by the user, in first-mention order."""
    topics: Dict[str, None] = {}
    for message in messages:
        if message.role != "user":
            continue
        content = message.content.lower()
        for keyword in TOPIC_KEYWORDS:
            if keyword in content:
                topics.setdefault(keyword, None)
    return list(topics)[:MAX_TOPICS]


class ConversationStore:
    """Per-conversation message lists and metadata, kept for the process lifetime."""

    def __init__(self) -> None:
        self._messages: Dict[str, List[StoredMessage]] = {}
        self._metadata: Dict[str, ConversationMetadata] = {}
        self._lock = threading.Lock()

    def get_messages(self, conversation_id: str) -> List[StoredMessage]:
        with self._lock:
            return list(self._messages.get(conversation_id, ()))

    def get_metadata(self, conversation_id: str) -> ConversationMetadata | None:
        """Snapshot of the conversation metadata; later exchanges do not change it."""
        with self._lock:
            metadata = self._metadata.get(conversation_id)
            if metadata is None:
                return None
            return replace(metadata, key_topics=list(metadata.key_topics))

    def recent_context(self, conversation_id: str, limit: int = 4) -> str:
        """The last ``limit`` messages formatted as a prompt suffix, or ``""``."""
        recent = self.get_messages(conversation_id)[-limit:]
        if not recent:
            return ""
        lines = [
            f"{'User' if message.role == 'user' else 'Assistant'}: {message.content}"
            for message in recent
        ]
        return "\n\nRecent conversation context:\n" + "\n".join(lines)

    def record_exchange(
        self,
        conversation_id: str,
        question: str,
        answer: str,
        *,
        sources: Iterable[str] = (),
        used_web_search: bool = False,
        context_used: ContextUsed | None = None,
        timestamp: str | None = None,
    ) -> None:
        """Append a user/assistant pair and refresh the conversation metadata."""
        timestamp = timestamp or utc_timestamp()
        with self._lock:
            messages = self._messages.setdefault(conversation_id, [])
            is_first = not messages
            messages.append(StoredMessage(role="user", content=question, timestamp=timestamp))
            messages.append(
                StoredMessage(
                    role="assistant",
                    content=answer,
                    timestamp=timestamp,
                    sources=list(sources),
                    used_web_search=used_web_search,
                    context_used=context_used,
                )
            )

            metadata = self._metadata.get(conversation_id)
            if is_first or metadata is None:
                summary = question
                if len(summary) > MAX_SUMMARY_CHARS:
                    summary = summary[:MAX_SUMMARY_CHARS] + "..."
                self._metadata[conversation_id] = ConversationMetadata(
                    title=generate_conversation_title(question),
                    summary=summary,
                    key_topics=extract_key_topics(messages),
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            else:
                metadata.key_topics = extract_key_topics(messages)
                metadata.updated_at = timestamp

    def list_conversations(self) -> List[ConversationSummary]:
        """All conversations, most recent activity first."""
        with self._lock:
            summaries = []
            for conversation_id, messages in self._messages.items():
                metadata = self._metadata.get(conversation_id)
                summaries.append(
                    ConversationSummary(
                        id=conversation_id,
                        title=metadata.title if metadata else "Untitled Conversation",
                        message_count=len(messages),
                        last_activity=messages[-1].timestamp if messages else None,
                        key_topics=list(metadata.key_topics) if metadata else [],
                        summary=metadata.summary if metadata else "",
                        created_at=metadata.created_at if metadata else None,
                    )
                )
        active = sorted(
            (item for item in summaries if item.last_activity),
            key=lambda item: item.last_activity or "",
            reverse=True,
        )
        return active + [item for item in summaries if not item.last_activity]

    def delete(self, conversation_id: str) -> bool:
        with self._lock:
            existed = conversation_id in self._messages
            self._messages.pop(conversation_id, None)
            self._metadata.pop(conversation_id, None)
        return existed
