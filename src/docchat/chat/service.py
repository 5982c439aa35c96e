"""Chat orchestration: retrieve passages, answer, optionally fall back to the web."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from docchat.chat.history import ContextUsed, ConversationStore, generate_conversation_id, utc_timestamp
from docchat.index.search import Searcher
from docchat.utils.text import tokenize

LOGGER = logging.getLogger(__name__)

INSUFFICIENT_ANSWER_PHRASES = (
    "don't have enough information",
    "couldn't find",
    "not mentioned",
    "no information",
    "unable to find",
    "not available in the context",
    "don't know",
    "cannot find",
)
MIN_ANSWER_CHARS = 50

STOCK_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"stock price",
        r"share price",
        r"market value",
        r"current price of \w+",
        r"how.*performed",
        r"\b[A-Z]{2,5}\b.*price",
        r"nasdaq|nyse|dow jones",
    )
)
CURRENT_EVENT_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"current|today|now|recent|latest|this (week|month|year)",
        r"what.*happening|news about",
        r"update.*on|status.*of",
    )
)

NO_CONTEXT_ANSWER = (
    "I couldn't find any relevant information in the document to answer your question. "
    "Please try asking about topics the document covers."
)
NOT_FOUND_WEB_DISABLED = (
    "I couldn't find relevant information in the loaded documents to answer your question. "
    "You may want to enable web search for broader results."
)
NOT_FOUND_WEB_UNAVAILABLE = (
    "I couldn't find relevant information in the loaded documents to answer your question. "
    "Web search is currently unavailable."
)
NOT_FOUND_ANYWHERE = (
    "I couldn't find relevant information in the loaded documents or through web search "
    "to answer your question."
)


@dataclass(slots=True)
class ContextPassage:
    content: str
    source: str
    chunk_index: int
    section: str | None = None


@dataclass(slots=True)
class Answer:
    answer: str
    sources: List[str] = field(default_factory=list)


@dataclass(slots=True)
class WebResult:
    title: str
    url: str = ""
    snippet: str = ""
    source: str = ""

    def label(self) -> str:
        if not self.url:
            return self.title or "Web Search Result"
        return f"{self.title} ({self.source or 'Web Source'}) - {self.url}"


class AnswerGenerator(Protocol):
    def generate(self, question: str, contexts: Sequence[ContextPassage]) -> Answer:
        ...


class WebSearcher(Protocol):
    def search(self, query: str) -> List[WebResult]:
        ...


@dataclass(slots=True)
class ChatReply:
    response: str
    sources: List[str]
    conversation_id: str
    timestamp: str
    used_web_search: bool
    context_used: ContextUsed


def should_try_web_search(response: str, question: str) -> bool:
    """Whether a document-based answer looks too weak or the question needs live data."""
    response_lower = response.lower()
    if any(phrase in response_lower for phrase in INSUFFICIENT_ANSWER_PHRASES):
        return True
    if len(response) < MIN_ANSWER_CHARS:
        return True
    if any(pattern.search(question) for pattern in STOCK_PATTERNS):
        return True
    return any(pattern.search(question) for pattern in CURRENT_EVENT_PATTERNS)


class ExtractiveAnswerer:
    """Answers with the sentences of the best-matching passage.

    Used when no language model is configured.
    """

    max_sentences = 4
    max_additional = 2

    def generate(self, question: str, contexts: Sequence[ContextPassage]) -> Answer:
        if not contexts:
            return Answer(answer=NO_CONTEXT_ANSWER, sources=[])

        words = list(dict.fromkeys(tokenize(question)))
        best = contexts[0]
        best_score, best_matched = self._score(words, best)
        for context in contexts[1:]:
            score, matched = self._score(words, context)
            if score > best_score:
                best, best_score, best_matched = context, score, matched

        if best_score <= 1:
            sections = ", ".join(context.section for context in contexts if context.section)
            return Answer(
                answer=(
                    "I found some information in the document, but it doesn't directly answer "
                    f'your question about "{question}". The available sections include: '
                    f"{sections or 'none'}. Please try asking more specifically about these "
                    "topics, or rephrase your question."
                ),
                sources=[context.source for context in contexts],
            )

        sentences = [s.strip() for s in re.split(r"[.!?]+", best.content) if len(s.strip()) > 10]
        relevant = [s for s in sentences if any(word in s.lower() for word in best_matched)]
        relevant = relevant[: self.max_sentences]
        if not relevant:
            return Answer(
                answer=f"Based on the document: {best.content[:300]}...",
                sources=[best.source],
            )

        prefix = f"According to the {best.section} section: " if best.section else "Based on the document: "
        answer = prefix + ". ".join(relevant) + "."
        additional = [s for s in sentences if s not in relevant and len(s) > 15][: self.max_additional]
        if additional:
            answer += " Additionally: " + ". ".join(additional) + "."
        return Answer(answer=answer, sources=[best.source])

    @staticmethod
    def _score(words: Sequence[str], context: ContextPassage) -> tuple[float, List[str]]:
        content = context.content.lower()
        score = 0.0
        matched: List[str] = []
        for word in words:
            hits = len(re.findall(rf"\b{re.escape(word)}\b", content))
            if hits:
                score += hits * 2
                matched.append(word)
            if word in content:
                score += 0.5
        if context.section and any(word in context.section.lower() for word in words):
            score += 3
        return score, matched


class ChatService:
    """Answers chat messages from the loaded document, keeping conversation history."""

    def __init__(
        self,
        searcher: Searcher,
        answerer: AnswerGenerator | None = None,
        web_searcher: WebSearcher | None = None,
        *,
        store: ConversationStore | None = None,
        top_k: int = 5,
        min_score: float = 0.1,
    ) -> None:
        self.searcher = searcher
        self.answerer = answerer or ExtractiveAnswerer()
        self.web_searcher = web_searcher
        self.store = store or ConversationStore()
        self.top_k = top_k
        self.min_score = min_score

    def relevant_context(self, message: str) -> List[ContextPassage]:
        """Top passages scoring above the minimum relevance."""
        return [
            ContextPassage(
                content=result.content,
                source=result.source,
                chunk_index=result.chunk_index,
                section=result.section,
            )
            for result in self.searcher.search(message, top_k=self.top_k)
            if result.score > self.min_score
        ]

    def handle(
        self,
        message: str,
        conversation_id: str | None = None,
        *,
        use_web_search: bool = True,
        maintain_history: bool = True,
    ) -> ChatReply:
        if not message or not message.strip():
            raise ValueError("Message is required and cannot be empty")
        conversation_id = conversation_id or generate_conversation_id()

        contexts = self.relevant_context(message)
        history = self.store.recent_context(conversation_id) if maintain_history else ""
        used_web_search = False
        context_used: ContextUsed = "document"

        if contexts:
            result = self.answerer.generate(message + history, contexts)
            response, sources = result.answer, list(result.sources)
            if use_web_search and should_try_web_search(response, message):
                web_results = self._web_search(message)
                if web_results:
                    combined = contexts + self._web_context(web_results)
                    result = self.answerer.generate(
                        f"{message} (Use both document context and web search results; "
                        "include URLs when available.)",
                        combined,
                    )
                    response = result.answer
                    sources = list(dict.fromkeys([*sources, *(item.label() for item in web_results)]))
                    used_web_search = True
                    context_used = "both"
        else:
            LOGGER.info("No relevant document chunks found for %r", message)
            response, sources = NOT_FOUND_WEB_DISABLED, []
            if use_web_search:
                response = NOT_FOUND_WEB_UNAVAILABLE
                web_results = self._web_search(message)
                if web_results:
                    result = self.answerer.generate(
                        f"{message} (Answer from the web search results and include source URLs.)",
                        self._web_context(web_results),
                    )
                    response = f"Based on web search: {result.answer}"
                    sources = [item.label() for item in web_results]
                    used_web_search = True
                    context_used = "web"
                elif web_results is not None:
                    response = NOT_FOUND_ANYWHERE

        timestamp = utc_timestamp()
        self.store.record_exchange(
            conversation_id,
            message,
            response,
            sources=sources,
            used_web_search=used_web_search,
            context_used=context_used,
            timestamp=timestamp,
        )
        return ChatReply(
            response=response,
            sources=sources,
            conversation_id=conversation_id,
            timestamp=timestamp,
            used_web_search=used_web_search,
            context_used=context_used,
        )

    def _web_search(self, query: str) -> List[WebResult] | None:
        """Web results, or ``None`` when web search is not available."""
        if self.web_searcher is None:
            LOGGER.debug("No web searcher configured")
            return None
        try:
            return list(self.web_searcher.search(query))
        except Exception as exc:
            LOGGER.error("Web search failed: %s", exc)
            return None

    @staticmethod
    def _web_context(results: Sequence[WebResult]) -> List[ContextPassage]:
        passages = []
        for index, item in enumerate(results):
            body = "\n".join(part for part in (item.title, item.snippet, f"URL: {item.url}" if item.url else "") if part)
            passages.append(
                ContextPassage(
                    content=f"Web Source {index + 1}: {body}",
                    source=f"Web Search Result {index + 1}",
                    chunk_index=index,
                )
            )
        return passages
