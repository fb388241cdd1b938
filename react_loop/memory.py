"""Short-term memory: keeps a run's history inside a token budget.

Token counts are estimated, not tokenized:
- CJK characters count 0.7 each
- English words count 1.3 each
- each group of digits counts 1
- everything else counts 1 per 4 characters
plus 4 tokens of overhead per message.

When the history is over budget, older conversation turns are either
summarized by a model (if a summarizer is configured) or trimmed from the
front. System messages are always kept, and trimming never drops the latest
user message or the newest assistant turn with its tool results; those are
shortened instead when they alone exceed the budget.
"""

import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Optional

from react_loop.execution import Message
from react_loop.model import ModelAdaptor

logger = logging.getLogger(__name__)

MESSAGE_OVERHEAD_TOKENS = 4
SUMMARY_HEADING = "## Previous conversation summary"
TRUNCATION_MARKER = "\n[... truncated]"

_CJK = re.compile(r"[\u4e00-\u9fff]")
_WORD = re.compile(r"[a-zA-Z]+")
_LETTER = re.compile(r"[a-zA-Z]")
_NUMBER = re.compile(r"\d+")
_DIGIT = re.compile(r"\d")


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    cjk = len(_CJK.findall(text))
    words = len(_WORD.findall(text))
    numbers = len(_NUMBER.findall(text))
    other = len(text) - cjk - len(_LETTER.findall(text)) - len(_DIGIT.findall(text))
    return max(1, math.ceil(cjk * 0.7 + words * 1.3 + numbers + other / 4))


def estimate_messages_tokens(messages: list[Message]) -> int:
    return sum(MESSAGE_OVERHEAD_TOKENS + estimate_tokens(m.content) for m in messages)


@dataclass
class CompactedHistory:
    messages: list[Message]
    token_estimate: int
    summary: Optional[str] = None
    was_summarized: bool = False


class HistoryCompactor:
    """Interface the agent uses to keep its context within budget."""

    async def compact(self, messages: list[Message]) -> CompactedHistory:
        raise NotImplementedError

    def count_tokens(self, messages: list[Message]) -> int:
        return estimate_messages_tokens(messages)

    def reset(self) -> None:
        """Forget anything carried over from a previous run."""


class NoCompaction(HistoryCompactor):
    """Passes history through untouched; only counts tokens."""

    async def compact(self, messages: list[Message]) -> CompactedHistory:
        return CompactedHistory(
            messages=list(messages), token_estimate=self.count_tokens(messages)
        )


def _drop_orphan_tool_messages(messages: list[Message]) -> list[Message]:
    # a window may not open on tool results whose assistant turn was cut off
    start = 0
    while start < len(messages) and messages[start].role == "tool":
        start += 1
    return messages[start:]


def _speaker(message: Message) -> str:
    if message.role == "user":
        return "User"
    if message.role == "tool":
        return f"Tool({message.name or 'unknown'})"
    return "AI"


def _newest_that_fit(messages: list[Message], budget: int) -> list[Message]:
    kept: list[Message] = []
    used = 0
    for msg in reversed(messages):
        cost = MESSAGE_OVERHEAD_TOKENS + estimate_tokens(msg.content)
        if used + cost > budget:
            break
        kept.insert(0, msg)
        used += cost
    return _drop_orphan_tool_messages(kept)


def truncate_message(message: Message, max_tokens: int) -> Message:
    """Shorten ``message.content`` to about ``max_tokens`` estimated tokens."""
    text = message.content
    tokens = estimate_tokens(text)
    if tokens <= max_tokens:
        return message
    keep = len(text) * max(max_tokens, 0) // tokens
    while keep > 0 and estimate_tokens(text[:keep] + TRUNCATION_MARKER) > max_tokens:
        keep = keep * 9 // 10
    return replace(message, content=text[:keep] + TRUNCATION_MARKER)


def _fit_messages(messages: list[Message], budget: int) -> list[Message]:
    # smallest first, each capped at an even share of what is left
    fitted: list[Optional[Message]] = [None] * len(messages)
    order = sorted(range(len(messages)), key=lambda i: estimate_tokens(messages[i].content))
    for n, i in enumerate(order):
        share = budget // (len(messages) - n)
        fitted[i] = truncate_message(messages[i], share - MESSAGE_OVERHEAD_TOKENS)
        budget -= MESSAGE_OVERHEAD_TOKENS + estimate_tokens(fitted[i].content)
    return fitted


class ShortTermMemory(HistoryCompactor):
    """Token-budgeted compactor with optional model summarization.

    Args:
        max_tokens: Budget for the whole context (default: 4000).
        max_recent_messages: Conversation turns kept verbatim when
            summarizing (default: 10).
        summary_max_tokens: Length the summarizer is asked to stay under.
        enable_summarization: Summarize old turns instead of dropping them.
        summarizer: Model used to write summaries. Without one, the
            compactor always trims.
    """

    def __init__(
        self,
        max_tokens: int = 4000,
        max_recent_messages: int = 10,
        summary_max_tokens: int = 500,
        enable_summarization: bool = True,
        summarizer: Optional[ModelAdaptor] = None,
    ):
        self.max_tokens = max_tokens
        self.max_recent_messages = max_recent_messages
        self.summary_max_tokens = summary_max_tokens
        self.enable_summarization = enable_summarization
        self.summarizer = summarizer
        self.summary: Optional[str] = None
        # conversation messages already folded into self.summary
        self._summarized_count = 0

    def reset(self) -> None:
        self.summary = None
        self._summarized_count = 0

    def _budget_tokens(self, messages: list[Message]) -> int:
        tokens = estimate_messages_tokens(messages)
        if self.summary:
            tokens += estimate_tokens(self.summary)
        return tokens

    def needs_compaction(self, messages: list[Message]) -> bool:
        return self._budget_tokens(messages) > self.max_tokens

    def token_stats(self, messages: list[Message]) -> dict:
        messages_tokens = estimate_messages_tokens(messages)
        summary_tokens = estimate_tokens(self.summary) if self.summary else 0
        total = messages_tokens + summary_tokens
        return {
            "messages_tokens": messages_tokens,
            "summary_tokens": summary_tokens,
            "total_tokens": total,
            "remaining": max(0, self.max_tokens - total),
            "usage": round(total / self.max_tokens * 100),
        }

    async def compact(self, messages: list[Message]) -> CompactedHistory:
        system = [m for m in messages if m.role == "system"]
        conversation = [m for m in messages if m.role != "system"]
        # turns already summarized stay out of the verbatim window
        conversation = conversation[self._summarized_count:]

        total = self._budget_tokens(system + conversation)
        logger.debug(
            f"Compacting {len(messages)} messages: ~{total} tokens, limit {self.max_tokens}"
        )
        if total <= self.max_tokens:
            return self._result(system, conversation)

        if (
            self.enable_summarization
            and self.summarizer is not None
            and len(conversation) > self.max_recent_messages
        ):
            return await self._compact_with_summary(system, conversation)
        return self._compact_with_trim(system, conversation)

    async def _compact_with_summary(
        self, system: list[Message], conversation: list[Message]
    ) -> CompactedHistory:
        split = len(conversation) - self.max_recent_messages
        while split < len(conversation) and conversation[split].role == "tool":
            split += 1
        old, recent = conversation[:split], conversation[split:]
        if not old:
            return self._result(system, recent)

        self.summary = await self._summarize(old)
        self._summarized_count += len(old)
        logger.info(
            f"Summarized {len(old)} messages, keeping {len(recent)} recent messages"
        )
        return self._result(system, recent, was_summarized=True)

    def _compact_with_trim(
        self, system: list[Message], conversation: list[Message]
    ) -> CompactedHistory:
        available = self.max_tokens - estimate_messages_tokens(system)
        if self.summary:
            available -= estimate_tokens(self.summary) + 20

        # the latest question and the newest assistant turn with its tool
        # results always survive, shortened if they do not fit
        user_at = max(
            (i for i, m in enumerate(conversation) if m.role == "user"), default=None
        )
        start = 0 if user_at is None else user_at + 1
        block_at = max(
            (i for i in range(start, len(conversation)) if conversation[i].role == "assistant"),
            default=len(conversation),
        )
        question = [] if user_at is None else [conversation[user_at]]
        pinned = _fit_messages(question + conversation[block_at:], available)
        question, block = pinned[:len(question)], pinned[len(question):]

        remaining = available - estimate_messages_tokens(pinned)
        middle = _newest_that_fit(conversation[start:block_at], remaining)
        older: list[Message] = []
        if user_at and len(middle) == block_at - start:
            remaining -= estimate_messages_tokens(middle)
            older = _newest_that_fit(conversation[:user_at], remaining)

        kept = older + question + middle + block
        logger.info(
            f"Trimmed history from {len(conversation)} to {len(kept)} messages"
        )
        return self._result(system, kept)

    async def _summarize(self, messages: list[Message]) -> str:
        transcript = "\n\n".join(f"{_speaker(m)}: {m.content}" for m in messages)
        if self.summary:
            request = (
                f"Existing summary:\n{self.summary}\n\nNew conversation:\n{transcript}\n\n"
                "Merge the existing summary and the new conversation into one updated summary."
            )
        else:
            request = f"Summarize the following conversation:\n\n{transcript}"

        prompt = [
            Message(
                role="system",
                content=(
                    "You summarize conversations. Compress the conversation below into a "
                    "concise summary that keeps the key information.\n\n"
                    "Requirements:\n"
                    "1. Keep important facts, decisions and user preferences\n"
                    "2. Keep key technical details and code snippets, if any\n"
                    f"3. Stay under {self.summary_max_tokens} tokens\n"
                    "4. Write in the third person\n"
                    "5. Keep chronological order"
                ),
            ),
            Message(role="user", content=request),
        ]
        try:
            response = await self.summarizer.call(prompt, [])
            return response.content.strip()
        except Exception as e:
            logger.warning(f"Summary generation failed: {e}")
            return self.summary or f"[conversation of {len(messages)} messages]"

    def _result(
        self,
        system: list[Message],
        conversation: list[Message],
        was_summarized: bool = False,
    ) -> CompactedHistory:
        messages = self._with_summary(system) + conversation
        return CompactedHistory(
            messages=messages,
            token_estimate=estimate_messages_tokens(messages),
            summary=self.summary,
            was_summarized=was_summarized,
        )

    def _with_summary(self, system: list[Message]) -> list[Message]:
        if not self.summary:
            return list(system)
        if not system:
            return [Message(role="system", content=f"{SUMMARY_HEADING}\n{self.summary}")]
        first = system[0]
        merged = Message(
            role="system",
            content=f"{first.content}\n\n{SUMMARY_HEADING}\n{self.summary}",
            timestamp=first.timestamp,
        )
        return [merged] + system[1:]
