"""
Context service: assembles the single text prompt sent upstream for a coaching turn.
Combines the coaching preamble, personalization summary, knowledge base snippets,
replayed conversation history and the new user message.
"""
import re
from typing import Awaitable, Callable, Optional, Sequence

from config import Config
from models.api_models import ChatTurn, PersonalizationContext
from services.knowledge import KnowledgeService
from utils.constants import (
    COACH_SYSTEM_PROMPT,
    PERSONALIZATION_BLOCK,
    KNOWLEDGE_BLOCK,
    Speaker,
    Patterns
)
from utils.logger import app_logger, log_development

KnowledgeSearch = Callable[[str], Awaitable[Optional[str]]]


class ContextService:
    """Service for building coaching prompts."""

    @staticmethod
    def summarize_assessment(assessment: str, max_length: int | None = None) -> str:
        """
        Reduce a raw assessment to at most `max_length` characters.

        Sections are located by their `**Heading**` markers; headings that mention
        one of the known focus areas contribute their first few hundred characters.
        Falls back to plain truncation when no recognisable section fits.
        """
        if max_length is None:
            max_length = Config.PERSONALIZATION_MAX_CHARS

        if len(assessment) <= max_length:
            return assessment

        sections = re.split(Patterns.BOLD_HEADING, assessment)
        summary = ""

        # split() with one capture group puts headings at odd indices
        for i in range(1, len(sections), 2):
            if len(summary) >= max_length:
                break

            heading = sections[i]
            if not heading or not any(kw in heading.lower() for kw in Patterns.ASSESSMENT_SECTION_KEYWORDS):
                continue

            body = sections[i + 1].strip() if i + 1 < len(sections) else ""
            if not body:
                continue

            piece = f"**{heading}**\n{body[:Config.PERSONALIZATION_SECTION_CHARS]}...\n\n"
            if len(summary) + len(piece) <= max_length:
                summary += piece

        if not summary:
            summary = assessment[:max_length - 3] + "..."

        return summary

    @staticmethod
    def format_personalization(personalization: Optional[PersonalizationContext]) -> str:
        """Render the personalization block, or an empty string without an assessment."""
        if not personalization or not personalization.assessment:
            return ""
        summary = ContextService.summarize_assessment(personalization.assessment)
        return PERSONALIZATION_BLOCK.format(summary=summary)

    @staticmethod
    def build_system_prompt(topic: str, personalization: Optional[PersonalizationContext] = None) -> str:
        """Coaching preamble naming the current focus area."""
        return COACH_SYSTEM_PROMPT.format(
            topic=topic,
            personalization=ContextService.format_personalization(personalization)
        )

    @staticmethod
    def window_history(history: Sequence[ChatTurn], max_turns: int | None = None) -> list[ChatTurn]:
        """Keep the most recent `max_turns` turns in their original order. 0 keeps all."""
        if max_turns is None:
            max_turns = Config.MAX_HISTORY_MESSAGES

        turns = list(history)
        if max_turns > 0 and len(turns) > max_turns:
            app_logger.info(f"History trimmed from {len(turns)} to the last {max_turns} turns")
            turns = turns[-max_turns:]
        return turns

    @staticmethod
    def format_history(history: Sequence[ChatTurn]) -> str:
        """Flatten turns into `Label: text` paragraphs."""
        conversation_text = ""
        for turn in history:
            label = Speaker.USER if turn.sender == "user" else Speaker.ASSISTANT
            conversation_text += f"{label}: {turn.text}\n\n"
        return conversation_text

    @staticmethod
    async def fetch_knowledge_context(user_message: str, knowledge_search: KnowledgeSearch | None = None) -> str:
        """Best-effort knowledge lookup; any failure yields an empty block."""
        search = knowledge_search or KnowledgeService.search
        try:
            result = await search(user_message)
        except Exception as e:
            log_development(f"Knowledge base search failed (ignored): {e}")
            return ""

        return KNOWLEDGE_BLOCK.format(snippets=result) if result else ""

    @staticmethod
    async def assemble(
        user_message: str,
        topic: str,
        history: Sequence[ChatTurn] = (),
        personalization: Optional[PersonalizationContext] = None,
        knowledge_search: KnowledgeSearch | None = None,
        max_history: int | None = None
    ) -> str:
        """
        Build the full prompt for one turn.

        Args:
            user_message: The new message from the user
            topic: Current coaching focus area
            history: Prior turns, oldest first
            personalization: Optional assessment for the authenticated user
            knowledge_search: Lookup used for augmentation (defaults to KnowledgeService.search)
            max_history: History window size (defaults to Config.MAX_HISTORY_MESSAGES)

        Returns:
            Prompt text ending with the `User: <message>` line
        """
        system_prompt = ContextService.build_system_prompt(topic, personalization)
        knowledge_context = await ContextService.fetch_knowledge_context(user_message, knowledge_search)
        conversation_text = ContextService.format_history(
            ContextService.window_history(history, max_history)
        )

        prompt = f"{system_prompt}{knowledge_context}\n\n{conversation_text}{Speaker.USER}: {user_message}"
        app_logger.info(f"Assembled prompt: {len(prompt)} characters")
        return prompt
