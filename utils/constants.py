"""
Constants and prompt templates for the Leadership Coach API.
"""

# Preamble for every coaching turn
COACH_SYSTEM_PROMPT = """You are a senior leadership coach specialising in the Alteva Growth methodology.
Current focus area: {topic}

{personalization}"""

# Block appended to the preamble when the user has uploaded a 360 assessment
PERSONALIZATION_BLOCK = """
## USER PERSONALISATION CONTEXT

**Leadership Profile Summary:**
{summary}

**PERSONALISATION INSTRUCTIONS:**
Use this profile to tailor questions, reference style and strengths, and target development areas. Keep it practical and aligned to Alteva methodology.
"""

KNOWLEDGE_BLOCK = "\n\nRelevant knowledge base information:\n{snippets}"

# Instructions sent alongside the user query to the knowledge base search tool
KNOWLEDGE_SEARCH_PROMPT = """Use the file_search tool to answer the user's query strictly from the knowledge base.
Return up to {max_snippets} short bullet points with direct quotes or tight paraphrases and include the source filename.
Format example:
- "quoted snippet..." - filename.ext
If nothing relevant is found, say "No relevant results."

User query: {query}"""

# User-facing messages
FALLBACK_MESSAGE = "Sorry, I'm having a hiccup processing that. Try again in a moment."
TIMEOUT_MESSAGE = "Sorry, that took too long to answer. Please try again."


class Speaker:
    """Prompt labels for conversation turns."""
    USER, ASSISTANT = "User", "Assistant"


class SSE:
    """Server-sent event framing."""
    DATA_PREFIX = "data: "
    DONE = "[DONE]"
    FRAME_END = "\n\n"


class Patterns:
    """Regular expression patterns used during prompt assembly."""
    BOLD_HEADING = r'\*\*(.*?)\*\*'
    NO_RESULTS = r'no relevant results'

    ASSESSMENT_SECTION_KEYWORDS = [
        "executive overview", "leadership analysis", "development focus",
        "strengths", "challenges", "growth",
    ]
