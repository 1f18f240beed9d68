"""
Knowledge base search using an OpenAI-compatible Responses API with the file_search tool.
"""
import re
from typing import Optional

import httpx

from config import Config
from utils.constants import KNOWLEDGE_SEARCH_PROMPT, Patterns
from utils.http_client import HTTPClientManager
from utils.logger import app_logger


class KnowledgeService:
    """Looks up short, source-attributed snippets relevant to a user message."""

    @staticmethod
    def build_payload(query: str) -> dict:
        """Build the Responses API request body for one lookup."""
        return {
            "model": Config.KNOWLEDGE_MODEL,
            "input": KNOWLEDGE_SEARCH_PROMPT.format(
                max_snippets=Config.KNOWLEDGE_MAX_SNIPPETS,
                query=query
            ),
            "tools": [{
                "type": "file_search",
                "vector_store_ids": [Config.KNOWLEDGE_VECTOR_STORE_ID],
            }],
        }

    @staticmethod
    def extract_output_text(data: dict) -> str:
        """
        Pull the assistant text out of a Responses API payload.

        Prefers the flattened `output_text` field when the server provides it,
        otherwise joins every output_text part of every message item.
        """
        output_text = data.get("output_text")
        if isinstance(output_text, str):
            return output_text

        parts = []
        for item in data.get("output") or []:
            if not isinstance(item, dict) or item.get("type") != "message":
                continue
            for content in item.get("content") or []:
                if isinstance(content, dict) and content.get("type") == "output_text":
                    parts.append(content.get("text") or "")

        return "".join(parts)

    @staticmethod
    def normalize_result(text: str) -> Optional[str]:
        """Map blank output and the no-results sentinel to None."""
        cleaned = (text or "").strip()
        if not cleaned or re.search(Patterns.NO_RESULTS, cleaned, re.IGNORECASE):
            return None
        return cleaned

    @staticmethod
    async def search(query: str) -> Optional[str]:
        """
        Search the knowledge base for snippets relevant to `query`.

        Args:
            query: The user's message

        Returns:
            Bullet-point snippets with source filenames, or None when the index is
            not configured, nothing matched, or the lookup failed. Never raises.
        """
        if not Config.knowledge_search_enabled():
            return None

        try:
            client = HTTPClientManager.get_knowledge_client()
            response = await client.post(
                Config.KNOWLEDGE_API_URL,
                headers={"Authorization": f"Bearer {Config.KNOWLEDGE_API_KEY}"},
                json=KnowledgeService.build_payload(query)
            )

            if response.status_code != 200:
                app_logger.warning(f"Knowledge search returned status {response.status_code}")
                return None

            result = KnowledgeService.normalize_result(
                KnowledgeService.extract_output_text(response.json())
            )
            if result:
                app_logger.info(f"Knowledge search found {len(result)} characters of context")
            else:
                app_logger.debug("Knowledge search: no relevant results")
            return result

        except httpx.TimeoutException as e:
            app_logger.error(f"Knowledge search timed out: {str(e)}")
            return None
        except httpx.RequestError as e:
            app_logger.error(f"Knowledge search request failed: {str(e)}")
            return None
        except Exception as e:
            app_logger.error(f"Unexpected knowledge search error: {str(e)}")
            return None
