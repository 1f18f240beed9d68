"""
Configuration module for the Leadership Coach API.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration class."""

    # Application Settings
    APP_TITLE: str = "Leadership Coach API"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Upstream completion provider
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://localhost:11434")
    COACH_MODEL: str = os.getenv("COACH_MODEL", "llama3.1:8b")

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"

    # Knowledge base (OpenAI-compatible Responses API with file_search)
    KNOWLEDGE_API_URL: str = os.getenv("KNOWLEDGE_API_URL", "https://api.openai.com/v1/responses")
    KNOWLEDGE_API_KEY: str = os.getenv("KNOWLEDGE_API_KEY", "")
    KNOWLEDGE_VECTOR_STORE_ID: str = os.getenv("KNOWLEDGE_VECTOR_STORE_ID", "")
    KNOWLEDGE_MODEL: str = os.getenv("KNOWLEDGE_MODEL", "gpt-4o-mini")
    KNOWLEDGE_MAX_SNIPPETS: int = 4

    # Timeouts (in seconds)
    KNOWLEDGE_SEARCH_TIMEOUT: float = float(os.getenv("KNOWLEDGE_SEARCH_TIMEOUT", "15.0"))
    STREAM_TURN_TIMEOUT: float = float(os.getenv("STREAM_TURN_TIMEOUT", "120.0"))

    # Prompt limits
    MAX_HISTORY_MESSAGES: int = int(os.getenv("MAX_HISTORY_MESSAGES", "30"))
    PERSONALIZATION_MAX_CHARS: int = 1000
    PERSONALIZATION_SECTION_CHARS: int = 200

    # Storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/coach.db")

    @classmethod
    def is_development(cls) -> bool:
        """Development mode enables extra diagnostics in logs."""
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def knowledge_search_enabled(cls) -> bool:
        """Knowledge lookups need both a vector store and an API key."""
        return bool(cls.KNOWLEDGE_VECTOR_STORE_ID and cls.KNOWLEDGE_API_KEY)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and print warnings for missing settings."""
        if not cls.JWT_SECRET:
            print("   WARNING: JWT_SECRET not found in .env file")
            print("   Bearer tokens cannot be verified; chat responses will not be personalized.")

        if not cls.KNOWLEDGE_VECTOR_STORE_ID:
            print("   WARNING: KNOWLEDGE_VECTOR_STORE_ID not found in .env file")
            print("   Knowledge base search is disabled.")


Config.validate()
