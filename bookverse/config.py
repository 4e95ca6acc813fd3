"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Open Library
    OPENLIBRARY_BASE_URL = os.getenv("OPENLIBRARY_BASE_URL", "https://openlibrary.org")
    COVERS_BASE_URL = os.getenv("COVERS_BASE_URL", "https://covers.openlibrary.org/b/id")

    # Gemini (the key stays out of the source; a proxy may hold it instead)
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    GEMINI_API_BASE = os.getenv(
        "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta/models"
    )
    GEMINI_PROXY_URL = os.getenv("GEMINI_PROXY_URL")

    @property
    def GEMINI_API_URL(self):
        """Build the generateContent endpoint, preferring the proxy."""
        if self.GEMINI_PROXY_URL:
            return self.GEMINI_PROXY_URL
        return f"{self.GEMINI_API_BASE}/{self.GEMINI_MODEL}:generateContent"

    # Favorites storage
    FAVORITES_BACKEND = os.getenv("FAVORITES_BACKEND", "file")
    FAVORITES_PATH = os.getenv(
        "FAVORITES_PATH", os.path.join(os.path.expanduser("~"), ".bookverse", "storage.json")
    )

    # Database (only used with FAVORITES_BACKEND=postgres)
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "bookverse")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")

    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    PAGE_SIZE = int(os.getenv("PAGE_SIZE", "12"))
    DEFAULT_QUERY = os.getenv("DEFAULT_QUERY", "harry potter")
