"""Reader-side client for the BookTech API."""
from .api_client import ApiClient
from .reading_session import ReadingSession

__all__ = ["ApiClient", "ReadingSession"]
