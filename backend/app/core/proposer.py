import logging
from abc import ABC, abstractmethod
from typing import Optional

from google import genai
from google.genai import errors as genai_errors

from app.core.errors import ProposerUnavailableError
from app.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ItineraryProposer(ABC):
    """Produces the raw text of a proposed itinerary for a prompt"""

    @abstractmethod
    async def propose(self, prompt: str) -> str:
        ...


class GeminiProposer(ItineraryProposer):
    def __init__(self, settings: Optional[Settings] = None, client: Optional[genai.Client] = None):
        self.settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.settings.GEMINI_API_KEY:
                raise ProposerUnavailableError("Itinerary generation is not configured")
            self._client = genai.Client(api_key=self.settings.GEMINI_API_KEY)
        return self._client

    async def propose(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.settings.PROPOSER_MODEL,
                contents=prompt,
            )
        except genai_errors.APIError as e:
            logger.error(f"Gemini request failed: {e}")
            raise ProposerUnavailableError("Itinerary generation failed, try again later") from e

        if not response or not response.text:
            logger.error("Empty Gemini response")
            raise ProposerUnavailableError("Itinerary generation returned nothing")
        return response.text.strip()
