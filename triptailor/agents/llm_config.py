"""
LLM provider configuration.

TripTailor talks to Google Gemini through LangChain's
`ChatGoogleGenerativeAI`. The model is built lazily on first use so that
importing the package never needs an API key, and tests can hand in any
object exposing `invoke(messages)` instead.
"""

from typing import Any, Optional

from langchain_google_genai import ChatGoogleGenerativeAI

from ..utils.config import settings as default_settings
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class LLMProvider:
    """
    Owns the Gemini chat model used for writing place recommendations.

    Requests JSON output (`response_mime_type`) since every caller parses
    the reply as a JSON object.
    """

    def __init__(self, settings=None, model: Optional[Any] = None):
        self.settings = settings or default_settings
        self._model = model

    @property
    def available(self) -> bool:
        return self._model is not None or bool(self.settings.gemini_api_key)

    def _initialize_model(self) -> Any:
        if not self.settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set", context={"model": self.settings.gemini_model})

        model = ChatGoogleGenerativeAI(
            model=self.settings.gemini_model,
            google_api_key=self.settings.gemini_api_key,
            temperature=self.settings.gemini_temperature,
            timeout=self.settings.gemini_timeout,
            max_retries=1,
            response_mime_type="application/json",
        )
        logger.info("gemini_model_initialized", model=self.settings.gemini_model)
        return model

    def get_model(self) -> Any:
        """
        Get the chat model, creating it on first call.

        Raises:
            ConfigurationError: If no API key is configured
        """
        if self._model is None:
            self._model = self._initialize_model()
        return self._model

    def invoke(self, messages, **kwargs) -> Any:
        return self.get_model().invoke(messages, **kwargs)


# Global instance
llm_provider = LLMProvider()
