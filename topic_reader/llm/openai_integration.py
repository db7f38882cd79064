"""OpenAI integration for summary generation."""
import logging

from llama_index.llms.openai import OpenAI

from topic_reader.models.config import OpenAIConfig

logger = logging.getLogger(__name__)

JSON_RESPONSE_FORMAT = {"type": "json_object"}


def setup_openai_llm(config: OpenAIConfig) -> OpenAI:
    """Set up the OpenAI chat model used for summaries.

    Requests are made once: retries are disabled so quota and auth errors
    reach the caller immediately. The model is asked for a JSON object.

    Args:
        config: OpenAI configuration.

    Returns:
        Configured OpenAI LLM instance.
    """
    try:
        llm = OpenAI(
            model=config.model,
            api_key=config.api_key.strip(),
            temperature=config.temperature,
            timeout=config.timeout,
            max_retries=0,
            additional_kwargs={"response_format": JSON_RESPONSE_FORMAT},
        )
        logger.info(f"Successfully configured OpenAI LLM ({config.model})")
        return llm
    except Exception as e:
        logger.error(f"Error setting up OpenAI LLM: {str(e)}")
        raise
