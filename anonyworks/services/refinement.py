"""
Professional Mode: best-effort rewrite of anonymous feedback with an LLM.

Never raises. Any failure, including a timeout or a missing API key, yields the
original text unchanged.
"""
import logging
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser
from langchain_openai import ChatOpenAI

from anonyworks.core.config import settings

logger = logging.getLogger(__name__)

REFINED_NOTE = "*This message has been refined by AI for professional communication.*"


def get_llm(openai_api_key: str):
    """Get LangChain ChatOpenAI instance."""
    return ChatOpenAI(
        model=settings.refinement_model,
        temperature=0,
        openai_api_key=openai_api_key,
        timeout=settings.refinement_timeout_seconds,
        max_retries=0,
    )


REFINE_PROMPT = ChatPromptTemplate.from_template(
    """Please refine this feedback message to be professional, constructive, and appropriate for workplace communication. Keep the core message and intent, but make it polite and professional. If it's already professional, return it exactly as is:

"{message}\""""
)


def refine_message(message: str) -> str:
    if not settings.openai_api_key:
        return message

    try:
        chain = REFINE_PROMPT | get_llm(settings.openai_api_key) | StrOutputParser()
        refined = chain.invoke({"message": message}).strip()
    except Exception as e:
        logger.warning("Refinement failed, keeping original text: %s", e)
        return message

    if not refined:
        return message
    if refined.lower() != message.lower():
        return f"{refined}\n\n{REFINED_NOTE}"
    return refined
