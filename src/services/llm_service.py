"""LLM service for SiteBudget.

Provides LangChain/OpenAI integration for document analysis.
"""

import base64
import json
from typing import Dict, Any, Optional, List
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config.settings import settings
from config.errors import SiteBudgetError, ErrorCode

logger = structlog.get_logger()


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """Parse the JSON object embedded in a model response.

    Takes everything from the first '{' to the last '}', which ignores
    conversational wrappers and markdown fences.

    Raises:
        SiteBudgetError: EMPTY_RESPONSE for empty text, UNPARSABLE_RESPONSE
            when no valid JSON object is found.
    """
    if not text or not text.strip():
        raise SiteBudgetError(
            code=ErrorCode.EMPTY_RESPONSE,
            message="No response generated by the analysis model"
        )

    start_index = text.find("{")
    end_index = text.rfind("}")
    if start_index == -1 or end_index < start_index:
        raise SiteBudgetError(
            code=ErrorCode.UNPARSABLE_RESPONSE,
            message="Valid JSON not found in response",
            details={"raw_content": text[:500]}
        )

    try:
        parsed = json.loads(text[start_index:end_index + 1])
    except json.JSONDecodeError as e:
        raise SiteBudgetError(
            code=ErrorCode.UNPARSABLE_RESPONSE,
            message="Analysis model did not return valid JSON",
            details={"parse_error": str(e), "raw_content": text[:500]}
        )

    if not isinstance(parsed, dict):
        raise SiteBudgetError(
            code=ErrorCode.UNPARSABLE_RESPONSE,
            message="Analysis model returned JSON that is not an object",
            details={"raw_content": text[:500]}
        )
    return parsed


def build_document_block(content: bytes, mime_type: str, file_name: str) -> Dict[str, Any]:
    """Build a multimodal content block for one document.

    Images are sent as data URLs, text documents inline, anything else
    (e.g., PDF) as a base64 file part.
    """
    if mime_type.startswith("text/"):
        return {"type": "text", "text": content.decode("utf-8", errors="replace")}

    encoded = base64.b64encode(content).decode("utf-8")
    data_url = f"data:{mime_type};base64,{encoded}"
    if mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"filename": file_name, "file_data": data_url}}


class LLMService:
    """Service for LLM operations using LangChain.

    Provides a wrapper around ChatOpenAI with token tracking
    and error handling.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.

        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and token usage.

        Raises:
            SiteBudgetError: If LLM call fails.
        """
        try:
            kwargs = {}
            if max_tokens:
                kwargs["max_tokens"] = max_tokens

            response = await self.client.ainvoke(messages, **kwargs)

            # Track token usage if available
            tokens_used = 0
            if hasattr(response, "response_metadata"):
                usage = response.response_metadata.get("token_usage", {})
                tokens_used = usage.get("total_tokens", 0)
                self._total_tokens_used += tokens_used

            content = response.content if isinstance(response.content, str) else ""
            logger.info(
                "llm_generated",
                model=self.model,
                tokens_used=tokens_used,
                content_length=len(content)
            )

            return {
                "content": content,
                "tokens_used": tokens_used
            }

        except Exception as e:
            error_msg = str(e)

            # Detect specific error types
            if "rate_limit" in error_msg.lower():
                raise SiteBudgetError(
                    code=ErrorCode.LLM_RATE_LIMIT,
                    message="OpenAI rate limit exceeded",
                    details={"original_error": error_msg}
                )
            elif "context_length" in error_msg.lower() or "maximum context" in error_msg.lower():
                raise SiteBudgetError(
                    code=ErrorCode.LLM_CONTEXT_TOO_LONG,
                    message="Document too large for model context",
                    details={"original_error": error_msg}
                )
            else:
                raise SiteBudgetError(
                    code=ErrorCode.LLM_ERROR,
                    message=f"LLM generation failed: {error_msg}",
                    details={"original_error": error_msg}
                )

    async def analyze_document(
        self,
        system_prompt: str,
        instructions: str,
        content: bytes,
        mime_type: str,
        file_name: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Ask the model to analyse one document and return its JSON draft.

        Args:
            system_prompt: System prompt for context.
            instructions: Task and output format instructions.
            content: Raw document bytes.
            mime_type: MIME type of the document.
            file_name: Display name of the document.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with parsed JSON content and token usage.

        Raises:
            SiteBudgetError: If the call fails or no JSON object is returned.
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=[
                build_document_block(content, mime_type, file_name),
                {"type": "text", "text": instructions},
            ])
        ]
        result = await self.generate(messages, max_tokens)

        return {
            "content": extract_json_object(result["content"]),
            "tokens_used": result["tokens_used"]
        }
