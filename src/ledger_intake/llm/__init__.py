"""Language-model client and prompts."""

from ledger_intake.llm.prompts import (
    PROMPT_VERSION,
    DocumentAnalysisPrompt,
    ToonPrompt,
    build_batch_prompt,
)
from ledger_intake.llm.service import LLMConcurrencyLimiter, LLMError, LLMService

__all__ = [
    "LLMService",
    "LLMError",
    "LLMConcurrencyLimiter",
    "ToonPrompt",
    "DocumentAnalysisPrompt",
    "build_batch_prompt",
    "PROMPT_VERSION",
]
