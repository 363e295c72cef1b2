"""Document analysis for SiteBudget.

Boundary to the external analysis collaborator: sends one document at a
time to the LLM and hands its raw draft to the draft normalizer. Batches
run strictly sequentially and fail fast.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import structlog

from config.settings import settings
from config.errors import (
    AnalysisError,
    BatchAnalysisError,
    ErrorCode,
    SiteBudgetError,
    ValidationError,
)
from models.estimate import DocumentEstimate, ProjectEstimate
from models.upload import DocumentUpload
from services.draft_normalizer import normalize_draft
from services.llm_service import LLMService
from utils.batch_logger import log_batch_complete, log_batch_failed, log_batch_start, log_document_analyzed

logger = structlog.get_logger()


SYSTEM_PROMPT = """You are an expert construction estimator and quantity surveyor \
familiar with the {market_region} market. You read architectural drawings, site plans \
and construction documents and produce materials estimates priced in {currency}."""

ANALYSIS_INSTRUCTIONS = """File name: "{file_name}"

Tasks:
1. Identify the scope: a full floor plan, a site plan, or a specific detail.
2. For site plans or drawings with walls/fences, calculate the blocks needed for the \
perimeter and the cement, sand and stones required for those walls.
3. Extract a detailed list of materials with quantities and units.
4. Price every material at current average market prices in {currency}.
5. For each category, estimate whether prices are trending UP, DOWN or STABLE and give \
a "priceHistory" of {history_points} numbers (relative price index, oldest first).
6. For bulk items (concrete, sand, stones) give an alternative unit where useful as \
"secondaryQuantity"/"secondaryUnit" (e.g. m3 -> cubic yards or tonnes); otherwise null.

Respond with JSON only, in this shape:
{{
  "projectName": "Descriptive name derived from the document",
  "currency": "{currency}",
  "marketRegion": "{market_region}",
  "marketTrends": [
    {{"category": "Cement", "trend": "UP", "percentageChange": 5, "priceHistory": [95, 96, 98, 100, 102, 105]}}
  ],
  "breakdown": [
    {{
      "category": "Concrete",
      "material": "River Sand",
      "quantity": 15,
      "unit": "m3",
      "unitPrice": 150.0,
      "totalPrice": 2250.0,
      "notes": "For block laying and plastering",
      "secondaryQuantity": 19.6,
      "secondaryUnit": "cubic yards"
    }}
  ]
}}"""


class DocumentAnalyzer:
    """Produces the raw draft estimate for one document via the LLM."""

    def __init__(self, llm_service: Optional[LLMService] = None):
        """Initialize DocumentAnalyzer.

        Args:
            llm_service: Optional LLM service instance.
        """
        self.llm = llm_service or LLMService()

    @property
    def total_tokens_used(self) -> int:
        return self.llm.total_tokens_used

    def build_prompts(self, upload: DocumentUpload) -> Dict[str, str]:
        """Build system prompt and instructions for one document."""
        values = {
            "file_name": upload.file_name,
            "currency": settings.default_currency,
            "market_region": settings.default_market_region,
            "history_points": settings.price_history_points,
        }
        return {
            "system_prompt": SYSTEM_PROMPT.format(**values),
            "instructions": ANALYSIS_INSTRUCTIONS.format(**values),
        }

    async def analyze(self, upload: DocumentUpload) -> Dict[str, Any]:
        """Analyse one document and return its unvalidated draft.

        Raises:
            AnalysisError: On any collaborator failure (service error,
                empty or unparsable response).
        """
        prompts = self.build_prompts(upload)
        try:
            result = await self.llm.analyze_document(
                system_prompt=prompts["system_prompt"],
                instructions=prompts["instructions"],
                content=upload.content,
                mime_type=upload.mime_type,
                file_name=upload.file_name,
            )
        except SiteBudgetError as e:
            raise AnalysisError(
                code=e.code,
                message=f"Failed to analyze {upload.file_name}. Please try again.",
                document_id=upload.document_id,
                file_name=upload.file_name,
                details=e.details
            ) from e

        return result["content"]


async def analyze_batch(
    uploads: Sequence[DocumentUpload],
    analyzer: Optional[DocumentAnalyzer] = None,
) -> ProjectEstimate:
    """Analyse every document in order and build the project estimate.

    Documents are analysed strictly one at a time. A failure on any document
    aborts the batch and discards every draft gathered so far; no partial
    project estimate is ever returned.

    Args:
        uploads: Documents to analyse, in display order.
        analyzer: Optional analyzer instance.

    Returns:
        ProjectEstimate with folded totals.

    Raises:
        ValidationError: If document ids are not unique.
        BatchAnalysisError: If the batch is empty or any document fails.
    """
    if not uploads:
        raise BatchAnalysisError(
            message="No documents to analyze",
            code=ErrorCode.BATCH_EMPTY
        )

    document_ids = [upload.document_id for upload in uploads]
    if len(set(document_ids)) != len(document_ids):
        raise ValidationError(
            message="Document identifiers must be unique within a batch",
            field="document_id"
        )

    analyzer = analyzer or DocumentAnalyzer()
    start_time = time.time()
    log_batch_start([upload.file_name for upload in uploads])

    estimates: List[DocumentEstimate] = []
    for position, upload in enumerate(uploads, start=1):
        logger.info(
            "document_analysis_starting",
            document_id=upload.document_id,
            file_name=upload.file_name,
            position=position,
            total=len(uploads)
        )
        try:
            draft = await analyzer.analyze(upload)
            estimate = normalize_draft(draft, upload.document_id, upload.file_name)
        except Exception as e:
            message = e.message if isinstance(e, SiteBudgetError) else str(e)
            cause = e.code if isinstance(e, SiteBudgetError) else ErrorCode.ANALYSIS_FAILED
            discarded = [estimate.file_name for estimate in estimates]
            log_batch_failed(upload.file_name, message, discarded)
            estimates.clear()
            raise BatchAnalysisError(
                message=message or f"Failed to analyze {upload.file_name}",
                failed_document_id=upload.document_id,
                completed_count=len(discarded),
                details={"cause": cause}
            ) from e

        estimates.append(estimate)
        log_document_analyzed(upload.file_name, position, len(uploads), len(estimate.breakdown))

    project = ProjectEstimate.from_documents(estimates, settings.default_currency)

    log_batch_complete(
        document_count=len(project.estimates),
        grand_total=project.grand_total,
        currency=project.currency,
        duration_ms=int((time.time() - start_time) * 1000),
        total_tokens=getattr(analyzer, "total_tokens_used", 0)
    )
    return project
