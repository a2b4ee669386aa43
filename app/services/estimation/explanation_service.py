from typing import List, Sequence

from app.core.exceptions import ValidationError
from app.core.gateways import GenerationGateway
from app.schemas.catalog import ProjectTypeRecord, RegionRecord
from app.schemas.estimate import CostBreakdown, RetrievedDocument
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

BASE_CONFIDENCE = 0.7
CONFIDENCE_PER_DOCUMENT = 0.05
MAX_CONFIDENCE = 0.95

EXPLANATION_PROMPT = """
Based on the following cost estimation for {project_type} in {region}:

Total Cost: ${total_cost}
Area: {area} sq ft

Cost Breakdown:
{breakdown}

Relevant Documentation:
{context}

Provide a clear, professional explanation of this estimate including:
1. Why this cost is reasonable for the scope
2. Key factors affecting the price
3. Any important considerations or recommendations

Keep it concise but informative (2-3 paragraphs).
"""


def confidence_score(document_count: int) -> float:
    """Confidence grows 0.05 per supporting document from 0.7, capped at 0.95."""
    if document_count < 0:
        raise ValidationError(f"Document count must not be negative, got {document_count}")
    return round(min(MAX_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_DOCUMENT * document_count), 2)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_explanation_prompt(
    breakdown: CostBreakdown,
    region: RegionRecord,
    project_type: ProjectTypeRecord,
    area: float,
    documents: Sequence[RetrievedDocument],
) -> str:
    lines = "\n".join(
        f"- {line.item}: {_format_number(line.quantity)} {line.unit} x "
        f"${line.unit_cost:.2f} = ${line.total_cost:.2f}"
        for line in breakdown.lines
    )
    context = "\n\n".join(doc.content for doc in documents)
    return EXPLANATION_PROMPT.format(
        project_type=project_type.name,
        region=region.name,
        total_cost=f"{breakdown.total_cost:,.2f}",
        area=_format_number(area),
        breakdown=lines,
        context=context,
    )


class ExplanationSynthesizer:
    """Asks the language model to narrate a finished estimate."""

    def __init__(self, gateway: GenerationGateway):
        self.gateway = gateway

    async def explain(
        self,
        breakdown: CostBreakdown,
        region: RegionRecord,
        project_type: ProjectTypeRecord,
        area: float,
        retrieved_docs: List[RetrievedDocument],
    ) -> str:
        """Generate the explanation text. Gateway errors propagate."""
        prompt = build_explanation_prompt(breakdown, region, project_type, area, retrieved_docs)
        explanation = await self.gateway.generate(prompt)
        LOGGER.info(
            f"Generated explanation ({len(explanation)} chars)",
            extra={"context_documents": len(retrieved_docs)},
        )
        return explanation
