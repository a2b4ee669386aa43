"""Structured extraction of project parameters from a free-text question.

The language model is asked for a JSON object. Its output is never trusted:
anything that does not have the expected shape is replaced by fallback
details, so extraction itself never fails a request.
"""

import math
import re
from typing import Any, Optional

from app.core.config import settings
from app.core.exceptions import APIClientError
from app.core.gateways import GenerationGateway
from app.schemas.estimate import ExtractedProjectDetails
from app.utils.json_parser import parse_json_safely
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

EXTRACTION_PROMPT = """
Analyze this construction estimation query and extract key details:
Query: "{query}"

Extract and return in JSON format:
{{
  "projectType": "type of work (epoxy flooring, concrete polishing, waterproofing, etc.)",
  "area": "square footage if mentioned",
  "location": "location/zip code if mentioned",
  "specificRequirements": ["list of specific requirements"]
}}

Only return the JSON, no other text.
"""

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d[\d,]*(?:\.\d*)?|\.\d+))")


def coerce_area(value: Any, default: float) -> float:
    """Turn an extracted area value into a positive float.

    Numbers are used as-is, strings contribute their leading number
    (``"1,200 sq ft"`` -> 1200.0). Anything else, and any non-positive or
    non-finite result, yields ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return default
        try:
            number = float(match.group(1).replace(",", ""))
        except ValueError:
            return default
    else:
        return default

    if not math.isfinite(number) or number <= 0:
        return default
    return number


def _is_optional_str(value: Any) -> bool:
    return value is None or isinstance(value, str)


def _is_optional_str_list(value: Any) -> bool:
    return value is None or (
        isinstance(value, list) and all(isinstance(v, str) for v in value)
    )


class ProjectDetailsExtractor:
    """Extracts project type, area, location and requirements with the LLM."""

    def __init__(
        self,
        gateway: GenerationGateway,
        default_project_type: Optional[str] = None,
        default_area: Optional[float] = None,
    ):
        self.gateway = gateway
        self.default_project_type = default_project_type or settings.estimation.default_project_type
        self.default_area = default_area or settings.estimation.default_area

    async def extract(
        self,
        user_query: str,
        project_type_hint: Optional[str] = None,
    ) -> ExtractedProjectDetails:
        """Extract structured details from user_query.

        Falls back to ``project_type_hint`` (or the default project type) and
        the default area when the model is unavailable or its output is
        unusable. Never raises.
        """
        prompt = EXTRACTION_PROMPT.format(query=user_query)
        try:
            raw = await self.gateway.generate(prompt)
        except APIClientError as e:
            LOGGER.warning(f"Extraction model unavailable, using fallback details: {e}")
            return self._fallback(project_type_hint)

        LOGGER.debug(f"Extraction response: {raw[:500]}")
        details = self._parse(raw)
        if details is None:
            LOGGER.warning(
                "Failed to parse extraction response, using fallback details",
                extra={"response_preview": raw[:200]},
            )
            return self._fallback(project_type_hint)

        LOGGER.info(
            "Extracted project details",
            extra={
                "project_type": details.project_type,
                "area": details.area,
                "location": details.location,
            },
        )
        return details

    def _parse(self, raw: str) -> Optional[ExtractedProjectDetails]:
        data = parse_json_safely(raw)
        if not isinstance(data, dict):
            return None

        project_type = data.get("projectType")
        location = data.get("location")
        requirements = data.get("specificRequirements")
        if not (
            _is_optional_str(project_type)
            and _is_optional_str(location)
            and _is_optional_str_list(requirements)
        ):
            return None

        return ExtractedProjectDetails(
            project_type=project_type,
            area=coerce_area(data.get("area"), self.default_area),
            location=location,
            specific_requirements=requirements or [],
        )

    def _fallback(self, project_type_hint: Optional[str]) -> ExtractedProjectDetails:
        return ExtractedProjectDetails.fallback(
            project_type_hint=project_type_hint,
            default_project_type=self.default_project_type,
            default_area=self.default_area,
        )
