"""Vision extraction client with OpenAI integration.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic stub when no key is present for local runs and tests.
"""

import json
import logging
from typing import Any, Protocol

import pydantic
from openai import AsyncOpenAI

from backend.app.config import Settings
from backend.app.exceptions import ExtractionFailure
from backend.app.models.common import BoundingBox, ChunkType
from backend.app.models.extraction import ExtractedChunk, ExtractionResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert invoice parser. Analyze the invoice image and extract
structured data organized into logical chunks. Each chunk should represent a distinct section
of the invoice (header, invoice details, bill to, line items, totals, payment terms).

For each chunk, provide:
1. type: One of 'header', 'invoice_details', 'bill_to', 'line_item', 'totals', 'payment_terms'
2. title: A descriptive title for the chunk
3. data: Extracted field data as key-value pairs
4. boundingBox: Approximate coordinates {x, y, width, height} as percentages (0-100)
5. confidence: Confidence score (0-1)

Return JSON in this exact format:
{
  "chunks": [
    {
      "type": "header",
      "title": "Header Information",
      "data": {"vendor": "...", "address": "...", "email": "..."},
      "boundingBox": {"x": 0, "y": 0, "width": 100, "height": 15},
      "confidence": 0.95
    }
  ],
  "extractedText": "Full text content of the invoice"
}"""

USER_PROMPT = (
    "Parse this invoice image and extract all data chunks with their bounding boxes. "
    "Be precise with the coordinates and confident in your extractions."
)


class ExtractionClient(Protocol):
    """Protocol for extraction collaborator implementations."""

    async def extract(self, image_b64: str) -> ExtractionResult:
        """Turn one base64 JPEG page into an ordered chunk list.

        Args:
            image_b64: Base64-encoded JPEG bytes

        Returns:
            ExtractionResult with chunks in reading order

        Raises:
            ExtractionFailure: On service errors or a malformed payload
        """
        ...


def _warn_out_of_range(index: int, chunk: ExtractedChunk) -> None:
    """Log values outside their intended ranges (passed through unchanged)."""
    if not 0.0 <= chunk.confidence <= 1.0:
        logger.warning(f"Chunk {index} confidence {chunk.confidence} outside [0, 1]")

    box = chunk.bounding_box
    for name in ("x", "y", "width", "height"):
        value = getattr(box, name)
        if not 0.0 <= value <= 100.0:
            logger.warning(f"Chunk {index} boundingBox.{name}={value} outside [0, 100]")


def parse_extraction_payload(payload: Any) -> ExtractionResult:
    """Validate a decoded extraction response.

    Args:
        payload: Decoded JSON object from the extraction service

    Returns:
        ExtractionResult

    Raises:
        ExtractionFailure: If the payload lacks a well-formed chunk list
    """
    if not isinstance(payload, dict):
        raise ExtractionFailure("Invalid response format: expected a JSON object")

    chunks = payload.get("chunks")
    if not isinstance(chunks, list):
        raise ExtractionFailure("Invalid response format: missing or non-list 'chunks'")

    try:
        result = ExtractionResult.model_validate(
            {"chunks": chunks, "extractedText": payload.get("extractedText") or ""}
        )
    except pydantic.ValidationError as e:
        raise ExtractionFailure(f"Invalid chunk entry in extraction response: {e}") from e

    for index, chunk in enumerate(result.chunks):
        _warn_out_of_range(index, chunk)

    return result


class DeterministicStubExtractor:
    """Deterministic stub extractor for testing (no API key required)."""

    async def extract(self, image_b64: str) -> ExtractionResult:
        """Return a fixed four-section invoice."""
        return ExtractionResult(
            chunks=[
                ExtractedChunk(
                    type=ChunkType.header,
                    title="Header Information",
                    data={"vendor": "Acme Supplies", "email": "billing@acme.example"},
                    bounding_box=BoundingBox(x=0, y=0, width=100, height=15),
                    confidence=0.95,
                ),
                ExtractedChunk(
                    type=ChunkType.invoice_details,
                    title="Invoice Details",
                    data={"invoice_number": "INV-0001", "date": "2026-01-15"},
                    bounding_box=BoundingBox(x=60, y=15, width=40, height=10),
                    confidence=0.9,
                ),
                ExtractedChunk(
                    type=ChunkType.line_item,
                    title="Line Item 1",
                    data={"description": "Widgets", "quantity": 10, "amount": "100.00"},
                    bounding_box=BoundingBox(x=0, y=40, width=100, height=8),
                    confidence=0.85,
                ),
                ExtractedChunk(
                    type=ChunkType.totals,
                    title="Totals",
                    data={"subtotal": "100.00", "tax": "8.00", "total": "108.00"},
                    bounding_box=BoundingBox(x=60, y=80, width=40, height=10),
                    confidence=0.92,
                ),
            ],
            extracted_text="Acme Supplies\nINV-0001\nWidgets 10 100.00\nTotal 108.00",
        )


class OpenAIVisionExtractor:
    """OpenAI-backed vision extractor."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        timeout_sec: float = 60.0,
        max_tokens: int = 4096,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from settings)
            model: Vision-capable model name
            timeout_sec: Per-request timeout enforced by the client
            max_tokens: Completion token cap
        """
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout_sec, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens

    async def extract(self, image_b64: str) -> ExtractionResult:
        """Extract chunks using the OpenAI vision API."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                            },
                        ],
                    },
                ],
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
            )
            content = response.choices[0].message.content or "{}"
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ExtractionFailure(f"Extraction response is not valid JSON: {e}") from e
        except Exception as e:
            logger.error(f"OpenAI vision API call failed: {e}")
            raise ExtractionFailure(f"Failed to parse invoice: {e}") from e

        return parse_extraction_payload(payload)


def get_extraction_client(settings: Settings) -> ExtractionClient:
    """Factory function to get appropriate extraction client based on config.

    Returns:
        OpenAIVisionExtractor if API key is configured, DeterministicStubExtractor otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI vision client for extraction")
        return OpenAIVisionExtractor(
            api_key=api_key.get_secret_value(),
            model=settings.extraction_model,
            timeout_sec=settings.extraction_timeout_sec,
            max_tokens=settings.extraction_max_tokens,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub extractor")
    return DeterministicStubExtractor()
