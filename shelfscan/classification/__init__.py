"""
Vision Classification Module

Wraps the external vision service for the overview, region
identification and correction passes.
"""

from shelfscan.classification.client import (
    BaseVisionClient,
    OpenAIVisionClient,
    VisionClassifier,
    create_vision_client,
)
from shelfscan.classification.parsing import (
    strip_code_fence,
    parse_json_payload,
    parse_overview,
    parse_detections,
    parse_books,
)
from shelfscan.classification.prompts import PromptTemplates

__all__ = [
    # Client
    "BaseVisionClient",
    "OpenAIVisionClient",
    "VisionClassifier",
    "create_vision_client",
    # Parsing
    "strip_code_fence",
    "parse_json_payload",
    "parse_overview",
    "parse_detections",
    "parse_books",
    # Prompts
    "PromptTemplates",
]
