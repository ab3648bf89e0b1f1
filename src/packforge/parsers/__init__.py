"""Source parsers: text extraction, segmentation and scenario template loading."""

from packforge.parsers.segmenter import segment
from packforge.parsers.template_loader import load_scenario_template
from packforge.parsers.text_extractor import extract_text, normalize_text

__all__ = [
    "extract_text",
    "load_scenario_template",
    "normalize_text",
    "segment",
]
