"""Signal extraction from segmented text."""

from packforge.extractors.signal_extractor import extract_all_signals, extract_signals

__all__ = ["extract_all_signals", "extract_signals"]
