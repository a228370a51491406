from .extractor import SwapQuoteExtractor

__all__ = ["SwapQuoteExtractor"]
