from .provider import ChatModelProvider, extract_text

__all__ = ["ChatModelProvider", "extract_text"]
