from .loader import load_messages, normalize_lang, t

__all__ = ["t", "load_messages", "normalize_lang"]
