from shelflib.builders.base import BaseBuilder, GenerationResult
from shelflib.builders.epub import EpubBuilder

__all__ = ["BaseBuilder", "EpubBuilder", "GenerationResult"]
