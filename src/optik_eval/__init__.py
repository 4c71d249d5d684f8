"""optik-eval: grade optical-scanner exam output against a roster and answer key."""

from .parse_core import parse_optical_text, dedupe
from .evaluate_core import evaluate
from .similarity_core import analyze

__all__ = ["parse_optical_text", "dedupe", "evaluate", "analyze"]
__version__ = "0.1.0"
