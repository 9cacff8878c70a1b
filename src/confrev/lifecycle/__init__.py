"""Paper lifecycle: the transition engine and the review aggregation rule."""

from .aggregation import aggregate  # noqa: F401
from .engine import PaperLifecycleEngine, parse_decision  # noqa: F401
