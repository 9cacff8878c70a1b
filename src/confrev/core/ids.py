"""ID generation and document naming utilities."""

import random
import re
import time
import uuid
from pathlib import Path


def new_id() -> str:
    """Generate a unique entity ID."""
    return uuid.uuid4().hex


def stored_document_name(original_name: str) -> str:
    """Build a collision-resistant file name for an uploaded document.

    The original base name is kept as a suffix so that the stored file
    stays recognisable, e.g. ``1714650000123-482913-paper.pdf``.
    """
    base = Path(original_name).name
    base = re.sub(r"[^\w.\-]", "_", base) or "document"
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{unique_suffix}-{base}"
