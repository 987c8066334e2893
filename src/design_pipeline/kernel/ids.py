"""
ID generation

Every row and event gets a random UUID4 string. Ordering never relies on ids:
events are ordered by created_at and an insertion sequence.
"""

import uuid


def generate_id() -> str:
    """Generate a new random identifier (e.g. "3f0c9a52-5d0e-4c3b-9b8e-0d7f4e1a2b6c")"""
    return str(uuid.uuid4())
