"""Column types that keep storage encodings out of the rest of the app.

Nested lists (timelines, files, subtasks, tags, idea entries) are persisted
as JSON text and booleans as 0/1 integers. Both are converted back on read,
so ORM attributes always hold Python lists and bools.
"""
import json

from sqlalchemy import Integer, Text
from sqlalchemy.types import TypeDecorator


class JSONList(TypeDecorator):
    """A list of JSON-compatible items stored as text."""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return json.dumps(list(value) if value is not None else [])

    def process_result_value(self, value, dialect):
        if not value:
            return []
        return json.loads(value) or []


class BoolFlag(TypeDecorator):
    """Boolean stored as 0 or 1."""
    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return 1 if value else 0

    def process_result_value(self, value, dialect):
        return bool(value)
