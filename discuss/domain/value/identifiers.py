"""Strongly typed identifiers for discussion entities.

Servers hand out opaque string ids (e.g. Mongo ObjectIds) and the client
mints its own provisional ids, so every identifier wraps ``str``.
"""

from typing import NewType

PostId = NewType("PostId", str)
CommentId = NewType("CommentId", str)
UserId = NewType("UserId", str)
