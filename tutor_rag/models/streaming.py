"""
Streaming answer fragments.

Dependencies: pydantic
System role: Streaming protocol schema
"""

from pydantic import BaseModel


class StreamChunk(BaseModel):
    """
    Incremental answer text.

    Attributes:
        content: Text fragment (empty on the terminal chunk)
        is_complete: True only on the final sentinel chunk
    """

    content: str = ""
    is_complete: bool = False

    @classmethod
    def sentinel(cls) -> "StreamChunk":
        return cls(content="", is_complete=True)
