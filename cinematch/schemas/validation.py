"""Input validation schemas with XSS protection"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
import re
import bleach


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def sanitize_html(value: str) -> str:
        """Strip all HTML; queries and chat messages are plain text"""
        if not value:
            return value
        return bleach.clean(value, tags=[], strip=True)

    @staticmethod
    def validate_no_script(value: str) -> str:
        """Block common XSS patterns"""
        if not value:
            return value

        dangerous_patterns = [
            r'<script[^>]*>',
            r'javascript:',
            r'on\w+\s*=',
            r'<iframe',
        ]

        for pattern in dangerous_patterns:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value


class SearchQuerySchema(BaseModel, SafeStringMixin):
    """Validated semantic search query"""
    query: str = Field(..., min_length=1, max_length=500)
    limit: int = Field(10, ge=1, le=50)

    @field_validator('query')
    @classmethod
    def clean_query(cls, v):
        # Not HTML-escaped: the query text is embedded and used in the cache key as is
        return cls.validate_no_script(v).strip()


class ChatTurn(BaseModel):
    role: Literal['user', 'assistant', 'system']
    content: str = Field(..., max_length=4000)


class ChatMessageSchema(BaseModel, SafeStringMixin):
    """Validated chat input"""
    user_id: str = Field(..., min_length=1, max_length=64)
    message: str = Field(..., min_length=1, max_length=2000)
    conversation_history: Optional[List[ChatTurn]] = None

    @field_validator('message')
    @classmethod
    def clean_message(cls, v):
        return cls.sanitize_html(cls.validate_no_script(v))
