from pydantic import BaseModel
from typing import List, Optional


class ChatResponse(BaseModel):
    user_message: str
    ai_response: str
    context_movies: List[int]
    mood: Optional[str] = None
    timestamp: str
