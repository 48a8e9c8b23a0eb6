"""
Chat Routes - conversational recommendations grounded in the catalog
"""
from fastapi import APIRouter, Depends
from typing import Dict, List

from cinematch.schemas.chat import ChatResponse
from cinematch.schemas.validation import ChatMessageSchema
from cinematch.services.chat_service import ChatService
from cinematch.utils.dependencies import get_chat_service

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post("", response_model=ChatResponse)
async def send_message(body: ChatMessageSchema, service: ChatService = Depends(get_chat_service)):
    """
    Ask for recommendations in natural language

    **Example:**
    ```json
    {"user_id": "u-1", "message": "I want something uplifting for tonight"}
    ```
    """
    history = [turn.model_dump() for turn in body.conversation_history] if body.conversation_history else None
    return await service.send_message(body.user_id, body.message, history)


@router.get("/history/{user_id}", response_model=List[Dict])
async def get_history(user_id: str, service: ChatService = Depends(get_chat_service)):
    return await service.get_conversation_history(user_id)


@router.delete("/history/{user_id}")
async def clear_history(user_id: str, service: ChatService = Depends(get_chat_service)):
    deleted = await service.clear_conversation_history(user_id)
    return {"user_id": user_id, "deleted": deleted}
