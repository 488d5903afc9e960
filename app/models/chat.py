from pydantic import BaseModel, Field
from typing import Dict, List, Optional

class ChatMessage(BaseModel):
    role: str  # 'user' | 'assistant' | 'system' | anything the caller uses
    content: str

class SingleMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)

class ConversationRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)
    context: Optional[str] = None

class ChatResponse(BaseModel):
    reply: str

class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    creator: str
    model: str
    endpoints: Dict[str, str]

class StatusResponse(BaseModel):
    status: str
    timestamp: str
    uptime: float
    memoryUsage: Dict[str, int]
    model: str

class ProbeResponse(BaseModel):
    status: str
    test_response: str
    model: str
    timestamp: str
