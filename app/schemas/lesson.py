from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

class SendLessonIn(BaseModel):
    phone: str = Field(min_length=1)
    contentId: int

class SendLessonOut(BaseModel):
    ok: bool = True
    videoUrl: str
    messageId: Optional[str] = None
    taskId: Optional[int] = None

class ScheduledTaskOut(BaseModel):
    id: int
    userPhone: str
    quizId: int
    contentId: Optional[int] = None
    runAt: datetime
    status: str
    attempts: int
    lastError: Optional[str] = None
    sessionId: Optional[int] = None

class RunDueOut(BaseModel):
    ok: bool = True
    processed: List[int]
