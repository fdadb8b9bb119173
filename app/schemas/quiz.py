from typing import List, Optional
from pydantic import BaseModel, Field

class StartQuizIn(BaseModel):
    phone: str = Field(min_length=1)

class StartQuizOut(BaseModel):
    ok: bool = True
    sessionId: int

class QuestionOut(BaseModel):
    id: int
    order: int
    question: str
    options: List[str]

class QuizOut(BaseModel):
    id: int
    contentId: int
    title: str
    description: Optional[str] = None
    passingScore: int
    rewardCoins: int
    answerEncoding: str
    questions: List[QuestionOut]
