from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

class VideoAssetOut(BaseModel):
    youtubeUrl: Optional[str] = None
    youtubeVideoId: Optional[str] = None
    youtubeStatus: str
    muxUrl: Optional[str] = None
    muxStatus: str

class CheckDataOut(BaseModel):
    contentId: int
    title: str
    isActive: bool
    videoAsset: Optional[VideoAssetOut] = None
    videoUrl: Optional[str] = None
    quizId: Optional[int] = None
    questionCount: int = 0
    readyToSend: bool

class VideoUrlIn(BaseModel):
    youtubeUrl: Optional[str] = None
    youtubeVideoId: Optional[str] = None

    @model_validator(mode="after")
    def one_required(self):
        if not (self.youtubeUrl or self.youtubeVideoId):
            raise ValueError("youtubeUrl o youtubeVideoId requerido")
        return self

class VideoUrlOut(BaseModel):
    ok: bool = True
    youtubeUrl: str
    youtubeVideoId: Optional[str] = None

class GenerateQuizIn(BaseModel):
    numberOfQuestions: int = Field(default=5, ge=1, le=10)

class GenerateQuizOut(BaseModel):
    ok: bool = True
    quizId: int
    questionCount: int
    questions: List[str]
