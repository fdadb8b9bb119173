from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class InboundMessageIn(BaseModel):
    # "from" es palabra reservada en Python
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from", min_length=1)
    text: Optional[str] = None

class InboundOut(BaseModel):
    ok: bool = True
    action: str
    completed: bool = False
