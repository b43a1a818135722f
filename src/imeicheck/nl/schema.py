from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional

class OracleDevice(BaseModel):
    """
    Shape we ask the text-generation oracle to answer with for a TAC.
    """
    manufacturer: str = Field(min_length=1, description="Device manufacturer, e.g. Apple")
    model: Optional[str] = Field(default=None, description="Marketing model name, e.g. iPhone 14")
