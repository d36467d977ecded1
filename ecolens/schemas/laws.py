from typing import List
from pydantic import BaseModel, Field


class LocalLawsRequest(BaseModel):
    location: str = Field(..., min_length=1, max_length=255)


class LocalRule(BaseModel):
    title: str
    desc: str


class LocalRules(BaseModel):
    location: str
    traffic: List[LocalRule] = []
    eco: List[LocalRule] = []
    parse_error: bool = False
