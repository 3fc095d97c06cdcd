"""Record types used by the typed-format tests (importable by reference)."""
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


class Trade(BaseModel):
    id: int
    symbol: str
    price: float


class AliasedTrade(BaseModel):
    id: int
    ticker: str = Field(alias="symbol")


@dataclass
class Tick:
    symbol: str
    price: str
    venue: Optional[str] = None
