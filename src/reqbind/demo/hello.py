from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class HelloData(BaseModel):
    username: Optional[str] = None
    age: int = 0
