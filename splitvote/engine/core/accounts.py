from pydantic import BaseModel, Field


class Account(BaseModel):
    address: str
    balance: int = Field(default=0, ge=0)
