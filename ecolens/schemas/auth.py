from pydantic import BaseModel


class Token(BaseModel):
    """Response model for a successful login."""
    access_token: str
    token_type: str = "bearer"
