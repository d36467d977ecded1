from pydantic import BaseModel, EmailStr, Field
from uuid import UUID


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    """Schema for returning user data to the frontend after authentication."""
    id: UUID
    name: str
    email: EmailStr

    # Configuration to handle SQLAlchemy objects
    model_config = {
        "from_attributes": True
    }
