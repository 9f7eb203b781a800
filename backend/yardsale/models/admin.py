from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Admin(BaseModel):
    """Administrator model for MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    username: str = Field(min_length=1)
    password_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    
    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "username": "menye"
            }
        }
    
    def to_document(self) -> dict:
        """Serialize for insertion; MongoDB assigns the _id."""
        return self.model_dump(exclude={"id"})
