from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

class PersonaFilterRequest(BaseModel):
    filter: Any = Field(None, description="Column conditions as an object or a JSON string")
    limit: Optional[int] = Field(None, ge=0)
    offset: Optional[int] = Field(None, ge=0)

class PersonaFilterResponse(BaseModel):
    count: int
    data: List[Dict[str, Any]]
