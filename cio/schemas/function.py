from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FunctionResponse(BaseModel):
    """A recorded job run."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str
    conclusion: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    saga_id: str
    cio_company_id: int
    logs: str = ""
