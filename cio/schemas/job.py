from typing import List, Optional

from pydantic import BaseModel, Field


class JobRunResponse(BaseModel):
    """
    Result of triggering a job.

    ``status`` is ``queued`` when the job was handed to a worker, otherwise the
    conclusion of the last run. ``function_id`` is the last recorded run.
    """

    job: str
    status: str
    function_id: Optional[int] = None
    function_ids: List[int] = Field(default_factory=list)
    task_id: Optional[str] = None


class JobListResponse(BaseModel):
    jobs: List[str]
