from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, List, Optional

class LscStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    FINISHED_WITH_RESULTS = "finished-with-results"
    FINISHED_EMPTY = "finished-empty"
    ERROR = "error"
    TIMEOUT = "timeout"

    @property
    def terminal(self) -> bool:
        return self in (LscStatus.FINISHED_WITH_RESULTS, LscStatus.FINISHED_EMPTY, LscStatus.ERROR)

class RunState(str, Enum):
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

class JobRequest(BaseModel):
    scan_id: str
    host_ip: str
    hostname: str = ""
    os_release: str = ""
    package_list: List[str] = Field(default_factory=list)

class StatusReport(BaseModel):
    status: LscStatus
    results: List[Any] = Field(default_factory=list)
    error: Optional[str] = None

class LscOutcome(BaseModel):
    state: RunState
    status: LscStatus
    results: List[Any] = Field(default_factory=list)
    error: Optional[str] = None
    cancelled: bool = False

class RunRequest(BaseModel):
    scan_id: str = Field(min_length=1)
    host_ip: str = Field(min_length=1)
    hostname: str = ""
    os_release: str = ""
    package_list: List[str] = Field(default_factory=list)
    timeout: Optional[float] = Field(default=None, ge=0)

class TaskResponse(BaseModel):
    taskid: str
