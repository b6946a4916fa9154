# usage models - per-user model call counters shown on the api usage page

from pydantic import BaseModel, Field


class ApiLogEntry(BaseModel):
    operation: str
    success: bool
    timestamp: str


class ApiUsage(BaseModel):
    by_date: dict[str, int] = Field(default_factory=dict, alias="byDate")
    by_type: dict[str, int] = Field(default_factory=dict, alias="byType")

    model_config = {"populate_by_name": True}


class UserStats(BaseModel):
    api_request_count: int = Field(0, alias="apiRequestCount")
    api_usage: ApiUsage = Field(default_factory=ApiUsage, alias="apiUsage")
    api_logs: list[ApiLogEntry] = Field(default_factory=list, alias="apiLogs")
    reflection_count: int = Field(0, alias="reflectionCount")

    model_config = {"populate_by_name": True}


class UserStatsResponse(BaseModel):
    success: bool = True
    stats: UserStats
