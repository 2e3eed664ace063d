from pydantic import BaseModel
from datetime import datetime

DEFAULT_REPORT_REASON = "Restaurant does not exist"

class BlacklistEntry(BaseModel):
    id: str
    name: str
    reason: str = DEFAULT_REPORT_REASON
    reports_count: int = 1
    first_reported_at: datetime
    reported_at: datetime

class BlacklistStats(BaseModel):
    total_blacklisted: int
    recently_blacklisted: int  # last 30 days
    shared_blacklisted: int
    local_blacklisted: int
