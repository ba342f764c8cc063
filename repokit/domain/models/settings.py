"""Per-repository behaviour knobs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RepositorySettings(BaseModel):
    """Settings injected into each GenericRepository.

    max_conflict_retries bounds how many times update() re-attempts a commit
    after a concurrency conflict.  None keeps the loop unbounded: it retries
    until a commit succeeds or a non-conflict fault occurs, which can spin
    forever under persistent contention.
    raw_isolation_level is the isolation level execute_raw() requests.
    """

    model_config = ConfigDict(frozen=True)

    max_conflict_retries: int | None = Field(default=None, ge=0)
    raw_isolation_level: str = "SERIALIZABLE"
