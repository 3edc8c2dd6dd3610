"""
Event models for decoded GH Archive lines.

Only the recognized fields are kept; anything else in the raw JSON is
dropped on validation. Push events carry their commits under payload;
other event types simply decode with an empty commit list.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ArchiveModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Actor(ArchiveModel):
    id: int
    login: str
    display_login: Optional[str] = None
    gravatar_id: Optional[str] = None
    url: Optional[str] = None
    avatar_url: Optional[str] = None


class Repo(ArchiveModel):
    id: int
    name: str
    url: Optional[str] = None


class Org(ArchiveModel):
    id: int
    login: str
    gravatar_id: Optional[str] = None
    url: Optional[str] = None
    avatar_url: Optional[str] = None


class Author(ArchiveModel):
    email: Optional[str] = None
    name: Optional[str] = None


class Commit(ArchiveModel):
    sha: str
    author: Author = Field(default_factory=Author)
    message: str = ""
    distinct: bool = True
    url: str = ""
    patch_url: Optional[str] = None  # derived from url, never read from the feed


class PullRequest(ArchiveModel):
    url: Optional[str] = None


class Payload(ArchiveModel):
    repository_id: Optional[int] = None
    push_id: Optional[int] = None
    size: Optional[int] = None
    distinct_size: Optional[int] = None
    ref: Optional[str] = None
    head: Optional[str] = None
    before: Optional[str] = None
    commits: List[Commit] = Field(default_factory=list)
    action: Optional[str] = None
    number: Optional[int] = None
    pull_request: Optional[PullRequest] = None


class RawEvent(ArchiveModel):
    id: str
    type: str
    actor: Actor
    repo: Repo
    payload: Payload = Field(default_factory=Payload)
    public: bool = True
    created_at: datetime
    org: Optional[Org] = None


class EnrichedEvent(RawEvent):
    """
    A decoded event plus what the parser derives from it.
    patch_url is the first commit's patch URL; every commit also keeps its own.
    """
    patch_url: Optional[str] = None
    domains: List[str] = Field(default_factory=list)


class CommitRecord(ArchiveModel):
    """One row per pushed commit, flattened out of a push event."""
    event_id: str
    created_at: datetime
    actor_id: int
    actor_login: str
    repo_name: str
    repo_owner: str
    ref: str
    head_sha: Optional[str] = None
    before_sha: Optional[str] = None
    commit_sha: str
    author_name: str
    author_email: str
    commit_message: str
    commit_url: str
    patch_url: str
    domains: List[str] = Field(default_factory=list)
