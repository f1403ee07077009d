"""Link table inspection and user-link seeding endpoints"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api/links", tags=["links"])


class IssueLinkResponse(BaseModel):
    source_key: str
    target_repository: str
    target_issue_number: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommentLinkResponse(BaseModel):
    comment_id_a: int
    comment_id_b: str
    issue_number_a: int
    repository_a: str
    issue_key_b: str

    class Config:
        from_attributes = True


class UserLinkCreate(BaseModel):
    username_a: str
    account_id_b: str


class UserLinkResponse(BaseModel):
    username_a: str
    account_id_b: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def _store(request: Request):
    return request.app.state.context.store


@router.get("/issues/{source_key}", response_model=IssueLinkResponse)
def get_issue_link(source_key: str, request: Request):
    """Get the GitHub issue linked to a Jira key"""
    link = _store(request).get_issue_link(source_key)
    if not link:
        raise HTTPException(status_code=404, detail="Issue link not found")
    return link


@router.get("/comments", response_model=List[CommentLinkResponse])
def list_comment_links(request: Request, issue_key: Optional[str] = None):
    """List comment links, optionally for one Jira issue"""
    return _store(request).list_comment_links(issue_key)


@router.get("/users", response_model=List[UserLinkResponse])
def list_user_links(request: Request):
    """List user links"""
    return _store(request).list_user_links()


@router.post("/users", response_model=UserLinkResponse)
def create_user_link(link: UserLinkCreate, request: Request):
    """Create or replace a user link"""
    username = link.username_a.strip()
    account_id = link.account_id_b.strip()
    if not username or not account_id:
        raise HTTPException(status_code=400, detail="username_a and account_id_b must be non-empty")
    store = _store(request)
    store.save_user_link(username, account_id)
    return store.get_user_link(username_a=username)
