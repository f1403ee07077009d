"""Pieces shared by both webhook vocabularies"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UnhandledEvent(Payload):
    """A well-formed delivery of a kind the relay does not act on (ping, push, ...)."""

    kind: str
    action: Optional[str] = None
