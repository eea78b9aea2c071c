from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional

from app.modules.room.models import ExecutionResult, Language
from app.modules.room.session import SessionSnapshot, SubmissionReceipt


class CodeEditRequest(BaseModel):
    code: str = Field(..., description="Full editor contents after the edit")


class LanguageRequest(BaseModel):
    language: Language


class SessionStateResponse(BaseModel):
    state: SessionSnapshot


class RunResponse(BaseModel):
    result: ExecutionResult
    state: SessionSnapshot


class SubmitResponse(BaseModel):
    receipt: SubmissionReceipt
    message: str = "Code submitted successfully!"
    state: SessionSnapshot


class LeaveResponse(BaseModel):
    ok: bool
    detail: Optional[str] = None
