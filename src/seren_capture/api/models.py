"""Pydantic models for capture API request bodies."""

from pydantic import BaseModel


class StartSessionRequest(BaseModel):
    """Body for opening a capture session."""

    otp: str | None = None


class CaptureModeRequest(BaseModel):
    """Body for choosing a capture mode."""

    mode: str | None = None
