"""API response models"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Body of every 500 response"""
    error: str
    details: str = ""


class NotFoundResponse(BaseModel):
    error: str = "Cryptocurrency not found"
    id: str


class UpdateResponse(BaseModel):
    """Manual refresh result (camelCase kept for the browser client)"""
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Cryptocurrency data updated successfully"
    updated_count: int = Field(alias="updatedCount")


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str = "CryptoTracker API is running"
    timestamp: str
    version: str
    databases: Dict[str, Any] = Field(default_factory=dict)
