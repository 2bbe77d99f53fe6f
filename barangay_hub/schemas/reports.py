from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class ReportCreateRequest(BaseModel):
    category: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    location: Optional[str] = None
    images: Optional[List[Any]] = None


class ReportUpdateRequest(BaseModel):
    """Any combination of a status change and one conversation message."""
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    admin_feedback: Optional[str] = Field(default=None, alias="adminFeedback")
    additional_info: Optional[str] = Field(default=None, alias="additionalInfo")
    additional_info_images: Optional[List[Any]] = Field(default=None, alias="additionalInfoImages")
    sender_role: Optional[str] = Field(default=None, alias="senderRole")  # display hint only
