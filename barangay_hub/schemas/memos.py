from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class MemoCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    effective_date: Optional[str] = Field(default=None, alias="effectiveDate")
    file_url: Optional[str] = Field(default=None, alias="fileUrl")


class MemoDecisionRequest(BaseModel):
    status: Optional[str] = None
