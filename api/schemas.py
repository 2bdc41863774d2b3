from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_url: Optional[str] = Field(None, alias="dataUrl")


class ImageUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl")


class AIRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = ""


class DescriptionResponse(BaseModel):
    description: str


class HealthResponse(BaseModel):
    status: str
    store: bool
    ai: bool
