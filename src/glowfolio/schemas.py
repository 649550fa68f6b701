"""Request and response schemas for the REST API."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Request body for admin login. Presence is checked by the handler."""

    username: str | None = None
    password: str | None = None


class UserInfo(BaseModel):
    """Public identity of an authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class LoginData(BaseModel):
    token: str
    user: UserInfo


class LoginResponse(BaseModel):
    success: bool = True
    data: LoginData


class VerifyData(BaseModel):
    user: UserInfo


class VerifyResponse(BaseModel):
    success: bool = True
    data: VerifyData


class CategoryOut(BaseModel):
    """A portfolio category as shown to visitors."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name_cs: str
    slug: str
    display_order: int
    parent_section: str | None = None


class CategoryListResponse(BaseModel):
    success: bool = True
    data: List[CategoryOut]


class ImageOut(BaseModel):
    """Serialized image metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    filename: str
    original_filename: str
    file_path: str
    file_size: int
    mime_type: str
    uploaded_by: int
    display_order: int
    uploaded_at: datetime


class AdminImageOut(ImageOut):
    """Image metadata joined with its category, for the admin listing."""

    category_name: str
    category_slug: str


class ImageListResponse(BaseModel):
    success: bool = True
    data: List[ImageOut]


class AdminImageListResponse(BaseModel):
    success: bool = True
    data: List[AdminImageOut]


class ImageUploadResponse(BaseModel):
    success: bool = True
    message: str = "Obrázek byl úspěšně nahrán"
    data: ImageOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ContactRequest(BaseModel):
    """Contact form submission. Presence and shape are checked by the handler."""

    name: str | None = Field(None, description="Sender's name")
    email: str | None = Field(None, description="Sender's email address")
    message: str | None = Field(None, description="Message body")


class ContactData(BaseModel):
    message: str = "Zpráva byla úspěšně odeslána"


class ContactResponse(BaseModel):
    success: bool = True
    data: ContactData = Field(default_factory=ContactData)
