"""Typed payloads for library items (tagged by ``kind``)."""
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field


class ChecklistItem(BaseModel):
    id: str
    text: str
    completed: bool = False


class Credential(BaseModel):
    id: str
    service: str
    username: str
    password: str
    notes: Optional[str] = None


class Resource(BaseModel):
    id: str
    name: str
    url: str
    type: str
    description: Optional[str] = None


class ChecklistPayload(BaseModel):
    """Reusable checklist."""

    kind: Literal["checklist"] = "checklist"
    items: List[ChecklistItem] = Field(default_factory=list)
    category: Optional[str] = None


class CredentialsPayload(BaseModel):
    """Shared account credentials."""

    kind: Literal["credentials"] = "credentials"
    credentials: List[Credential] = Field(default_factory=list)


class BrandBriefPayload(BaseModel):
    """Brand guidelines for a client."""

    kind: Literal["brand_brief"] = "brand_brief"
    brand_name: str = ""
    client_name: str = ""
    brand_colors: List[str] = Field(default_factory=list)
    brand_fonts: List[str] = Field(default_factory=list)
    brand_voice: str = ""
    target_audience: str = ""
    key_messages: List[str] = Field(default_factory=list)


class ResourceLibraryPayload(BaseModel):
    """Links and files collected for a project."""

    kind: Literal["resource_library"] = "resource_library"
    resources: List[Resource] = Field(default_factory=list)
    category: Optional[str] = None


LibraryPayload = Annotated[
    Union[ChecklistPayload, CredentialsPayload, BrandBriefPayload, ResourceLibraryPayload],
    Field(discriminator="kind"),
]
