from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


Privacy = Literal["public", "private"]


class UserInfo(BaseModel):
    email: str
    display_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    premium: bool = False
    validated: bool = False
    created_at: Optional[str] = None


class StorageQuota(BaseModel):
    used_bytes: int
    total_bytes: int
    used_formatted: str
    total_formatted: str
    percent_used: float


class FileInfo(BaseModel):
    quick_key: str
    name: str
    size: int
    size_formatted: str
    created: Optional[str] = None
    mime_type: Optional[str] = None
    downloads: int = 0
    privacy: Optional[str] = None
    password_protected: bool = False


class DownloadLinks(BaseModel):
    direct_download: Optional[str] = None
    normal_download: Optional[str] = None
    view_link: str


class FileItem(BaseModel):
    quick_key: str
    name: str
    size: int
    size_formatted: str
    created: Optional[str] = None
    mime_type: Optional[str] = None
    privacy: Optional[str] = None
    parent_folder_key: Optional[str] = None
    parent_name: Optional[str] = None
    is_folder: Literal[False] = False

    @property
    def id(self) -> str:
        return self.quick_key


class FolderItem(BaseModel):
    folder_key: str
    name: str
    created: Optional[str] = None
    file_count: int = 0
    folder_count: int = 0
    parent_folder_key: Optional[str] = None
    parent_name: Optional[str] = None
    is_folder: Literal[True] = True

    @property
    def id(self) -> str:
        return self.folder_key


ContentItem = Union[FolderItem, FileItem]


class FolderContent(BaseModel):
    folder_key: str
    items: List[ContentItem] = Field(default_factory=list)
    has_more: bool = False
    chunk: int = 1


class SearchResults(BaseModel):
    query: str
    items: List[ContentItem] = Field(default_factory=list)
    total: int = 0


class FolderInfo(BaseModel):
    folder_key: str
    name: str
    description: Optional[str] = None
    created: Optional[str] = None
    privacy: str = "private"
    file_count: int = 0
    folder_count: int = 0
    total_size: int = 0


class CreatedFolder(BaseModel):
    folder_key: str
    name: str


class FileVersion(BaseModel):
    revision: int
    date: str
