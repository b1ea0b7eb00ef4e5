from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from . import fields
from .api import RequestDispatcher
from .errors import ApiError
from .models import ContentItem, CreatedFolder, FileItem, FolderContent, FolderInfo, FolderItem, Privacy
from .utils import format_bytes, to_int, yes


ROOT_FOLDER = "myfiles"
ContentType = Literal["files", "folders", "all"]


class FoldersApi:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    def _content(self, folder_key: str, content_type: str, chunk: int, chunk_size: int) -> Dict[str, Any]:
        data = self._dispatcher.call(
            "folder/get_content",
            {"folder_key": folder_key, "content_type": content_type, "chunk": chunk, "chunk_size": chunk_size},
        )
        content = data.get("folder_content")
        return content if isinstance(content, dict) else {}

    def get_content(
        self,
        folder_key: str = ROOT_FOLDER,
        *,
        content_type: ContentType = "all",
        chunk: int = 1,
        chunk_size: int = 100,
    ) -> FolderContent:
        """
        List a folder. With `content_type="all"` this issues two calls and puts
        folders before files; `has_more` is set if either listing has more chunks.
        """
        folders: List[FolderItem] = []
        files: List[FileItem] = []
        has_more = False

        if content_type in ("all", "folders"):
            content = self._content(folder_key, "folders", chunk, chunk_size)
            for f in content.get("folders") or []:
                folders.append(
                    FolderItem(
                        folder_key=f.get("folderkey") or "",
                        name=f.get("name") or "",
                        created=f.get("created"),
                        file_count=to_int(f.get("file_count")),
                        folder_count=to_int(f.get("folder_count")),
                    )
                )
            has_more = has_more or yes(content.get("more_chunks"))

        if content_type in ("all", "files"):
            content = self._content(folder_key, "files", chunk, chunk_size)
            for f in content.get("files") or []:
                size = to_int(f.get("size"))
                files.append(
                    FileItem(
                        quick_key=f.get("quickkey") or "",
                        name=f.get("filename") or "",
                        size=size,
                        size_formatted=format_bytes(size),
                        created=f.get("created"),
                        mime_type=f.get("mimetype"),
                        privacy=f.get("privacy"),
                    )
                )
            has_more = has_more or yes(content.get("more_chunks"))

        items: List[ContentItem] = [*folders, *files]
        return FolderContent(folder_key=folder_key, items=items, has_more=has_more, chunk=chunk)

    def get_files(self, folder_key: str = ROOT_FOLDER, *, chunk: int = 1, chunk_size: int = 100) -> List[FileItem]:
        content = self.get_content(folder_key, content_type="files", chunk=chunk, chunk_size=chunk_size)
        return [i for i in content.items if isinstance(i, FileItem)]

    def get_folders(self, folder_key: str = ROOT_FOLDER, *, chunk: int = 1, chunk_size: int = 100) -> List[FolderItem]:
        content = self.get_content(folder_key, content_type="folders", chunk=chunk, chunk_size=chunk_size)
        return [i for i in content.items if isinstance(i, FolderItem)]

    def get_info(self, folder_key: str) -> FolderInfo:
        data = self._dispatcher.call("folder/get_info", {"folder_key": folder_key})
        info = data.get("folder_info")
        if not isinstance(info, dict):
            raise ApiError(f"Folder not found: {folder_key}", None, data)
        return FolderInfo(
            folder_key=info.get("folderkey") or folder_key,
            name=info.get("name") or "",
            description=info.get("description"),
            created=info.get("created"),
            privacy=info.get("privacy") or "private",
            file_count=to_int(info.get("file_count")),
            folder_count=to_int(info.get("folder_count")),
            total_size=to_int(info.get("total_size")),
        )

    def create(
        self,
        name: str,
        parent_key: Optional[str] = None,
        *,
        action_on_duplicate: Literal["skip", "keep", "replace"] = "keep",
    ) -> CreatedFolder:
        data = self._dispatcher.call(
            "folder/create",
            {"foldername": name, "parent_key": parent_key or ROOT_FOLDER, "action_on_duplicate": action_on_duplicate},
        )
        return CreatedFolder(
            folder_key=fields.first_present(data, fields.FOLDER_KEY, ""),
            name=data.get("name") or name,
        )

    def delete(self, folder_key: str) -> bool:
        self._dispatcher.call("folder/delete", {"folder_key": folder_key})
        return True

    def move(self, folder_key: str, dest_folder_key: Optional[str] = None) -> bool:
        self._dispatcher.call(
            "folder/move", {"folder_key_src": folder_key, "folder_key_dst": dest_folder_key or ROOT_FOLDER}
        )
        return True

    def copy(self, folder_key: str, dest_folder_key: Optional[str] = None) -> str:
        data = self._dispatcher.call(
            "folder/copy", {"folder_key_src": folder_key, "folder_key_dst": dest_folder_key or ROOT_FOLDER}
        )
        keys = fields.first_present(data, fields.NEW_FOLDER_KEYS, [])
        return keys[0] if keys else ""

    def rename(self, folder_key: str, new_name: str) -> bool:
        self._dispatcher.call("folder/update", {"folder_key": folder_key, "foldername": new_name})
        return True

    def set_privacy(self, folder_key: str, privacy: Privacy) -> bool:
        self._dispatcher.call("folder/update", {"folder_key": folder_key, "privacy": privacy})
        return True

    def purge(self, folder_key: str) -> bool:
        self._dispatcher.call("folder/purge", {"folder_key": folder_key})
        return True


__all__ = ["FoldersApi", "ROOT_FOLDER"]
