from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from . import fields
from .api import RequestDispatcher
from .errors import ApiError
from .models import ContentItem, DownloadLinks, FileInfo, FileItem, FileVersion, FolderItem, Privacy, SearchResults
from .utils import format_bytes, to_int, yes


logger = logging.getLogger(__name__)

ROOT_FOLDER = "myfiles"
VIEW_LINK = "https://www.mediafire.com/file/{quick_key}"
RECENT_LIMIT = 10


def _file_info(info: Dict[str, Any]) -> FileInfo:
    size = to_int(info.get("size"))
    return FileInfo(
        quick_key=info.get("quickkey") or "",
        name=info.get("filename") or "",
        size=size,
        size_formatted=format_bytes(size),
        created=info.get("created"),
        mime_type=info.get("mimetype"),
        downloads=to_int(info.get("downloads")),
        privacy=info.get("privacy"),
        password_protected=yes(info.get("password_protected")),
    )


def _search_item(item: Dict[str, Any]) -> ContentItem:
    if item.get("type") == "folder":
        return FolderItem(
            folder_key=item.get("folderkey") or "",
            name=item.get("name") or "",
            parent_folder_key=item.get("parent_folderkey"),
            parent_name=item.get("parent_name"),
        )
    size = to_int(item.get("size"))
    return FileItem(
        quick_key=item.get("quickkey") or "",
        name=fields.first_present(item, fields.FILE_NAME, ""),
        size=size,
        size_formatted=format_bytes(size),
        mime_type=item.get("mimetype"),
        parent_folder_key=item.get("parent_folderkey"),
        parent_name=item.get("parent_name"),
    )


class FilesApi:
    """File-level operations. Quick keys may be comma-separated where the API allows lists."""

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    def get_info(self, quick_key: str) -> FileInfo:
        data = self._dispatcher.call("file/get_info", {"quick_key": quick_key})
        info = fields.first_item(data, "file_info", "file_infos")
        if info is None:
            raise ApiError(f"File not found: {quick_key}", None, data)
        return _file_info(info)

    def get_links(self, quick_key: str) -> DownloadLinks:
        data = self._dispatcher.call("file/get_links", {"quick_key": quick_key, "link_type": "direct_download"})
        links = data.get("links")
        first = links[0] if isinstance(links, list) and links and isinstance(links[0], dict) else {}
        return DownloadLinks(
            direct_download=first.get("direct_download"),
            normal_download=first.get("normal_download"),
            view_link=VIEW_LINK.format(quick_key=quick_key),
        )

    def search(self, query: str) -> SearchResults:
        data = self._dispatcher.call("folder/search", {"search_text": query, "filter": "everything"})
        results = data.get("results") if isinstance(data.get("results"), list) else []
        items = [_search_item(r) for r in results if isinstance(r, dict)]
        return SearchResults(query=query, items=items, total=len(items))

    def set_privacy(self, quick_key: str, privacy: Privacy) -> bool:
        self._dispatcher.call("file/update", {"quick_key": quick_key, "privacy": privacy})
        return True

    def make_public(self, quick_key: str) -> bool:
        return self.set_privacy(quick_key, "public")

    def make_private(self, quick_key: str) -> bool:
        return self.set_privacy(quick_key, "private")

    def copy(self, quick_key: str, folder_key: Optional[str] = None) -> List[str]:
        data = self._dispatcher.call("file/copy", {"quick_key": quick_key, "folder_key": folder_key or ROOT_FOLDER})
        return list(fields.first_present(data, fields.NEW_QUICK_KEYS, []))

    def delete(self, quick_key: str) -> bool:
        self._dispatcher.call("file/delete", {"quick_key": quick_key})
        return True

    def move(self, quick_key: str, folder_key: Optional[str] = None) -> bool:
        self._dispatcher.call("file/move", {"quick_key": quick_key, "folder_key": folder_key or ROOT_FOLDER})
        return True

    def rename(self, quick_key: str, new_name: str) -> bool:
        self._dispatcher.call("file/update", {"quick_key": quick_key, "filename": new_name})
        return True

    def purge(self, quick_key: str) -> bool:
        self._dispatcher.call("file/purge", {"quick_key": quick_key})
        return True

    def restore(self, quick_key: str) -> bool:
        self._dispatcher.call("file/restore", {"quick_key": quick_key})
        return True

    def get_versions(self, quick_key: str) -> List[FileVersion]:
        data = self._dispatcher.call("file/get_versions", {"quick_key": quick_key})
        versions = data.get("file_versions") if isinstance(data.get("file_versions"), list) else []
        return [FileVersion(revision=to_int(v.get("revision")), date=v.get("date") or "") for v in versions]

    def get_recently_modified(self) -> List[FileInfo]:
        """
        Info for up to 10 recently modified files.

        Lookups that the server rejects are skipped; transport failures and a
        lost session still propagate.
        """
        data = self._dispatcher.call("file/recently_modified")
        quick_keys = data.get("quickkeys") if isinstance(data.get("quickkeys"), list) else []
        out: List[FileInfo] = []
        for qk in quick_keys[:RECENT_LIMIT]:
            try:
                out.append(self.get_info(qk))
            except ApiError as exc:
                logger.debug("Skipping %s in recently modified: %s", qk, exc)
        return out


__all__ = ["FilesApi"]
