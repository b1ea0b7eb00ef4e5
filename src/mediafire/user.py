from __future__ import annotations

from typing import Any, Dict

from . import fields
from .api import RequestDispatcher
from .models import StorageQuota, UserInfo
from .utils import format_bytes, to_int, yes


# Limit assumed for free accounts when the server reports none (10 GiB)
FREE_STORAGE_LIMIT = 10737418240


class UserApi:
    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    def _user_info(self) -> Dict[str, Any]:
        data = self._dispatcher.call("user/get_info")
        info = data.get("user_info")
        return info if isinstance(info, dict) else {}

    def get_info(self) -> UserInfo:
        info = self._user_info()
        email = info.get("email") or ""
        display = fields.first_present(info, fields.DISPLAY_NAME) or email.split("@")[0]
        return UserInfo(
            email=email,
            display_name=display,
            first_name=info.get("first_name"),
            last_name=info.get("last_name"),
            premium=yes(info.get("premium")),
            validated=yes(info.get("validated")),
            created_at=info.get("created"),
        )

    def get_storage(self) -> StorageQuota:
        info = self._user_info()
        used = to_int(fields.first_present(info, fields.USED_STORAGE, "0"))
        total = to_int(fields.first_present(info, fields.STORAGE_LIMIT), FREE_STORAGE_LIMIT)
        percent = round(used / total * 100, 1) if total > 0 else 0.0
        return StorageQuota(
            used_bytes=used,
            total_bytes=total,
            used_formatted=format_bytes(used),
            total_formatted=format_bytes(total),
            percent_used=percent,
        )


__all__ = ["UserApi", "FREE_STORAGE_LIMIT"]
