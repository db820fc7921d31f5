"""Google API access (Sheets, Drive, OAuth) over httpx.

    from uploadforms.google import GoogleClient

    async with GoogleClient(access_token) as google:
        meta = await google.sheets.get_metadata(sheet_id)
"""

from .client import GoogleAPIError, GoogleClient, GoogleNotLinkedError
from .drive import DriveAPI
from .sheets import SheetsAPI

__all__ = [
    "GoogleAPIError",
    "GoogleClient",
    "GoogleNotLinkedError",
    "DriveAPI",
    "SheetsAPI",
]
