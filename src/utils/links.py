"""
Derived Google Drive URLs (view / preview / download) for stored files
"""

from typing import Dict, Optional

DRIVE_FILE_URL = "https://drive.google.com/file/d/{file_id}/view"
DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?export=download&id={file_id}"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def normalize_view_url(file_id: str, view_link: Optional[str]) -> str:
    """
    Normalize a provider webViewLink into a canonical /file/d/<id>/view URL.

    Query strings are dropped, a trailing /preview becomes /view, and links
    that are not in /file/d/ form (open?id=..., missing links) are rebuilt
    from the file id.
    """
    if not view_link:
        return DRIVE_FILE_URL.format(file_id=file_id)

    url = view_link.split("?", 1)[0].rstrip("/")
    if "/file/d/" not in url:
        return DRIVE_FILE_URL.format(file_id=file_id)

    if url.endswith("/preview"):
        url = url[:-len("/preview")] + "/view"
    elif not url.endswith("/view"):
        url = url + "/view"
    return url


def derive_links(file_id: str, view_link: Optional[str]) -> Dict[str, str]:
    """
    Produce the three derived URLs for a stored file.

    Args:
        file_id: Drive file id
        view_link: webViewLink as returned by Drive, may be None

    Returns:
        Dict with viewUrl, previewUrl and downloadUrl
    """
    view_url = normalize_view_url(file_id, view_link)
    preview_url = view_url[:-len("/view")] + "/preview"
    return {
        "viewUrl": view_url,
        "previewUrl": preview_url,
        "downloadUrl": DRIVE_DOWNLOAD_URL.format(file_id=file_id),
    }


def decorate_file(record: Dict, is_public: Optional[bool] = None) -> Dict:
    """Return a copy of a Drive file record with derived links attached"""
    decorated = dict(record)
    if record.get("mimeType") == FOLDER_MIME_TYPE:
        decorated["viewUrl"] = record.get("webViewLink")
        decorated["previewUrl"] = None
        decorated["downloadUrl"] = None
    else:
        decorated.update(derive_links(record["id"], record.get("webViewLink")))
    if is_public is not None:
        decorated["isPublic"] = is_public
    return decorated
