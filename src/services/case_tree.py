"""
Case folder tree provisioning and resolution

Layout created for every case:

    <root>/
        <pending label>/<docType>/...
        <approved label>/<docType>/...
        <rejected label>/<docType>/...
        manifest.csv        (optional)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from config.settings import STATUS_FOLDER_NAMES, MANIFEST_FILE_NAME, MANIFEST_HEADER
from models.enums import StatusRole
from services.drive_gateway import FOLDER_MIME_TYPE
from utils.error_handling import CaseTreeBuildError, NotFoundError, ServiceError, ValidationError
from utils.naming import sanitize_name

logger = logging.getLogger(__name__)

STATUS_ROLE_ORDER = [StatusRole.PENDING, StatusRole.APPROVED, StatusRole.REJECTED]


def status_labels(names: Optional[List[str]] = None) -> Dict[StatusRole, str]:
    """Map each status role to its folder label"""
    names = names or STATUS_FOLDER_NAMES
    return dict(zip(STATUS_ROLE_ORDER, names))


async def build_case_tree(
    gateway,
    root_name: str,
    doc_types: Optional[List[str]] = None,
    make_public: bool = False,
    parent_id: Optional[str] = None,
    create_manifest: bool = False,
    status_names: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create a case root, its three status folders and per-docType subfolders.

    Args:
        gateway: Drive gateway
        root_name: Name for the case root folder
        doc_types: Document type labels, one subfolder each under every status folder
        make_public: Grant anyone-with-link read on every created folder
        parent_id: Parent for the root; defaults to the gateway's configured parent
        create_manifest: Upload a header-only manifest.csv into the root

    Returns:
        {"root", "statusFolders": {pending, approved, rejected},
         "docFolders": {statusFolderName: [folder, ...]}, "manifest"?}

    Raises:
        ValidationError: root name is empty after sanitization
        CaseTreeBuildError: a Drive call failed; already created folders are
            left in place and listed on the error
    """
    if not sanitize_name(root_name):
        raise ValidationError("rootName is required")

    doc_types = list(doc_types or [])
    invalid = [doc_type for doc_type in doc_types if not sanitize_name(doc_type)]
    if invalid:
        raise ValidationError(f"docTypes contains invalid names: {invalid}")

    labels = status_labels(status_names)
    created_ids: List[str] = []

    async def create(name: str, parents: Optional[List[str]]) -> Dict[str, Any]:
        folder = await gateway.create_folder(name, parents)
        created_ids.append(folder["id"])
        return folder

    async def create_all(requests) -> List[Dict[str, Any]]:
        # Let every sibling settle so created_ids is complete before raising
        results = await asyncio.gather(*(create(name, parents) for name, parents in requests),
                                       return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(results)

    try:
        root = await create(root_name, [parent_id] if parent_id else None)

        status_created = await create_all(
            (labels[role], [root["id"]]) for role in STATUS_ROLE_ORDER
        )
        status_map = {role.value: folder for role, folder in zip(STATUS_ROLE_ORDER, status_created)}

        doc_folders: Dict[str, List[Dict[str, Any]]] = {}
        for status_folder in status_created:
            children = await create_all(
                (doc_type, [status_folder["id"]]) for doc_type in doc_types
            )
            doc_folders[status_folder["name"]] = children

        if make_public:
            await asyncio.gather(*(gateway.grant_public_read(folder_id) for folder_id in list(created_ids)))

        result = {
            "root": root,
            "statusFolders": status_map,
            "docFolders": doc_folders,
        }

        if create_manifest:
            manifest = await gateway.create_file(
                MANIFEST_FILE_NAME, root["id"], "text/csv", MANIFEST_HEADER.encode("utf-8")
            )
            created_ids.append(manifest["id"])
            result["manifest"] = manifest

    except ValidationError:
        raise
    except ServiceError as e:
        logger.error(f"Case tree '{root_name}' failed after creating {len(created_ids)} objects: {e.message}")
        raise CaseTreeBuildError(e.message, created_ids)

    logger.info(
        f"Built case tree '{root['name']}' ({root['id']}): "
        f"{len(status_created)} status folders, {len(doc_types)} doc types each"
    )
    return result


async def resolve_case_tree(gateway, root_id: str, status_names: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Re-derive the status and docType folder mapping of an existing case root.

    Status folders are keyed by folder name. A root that is empty and a root
    that does not exist both resolve to empty maps.
    """
    try:
        status_folders = await gateway.list_children(root_id, mime_type=FOLDER_MIME_TYPE, order_by="name")
    except NotFoundError:
        status_folders = []

    children = await asyncio.gather(
        *(gateway.list_children(folder["id"], mime_type=FOLDER_MIME_TYPE, order_by="name")
          for folder in status_folders)
    )

    by_name = {folder["name"]: folder for folder in status_folders}
    doc_folders = {folder["name"]: list(kids) for folder, kids in zip(status_folders, children)}

    roles = {}
    for role, label in status_labels(status_names).items():
        if label in by_name:
            roles[role.value] = by_name[label]

    return {
        "statusFolders": by_name,
        "docFolders": doc_folders,
        "statusRoles": roles,
    }


def find_status_folder(tree: Dict[str, Any], role: StatusRole) -> Optional[Dict[str, Any]]:
    """
    Pick the status folder for a role from a resolved tree.

    Falls back to position in name order when labels were renamed, which keeps
    the "01_", "02_", "03_" prefixes meaningful for legacy trees.
    """
    folder = tree.get("statusRoles", {}).get(role.value)
    if folder:
        return folder

    ordered = sorted(tree.get("statusFolders", {}).values(), key=lambda f: f["name"])
    index = STATUS_ROLE_ORDER.index(role)
    if len(ordered) > index:
        logger.warning(f"No status folder labelled for role '{role.value}', using '{ordered[index]['name']}'")
        return ordered[index]
    return None


def doc_type_folder_map(tree: Dict[str, Any], role: StatusRole = StatusRole.PENDING) -> Dict[str, str]:
    """Return {docType name: folder id} under the status folder for role"""
    status_folder = find_status_folder(tree, role)
    if not status_folder:
        return {}
    return {folder["name"]: folder["id"] for folder in tree["docFolders"].get(status_folder["name"], [])}


async def delete_case_tree(gateway, root_id: str) -> None:
    """Compensating action for a partially or wrongly created tree: trash the root"""
    await gateway.get_metadata(root_id, fields="id")
    await gateway.trash(root_id)
