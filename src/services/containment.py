"""
Containment check: is a Drive file somewhere below a given root folder?
"""

import logging
from typing import Optional

from config.settings import CONTAINMENT_MAX_DEPTH
from utils.error_handling import NotFoundError

logger = logging.getLogger(__name__)


async def is_under(gateway, file_id: str, allowed_root_id: Optional[str],
                   max_depth: int = CONTAINMENT_MAX_DEPTH) -> bool:
    """
    Walk the first-parent chain of file_id looking for allowed_root_id

    Args:
        gateway: Drive gateway
        file_id: File or folder to check
        allowed_root_id: Root the caller is restricted to; empty means unrestricted
        max_depth: Maximum number of hops

    Returns:
        True if some visited node has allowed_root_id among its parents
    """
    if not allowed_root_id:
        return True

    current = file_id
    for _ in range(max_depth):
        try:
            meta = await gateway.get_metadata(current, fields="id, parents")
        except NotFoundError:
            # An ancestor we cannot see is outside the caller's tree
            logger.info(f"Containment walk for {file_id} hit inaccessible node {current}")
            return False

        parents = meta.get("parents") or []
        if allowed_root_id in parents:
            return True
        if not parents:
            return False
        current = parents[0]

    logger.info(f"Containment walk for {file_id} exhausted {max_depth} hops without reaching {allowed_root_id}")
    return False
