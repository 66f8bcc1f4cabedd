#!/usr/bin/env python3
"""
Reviewer token tool - mint tokens for back-office reviewers of case folders

Reviewer tokens are signed with REVIEWER_TOKEN_SECRET and pass the shared
preview/list gate. Binding one to a root restricts it to that case tree.
"""

import os
import sys
import argparse
import json

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from models.enums import TokenRole, TokenScope
from services.portal_token_service import get_portal_token_service


def issue_reviewer_token(reviewer: str, root_id: str = None, scope=None, ttl: int = None) -> dict:
    """
    Issue a reviewer token

    Args:
        reviewer: Reviewer label stored in the debtorName claim
        root_id: Optional case root to restrict the token to
        scope: Optional scope list (reviewers pass the gate without one)
        ttl: Lifetime in seconds

    Returns:
        Dict with the token and its claims summary
    """
    token_service = get_portal_token_service()
    token = token_service.issue(
        root_id,
        reviewer,
        [],
        role=TokenRole.REVIEWER.value,
        scope=scope or [],
        ttl=ttl,
    )
    claims = token_service.verify(token)
    return {
        "token": token,
        "role": claims.role,
        "rootId": claims.root_id,
        "scope": claims.scope,
        "exp": claims.exp,
    }


def main(argv=None):
    """Main CLI interface"""
    parser = argparse.ArgumentParser(description="Issue reviewer tokens for file preview and listing")
    parser.add_argument("reviewer", help="Reviewer name or label")
    parser.add_argument("--root-id", help="Restrict the token to one case root folder")
    parser.add_argument(
        "--scope",
        action="append",
        choices=[scope.value for scope in TokenScope],
        help="Capability scope (repeatable)"
    )
    parser.add_argument("--ttl", type=int, help="Lifetime in seconds (default PORTAL_TOKEN_TTL)")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")

    args = parser.parse_args(argv)
    result = issue_reviewer_token(args.reviewer, root_id=args.root_id, scope=args.scope, ttl=args.ttl)

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print(result["token"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
