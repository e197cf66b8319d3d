#!/usr/bin/env python3
"""工作区快照重置脚本

用于开发环境删除一个或全部 scope 的快照，下次访问时会重新生成默认工作区。

使用方法:
    cd backend
    uv run python scripts/reset_scope.py default
    uv run python scripts/reset_scope.py --all
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from groupspace.components.workspace.service import WorkspaceStore
from groupspace.settings import settings
from groupspace.utils import get_logger

logger = get_logger(__name__)


def reset_scopes(scopes: list[str], reset_all: bool = False) -> int:
    """重置快照，返回被删除的 scope 数量"""

    # 安全检查：仅允许在开发环境运行
    if settings.environment not in ["local-dev", "test"]:
        logger.error("Scope reset is only allowed in local-dev or test environment")
        logger.error(f"   Current environment: {settings.environment}")
        sys.exit(1)

    store = WorkspaceStore()
    if reset_all:
        scopes = store.storage.list_scopes()
        logger.info(f"Resetting all {len(scopes)} scopes")

    deleted = 0
    for scope in scopes:
        if store.reset(scope):
            deleted += 1
            logger.info(f"Reset scope: {scope}")
        else:
            logger.info(f"Scope has no snapshot: {scope}")

    logger.info(f"Scope reset completed: {deleted} deleted")
    return deleted


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reset workspace snapshots")
    parser.add_argument("scopes", nargs="*", help="Scope names to reset")
    parser.add_argument("--all", action="store_true", help="Reset every known scope")
    args = parser.parse_args(argv)

    if not args.scopes and not args.all:
        parser.error("give at least one scope or --all")

    reset_scopes(args.scopes, reset_all=args.all)
    return 0


if __name__ == "__main__":
    sys.exit(main())
