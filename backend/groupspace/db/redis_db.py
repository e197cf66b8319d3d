"""
Redis Key Prefix Strategy (Single DB + Key Prefix Pattern)

groupspace 采用单一 DB + Key 前缀模式进行 Redis 数据隔离。

每个 scope（班级/小组）拥有独立的命名空间，快照存放在命名空间内固定的
key 名 "workspace-snapshot" 下，与 scope 无关。

使用示例:
    from groupspace.db.redis_db import RedisKeyPrefix

    key = RedisKeyPrefix.snapshot_key("physics-101")
    # 结果: "groupspace:scope:physics-101:workspace-snapshot"
"""

from enum import Enum

# Fixed record name inside every scope namespace
SNAPSHOT_STORAGE_KEY = "workspace-snapshot"


class RedisKeyPrefix(str, Enum):
    """Redis Key 前缀枚举，用于业务隔离

    Key 格式规范:
        {prefix}:{scope}:{record_name}

    示例:
        groupspace:scope:default:workspace-snapshot
        groupspace:scope:default:lock
    """

    SCOPE = "groupspace:scope"  # Scope 命名空间
    SCOPE_INDEX = "groupspace:index:scopes"  # 已初始化的 scope 集合 (Set)

    # ==================== 辅助方法 ====================

    @classmethod
    def scope_namespace(cls, scope: str) -> str:
        """生成 scope 命名空间前缀"""
        return f"{cls.SCOPE.value}:{scope}"

    @classmethod
    def snapshot_key(cls, scope: str) -> str:
        """生成 scope 快照 Key"""
        return f"{cls.scope_namespace(scope)}:{SNAPSHOT_STORAGE_KEY}"

    @classmethod
    def lock_key(cls, scope: str) -> str:
        """生成 scope 写锁 Key"""
        return f"{cls.scope_namespace(scope)}:lock"

    @classmethod
    def scope_index_key(cls) -> str:
        """生成 scope 索引 Key"""
        return cls.SCOPE_INDEX.value
