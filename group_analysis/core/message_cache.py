"""
消息缓存模块
按 (平台, 用户/频道) 保存最近的消息，容量有上限并按时间过期
"""

import logging
import time
from typing import Dict, Hashable, List, Optional, Tuple

from ..models.data_models import Message

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


def cache_key(message: Message, by_channel: bool = False) -> CacheKey:
    """生成缓存键，默认按发送者，by_channel 时按群组"""
    if by_channel:
        return (message.platform, message.group_id)
    return (message.platform, message.sender_id)


class MessageCache:
    """
    最近消息缓存

    每个键对应一个最新在前的消息列表。过期消息由定时任务调用 sweep 清理，
    get 时仍会按时间戳过滤，保证不会返回已过期但尚未清理的消息。
    """

    def __init__(self, capacity: int = 1000, expiration: float = 24 * 60 * 60):
        if capacity <= 0:
            raise ValueError("capacity 必须大于 0")
        self.capacity = capacity
        self.expiration = expiration
        self._entries: Dict[Hashable, List[Message]] = {}

    def put(self, key: Hashable, message: Message):
        """写入消息并裁剪到容量上限"""
        messages = self._entries.setdefault(key, [])
        messages.insert(0, message)
        if len(messages) > self.capacity:
            del messages[self.capacity:]

    def get(self, key: Hashable, now: Optional[float] = None) -> List[Message]:
        """获取某个键的消息（最新在前），不修改缓存"""
        messages = self._entries.get(key)
        if not messages:
            return []
        now = time.time() if now is None else now
        return [msg for msg in messages if not self._is_expired(msg, now)]

    def sweep(self, now: Optional[float] = None) -> int:
        """清理过期消息，返回被移除的消息数量"""
        now = time.time() if now is None else now
        removed = 0

        for key in list(self._entries.keys()):
            messages = self._entries[key]
            valid_messages = [msg for msg in messages if not self._is_expired(msg, now)]

            if not valid_messages:
                del self._entries[key]
            elif len(valid_messages) != len(messages):
                self._entries[key] = valid_messages
            removed += len(messages) - len(valid_messages)

        if removed:
            logger.debug(f"清理过期缓存消息 {removed} 条，剩余 {len(self._entries)} 个缓存键")
        return removed

    def clear(self):
        self._entries.clear()

    def _is_expired(self, message: Message, now: float) -> bool:
        return now - message.timestamp > self.expiration

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries
