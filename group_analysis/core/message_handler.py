"""
消息处理模块
负责消息的过滤、缓存、持久化转发以及历史消息获取
"""

from datetime import datetime, timedelta
import logging
from typing import List, Protocol, Sequence

from ..models.data_models import Message
from .message_cache import MessageCache, cache_key

logger = logging.getLogger(__name__)


class MessageStore(Protocol):
    """消息持久化层接口，由宿主提供实现"""

    async def save_message(self, message: Message) -> None:
        ...

    async def fetch_history(self, channel_id: str, platform: str, start_time: datetime,
                            end_time: datetime, limit: int) -> Sequence[Message]:
        """按时间升序返回时间范围内的消息"""
        ...

    async def delete_messages_before(self, cutoff: datetime) -> None:
        ...


class MessageHandler:
    """消息处理器"""

    def __init__(self, config_manager, store: MessageStore, cache: MessageCache):
        self.config_manager = config_manager
        self.store = store
        self.cache = cache

    def should_store(self, message: Message) -> bool:
        """判断是否应该存储此消息"""
        # 只存储群组消息
        if not message.group_id:
            return False

        if any(word in message.text_content for word in self.config_manager.get_words_filter()):
            return False

        if str(message.sender_id) in self.config_manager.get_user_filter():
            return False

        return True

    async def handle_message(self, message: Message) -> bool:
        """
        处理一条新消息

        Returns:
            消息是否被接收
        """
        if not self.should_store(message):
            return False

        self.cache.put(cache_key(message), message)

        try:
            await self.store.save_message(message)
        except Exception as e:
            logger.warning(f"存储消息到数据库失败: {e}")
        return True

    async def fetch_group_messages(self, group_id: str, platform: str, days: int) -> List[Message]:
        """获取群聊消息记录，按时间升序"""
        end_time = datetime.now()
        start_time = end_time - timedelta(days=days)
        max_messages = self.config_manager.get_max_messages()

        logger.info(f"从数据库查询历史消息: {group_id}, {platform}, {days} 天")
        logger.info(f"时间范围: {start_time.strftime('%Y-%m-%d %H:%M:%S')} 到 {end_time.strftime('%Y-%m-%d %H:%M:%S')}")

        try:
            messages = await self.store.fetch_history(group_id, platform, start_time, end_time, max_messages)
        except Exception as e:
            logger.error(f"群 {group_id} 查询历史消息失败: {e}", exc_info=True)
            return []

        logger.info(f"群 {group_id} 查询到 {len(messages)} 条消息")
        return list(messages)
