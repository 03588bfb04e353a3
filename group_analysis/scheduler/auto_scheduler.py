"""
自动调度器模块
负责定期清理消息缓存和过期的持久化消息
"""

import asyncio
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from ..core.message_cache import MessageCache

logger = logging.getLogger(__name__)


class CacheSweepScheduler:
    """
    后台定时任务调度器

    两个循环相互独立：缓存清理循环和数据库保留期清理循环
    """

    def __init__(self, config_manager, cache: MessageCache, store=None):
        self.config_manager = config_manager
        self.cache = cache
        self.store = store
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self):
        """启动定时任务"""
        if self.is_running:
            logger.info("定时任务已在运行")
            return

        self._tasks.append(asyncio.create_task(self._sweep_loop(), name="message_cache_sweep"))

        if self.store is not None and self.config_manager.get_retention_days() > 0:
            self._tasks.append(asyncio.create_task(self._retention_loop(), name="message_retention_cleanup"))

        logger.info(f"定时任务已启动，缓存清理间隔 {self.config_manager.get_cache_sweep_interval():.0f} 秒")

    async def stop(self):
        """停止定时任务"""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("已停止定时任务")

    async def restart(self):
        await self.stop()
        await self.start()

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self.config_manager.get_cache_sweep_interval())
            try:
                self.sweep_once()
            except Exception as e:
                logger.error(f"清理消息缓存失败: {e}", exc_info=True)

    async def _retention_loop(self):
        while True:
            await asyncio.sleep(self.config_manager.get_retention_cleanup_interval())
            try:
                await self.cleanup_expired_messages()
            except Exception as e:
                logger.error(f"清理过期消息失败: {e}", exc_info=True)

    def sweep_once(self, now: Optional[float] = None) -> int:
        removed = self.cache.sweep(now)
        if removed:
            logger.info(f"已清理 {removed} 条过期缓存消息")
        return removed

    async def cleanup_expired_messages(self):
        """删除超过保留天数的持久化消息"""
        cutoff = datetime.now() - timedelta(days=self.config_manager.get_retention_days())
        await self.store.delete_messages_before(cutoff)
        logger.info(f"已清理 {cutoff.isoformat()} 之前的消息")
