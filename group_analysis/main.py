"""
群日常分析入口
基于群聊记录生成分析报告，包含话题总结、用户称号、金句和统计数据

宿主只需提供消息存储实现，并把新消息交给 on_message
"""

import logging
from typing import Any, Dict, Optional

from .analysis.llm_analyzer import LLMAnalyzer
from .analysis.utils.llm_utils import LLMClient
from .core.config import ConfigManager
from .core.message_cache import MessageCache
from .core.message_handler import MessageHandler, MessageStore
from .models.data_models import AnalysisReport, Message
from .reports.generators import ReportGenerator
from .scheduler.auto_scheduler import CacheSweepScheduler
from .utils.helpers import MessageAnalyzer

logger = logging.getLogger(__name__)

MAX_ANALYSIS_DAYS = 30


class GroupNotEnabledError(Exception):
    """群组未启用分析功能"""
    pass


class NotEnoughMessagesError(Exception):
    """消息数量不足，无法进行有效分析"""

    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(f"消息数量（{count}/{required}）不足，无法进行有效分析")


class GroupDailyAnalysis:
    def __init__(self, config: Optional[Dict[str, Any]], store: MessageStore,
                 llm_client: Optional[LLMClient] = None):
        self.config_manager = ConfigManager(config)
        self.config_manager.validate()

        self.cache = MessageCache(
            capacity=self.config_manager.get_cache_size(),
            expiration=self.config_manager.get_cache_expiration(),
        )
        self.message_handler = MessageHandler(self.config_manager, store, self.cache)
        self.message_analyzer = MessageAnalyzer(
            self.config_manager,
            LLMAnalyzer(self.config_manager, client=llm_client),
        )
        self.report_generator = ReportGenerator()
        self.scheduler = CacheSweepScheduler(self.config_manager, self.cache, store)

        logger.info("群组分析插件已初始化")

    async def start(self):
        await self.scheduler.start()
        logger.info("消息存储服务已启动")

    async def stop(self):
        await self.scheduler.stop()

    async def on_message(self, message: Message) -> bool:
        return await self.message_handler.handle_message(message)

    async def analyze_group(self, group_id: str, platform: str, days: int = 1) -> AnalysisReport:
        """
        分析群聊近几天的活动

        Raises:
            GroupNotEnabledError: 群组不在白名单中
            NotEnoughMessagesError: 消息数量低于最小阈值
        """
        if not self.config_manager.is_group_allowed(group_id):
            raise GroupNotEnabledError(f"群 {group_id} 未启用分析功能")

        analysis_days = min(max(int(days or 1), 1), MAX_ANALYSIS_DAYS)
        logger.info(f"开始分析群组 {group_id}，时间窗口 {analysis_days} 天")

        messages = await self.message_handler.fetch_group_messages(group_id, platform, analysis_days)

        min_threshold = self.config_manager.get_min_messages_threshold()
        if len(messages) < min_threshold:
            raise NotEnoughMessagesError(len(messages), min_threshold)

        logger.info(f"已收集 {len(messages)} 条消息，开始分析...")
        return await self.message_analyzer.analyze_messages(messages, group_id)

    def render_text(self, report: AnalysisReport) -> str:
        return self.report_generator.generate_text_report(report)
