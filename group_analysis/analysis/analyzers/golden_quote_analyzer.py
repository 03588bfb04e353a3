"""
金句分析模块
专门处理群聊金句提取和分析
"""

import logging
from typing import Any, List, Sequence

from ...models.data_models import GoldenQuote
from ..utils.yaml_utils import get_text_field
from .base_analyzer import BaseAnalyzer, fill_template

logger = logging.getLogger(__name__)


class GoldenQuoteAnalyzer(BaseAnalyzer):
    """金句分析器"""

    def get_data_type(self) -> str:
        return "金句"

    def get_max_count(self) -> int:
        return self.config_manager.get_max_golden_quotes()

    def build_prompt(self, message_lines: Sequence[str]) -> str:
        if not message_lines:
            return ""

        return fill_template(self.config_manager.get_golden_quote_analysis_prompt(), {
            "messages": "\n".join(message_lines),
            "maxGoldenQuotes": self.get_max_count(),
        })

    def create_data_objects(self, quotes_data: List[Any]) -> List[GoldenQuote]:
        quotes = []
        for quote_data in quotes_data:
            if len(quotes) >= self.get_max_count():
                break
            if not isinstance(quote_data, dict):
                logger.warning(f"跳过非字典类型的金句数据: {quote_data}")
                continue

            content = get_text_field(quote_data, "content")
            sender = get_text_field(quote_data, "sender")
            reason = get_text_field(quote_data, "reason")
            if not content or not sender or not reason:
                logger.warning(f"金句数据格式不完整，跳过: {quote_data}")
                continue

            quotes.append(GoldenQuote(content=content, sender=sender, reason=reason))
        return quotes
