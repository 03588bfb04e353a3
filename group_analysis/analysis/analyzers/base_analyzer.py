"""
分析器基类
定义 构建提示词 -> 调用LLM -> 解析YAML -> 创建数据对象 的通用流程
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Tuple

from ...models.data_models import TokenUsage
from ..utils.llm_utils import LLMClient, ModelResolver, call_llm_with_retry
from ..utils.yaml_utils import parse_llm_records

logger = logging.getLogger(__name__)


def fill_template(template: str, values: Dict[str, Any]) -> str:
    """
    替换提示词模板中的 {name} 占位符

    只替换已知的占位符，模板中其他花括号原样保留
    """
    prompt = template
    for name, value in values.items():
        prompt = prompt.replace(f"{{{name}}}", str(value))
    return prompt


class BaseAnalyzer(ABC):
    """
    分析器基类
    子类负责提示词构建与数据对象创建，基类负责调用与解析
    """

    def __init__(self, client: LLMClient, resolver: ModelResolver, config_manager):
        """
        初始化分析器

        Args:
            client: LLM 客户端
            resolver: 共享的模型选择器
            config_manager: 配置管理器
        """
        self.client = client
        self.resolver = resolver
        self.config_manager = config_manager

    @abstractmethod
    def get_data_type(self) -> str:
        """获取数据类型标识，用于日志"""

    @abstractmethod
    def get_max_count(self) -> int:
        """获取最大提取数量"""

    @abstractmethod
    def build_prompt(self, data: Any) -> str:
        """构建提示词，无可分析内容时返回空字符串"""

    @abstractmethod
    def create_data_objects(self, records: List[Any]) -> List[Any]:
        """把解码后的记录转换为数据对象"""

    def get_temperature(self) -> float:
        return self.config_manager.get_llm_temperature()

    async def analyze(self, data: Any) -> Tuple[List[Any], TokenUsage]:
        """
        执行一次完整的分析

        Returns:
            (数据对象列表, Token使用统计)

        Raises:
            LLMError: 调用或解析失败，由调用方决定如何降级
        """
        data_type = self.get_data_type()
        prompt = self.build_prompt(data)
        if not prompt:
            logger.info(f"{data_type}分析没有可用的输入，返回空结果")
            return [], TokenUsage()

        logger.info(f"正在调用 LLM 进行{data_type}分析...")
        response = await call_llm_with_retry(
            self.client,
            self.resolver,
            prompt,
            self.get_temperature(),
            retries=self.config_manager.get_llm_retries(),
            backoff=self.config_manager.get_llm_backoff(),
        )

        records = parse_llm_records(response.text)
        items = self.create_data_objects(records)
        logger.info(f"{data_type}分析完成，得到 {len(items)} 条结果")
        return items, response.usage
