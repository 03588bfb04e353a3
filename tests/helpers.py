"""测试辅助函数"""

import asyncio
from datetime import datetime
import itertools

from group_analysis.analysis.utils.llm_utils import LLMResponse, LLMTransportError
from group_analysis.core.config import ConfigManager
from group_analysis.models.data_models import Message, MessageSegment, SegmentType

_message_ids = itertools.count(1)


def ts(hour: int, minute: int = 0, day: int = 15) -> float:
    """本地时间 2025-03-{day} {hour}:{minute} 的时间戳"""
    return datetime(2025, 3, day, hour, minute).timestamp()


def text_seg(text: str) -> MessageSegment:
    return MessageSegment(type=SegmentType.TEXT, text=text)


def create_message(
    sender_id: str,
    text: str = "",
    timestamp: float = None,
    segments=None,
    sender_name: str = None,
    group_id: str = "10001",
    platform: str = "qq",
) -> Message:
    """构造测试消息，默认带一个文本消息段"""
    if segments is None:
        segments = (text_seg(text),) if text else ()
    return Message(
        message_id=str(next(_message_ids)),
        sender_id=sender_id,
        sender_name=sender_name or f"user_{sender_id}",
        group_id=group_id,
        text_content=text,
        segments=tuple(segments),
        timestamp=ts(12) if timestamp is None else timestamp,
        platform=platform,
    )


def make_config(**sections) -> ConfigManager:
    """构造带 token 的配置，sections 按配置节覆盖"""
    config = {"llm": {"token": "sk-test", "model": "test-model", "retries": 1, "backoff": 0}}
    for key, value in sections.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key] = {**config[key], **value}
        else:
            config[key] = value
    return ConfigManager(config)




class FakeLLMClient:
    """
    假的 LLM 客户端

    按提示词前缀匹配预设响应，响应可以是字符串、LLMResponse 或异常
    """

    def __init__(self, models=None, responses=None):
        self.models = list(models or [])
        self.responses = dict(responses or {})
        self.list_models_calls = 0
        self.prompts = []

    def build_url(self, path: str) -> str:
        return f"http://llm.test/v1/{path}"

    async def list_models(self):
        self.list_models_calls += 1
        await asyncio.sleep(0)
        return list(self.models)

    async def chat_completion(self, model: str, prompt: str, temperature: float) -> LLMResponse:
        self.prompts.append(prompt)
        for prefix, result in self.responses.items():
            if prompt.startswith(prefix):
                if isinstance(result, Exception):
                    raise result
                if isinstance(result, LLMResponse):
                    return result
                return LLMResponse(text=result)
        raise LLMTransportError(500, "no scripted response")
