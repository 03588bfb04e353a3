"""
LLM API请求处理工具模块
提供 OpenAI 兼容接口的调用、模型自动选择、重试与token统计功能
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ...models.data_models import TokenUsage

logger = logging.getLogger(__name__)


# 模型偏好列表，按优先级排列，匹配方式为子串包含
DEFAULT_MODEL_PREFERENCES = (
    "gpt-4o",
    "gpt-4",
    "gpt-3.5",
    "qwen",
    "glm",
    "moonshot",
    "deepseek",
    "claude",
)


class LLMError(Exception):
    """LLM 相关错误的基类"""
    pass


class LLMTransportError(LLMError):
    """LLM 接口返回非成功状态或连接失败"""

    def __init__(self, status: Optional[int], body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"LLM 请求失败: {status} {body}".strip())


class NoUsableModelError(LLMError):
    """未配置模型且无法自动发现可用模型"""
    pass


@dataclass
class LLMResponse:
    """一次补全请求的结果"""
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class LLMClient:
    """OpenAI 兼容接口客户端"""

    def __init__(self, base_url: str, token: str = "", timeout: float = 120):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_config(cls, config_manager) -> "LLMClient":
        return cls(
            base_url=config_manager.get_llm_base_url(),
            token=config_manager.get_llm_token(),
            timeout=config_manager.get_llm_timeout(),
        )

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = self.build_url(path)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, headers=self.headers, json=payload) as response:
                    body = await response.text()
                    if not 200 <= response.status < 300:
                        raise LLMTransportError(response.status, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LLMTransportError(None, str(e) or type(e).__name__) from e

        try:
            return json.loads(body) if body else {}
        except ValueError as e:
            raise LLMTransportError(response.status, f"响应不是合法的 JSON: {body[:200]}") from e

    async def list_models(self) -> List[str]:
        """获取接口公布的模型列表"""
        data = await self._request("GET", "models")
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        return [
            item.get("id") for item in items
            if isinstance(item, dict) and isinstance(item.get("id"), str) and item.get("id")
        ]

    async def chat_completion(self, model: str, prompt: str, temperature: float) -> LLMResponse:
        """发送一次补全请求，只携带一条 user 消息"""
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        data = await self._request("POST", "chat/completions", payload)
        return LLMResponse(
            text=extract_response_text(data),
            usage=extract_token_usage(data),
        )


class ModelResolver:
    """
    模型选择器

    选择顺序：
    1. 配置中显式指定的模型，直接使用，不发起请求
    2. 从接口获取模型列表，按偏好列表依次匹配
    3. 都不匹配时使用列表中的第一个模型

    成功后结果会被缓存，同一实例后续调用不再请求模型列表
    """

    def __init__(self, client: LLMClient, configured_model: Optional[str] = None,
                 preferences: Sequence[str] = DEFAULT_MODEL_PREFERENCES):
        self.client = client
        self.configured_model = configured_model
        self.preferences = tuple(preferences)
        self._resolved_model: Optional[str] = None
        # 锁绑定在首次使用它的事件循环上，换循环时重新创建
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def resolved_model(self) -> Optional[str]:
        return self._resolved_model

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def resolve(self) -> str:
        if self._resolved_model:
            return self._resolved_model
        if self.configured_model:
            self._resolved_model = self.configured_model
            return self._resolved_model

        async with self._get_lock():
            # 等锁期间可能已被其他任务解析完成
            if self._resolved_model:
                return self._resolved_model

            logger.info(f"未配置模型，正在从 {self.client.build_url('models')} 自动选择可用模型...")
            try:
                available_models = await self.client.list_models()
            except LLMTransportError as e:
                logger.warning(f"获取模型列表失败 ({e.status}): {e.body}")
                raise NoUsableModelError("无法自动获取可用模型。请检查 baseUrl/token 配置或直接指定模型。") from e

            selected = self.select_model(available_models)
            if not selected:
                raise NoUsableModelError("无可用模型，请检查 baseUrl/token 或配置模型名称。")

            logger.info(f"自动选择模型: {selected}")
            self._resolved_model = selected
            return selected

    def select_model(self, available_models: Sequence[str]) -> Optional[str]:
        """从可用模型中按偏好选择"""
        if not available_models:
            return None
        for marker in self.preferences:
            for model_id in available_models:
                if marker in model_id:
                    return model_id
        return available_models[0]


async def call_llm_with_retry(
    client: LLMClient,
    resolver: ModelResolver,
    prompt: str,
    temperature: float,
    retries: int = 1,
    backoff: float = 2,
) -> LLMResponse:
    """
    调用LLM，带重试与线性退避

    Args:
        client: LLM 客户端
        resolver: 模型选择器
        prompt: 输入的提示语
        temperature: 采样温度
        retries: 总尝试次数
        backoff: 退避基数（秒），第 n 次失败后等待 backoff * n 秒

    Returns:
        LLM 响应

    Raises:
        NoUsableModelError: 无法确定模型
        LLMTransportError: 所有尝试均失败
    """
    retries = max(1, retries)
    model = await resolver.resolve()
    logger.info(f"调用 LLM (模型: {model}), temperature={temperature}")
    logger.debug(f"LLM prompt 长度: {len(prompt)}")

    last_exc: Optional[LLMTransportError] = None
    for attempt in range(1, retries + 1):
        try:
            response = await client.chat_completion(model, prompt, temperature)
            logger.info(f"LLM 响应长度: {len(response.text)} 字符")
            return response
        except LLMTransportError as e:
            last_exc = e
            logger.warning(f"LLM请求失败: 第{attempt}次, 错误: {e}")
        if attempt < retries:
            await asyncio.sleep(backoff * attempt)

    logger.error(f"LLM请求全部重试失败: {last_exc}")
    raise last_exc


def extract_token_usage(response: Any) -> TokenUsage:
    """从补全响应中提取token使用统计"""
    usage = response.get("usage") if isinstance(response, dict) else None
    if not isinstance(usage, dict):
        return TokenUsage()
    return TokenUsage(
        prompt_tokens=usage.get("prompt_tokens") or 0,
        completion_tokens=usage.get("completion_tokens") or 0,
        total_tokens=usage.get("total_tokens") or 0,
    )


def extract_response_text(response: Any) -> str:
    """从补全响应中提取文本内容，缺失时返回空字符串"""
    if not isinstance(response, dict):
        return ""
    choices = response.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if content is None:
        return ""
    return str(content).strip()
