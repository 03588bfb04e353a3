"""
YAML 响应解析工具模块

LLM 的结构化输出放在 ```yaml 代码块中，解析分为两步：
先用正则做宽松的修复，再用 yaml.safe_load 严格解码，解码失败直接抛出
"""

import logging
import re
from typing import Any, Dict, List

import yaml

from .llm_utils import LLMError

logger = logging.getLogger(__name__)

YAML_BLOCK_PATTERN = re.compile(r"```ya?ml\s*([\s\S]*?)\s*```")

# 续行与下一个列表项之间多余的空行
BLANK_LINES_BEFORE_ITEM_PATTERN = re.compile(
    r"(\n\s+.*)\n\n+(\n- (?:topic|name|content|userId):\s)"
)


class MissingStructuredBlockError(LLMError):
    """响应中没有 YAML 代码块"""
    pass


class StructuredDataDecodeError(LLMError):
    """YAML 代码块无法解码为记录列表"""
    pass


def extract_yaml_block(text: str) -> str:
    """
    提取响应中的 YAML 代码块内容

    Raises:
        MissingStructuredBlockError: 未找到代码块
    """
    match = YAML_BLOCK_PATTERN.search(text)
    if not match:
        raise MissingStructuredBlockError("未找到 YAML 响应。")
    return match.group(1)


def repair_yaml(yaml_text: str) -> str:
    """去掉模型在列表项之间插入的多余空行"""
    return BLANK_LINES_BEFORE_ITEM_PATTERN.sub(r"\1\2", yaml_text)


def decode_yaml_records(yaml_text: str) -> List[Any]:
    """
    严格解码 YAML 文本为记录列表

    Raises:
        StructuredDataDecodeError: YAML 语法错误或顶层不是列表
    """
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        logger.error(f"解析 YAML 失败: {e}")
        logger.error(f"待解析的 YAML 字符串: {yaml_text or '[空字符串]'}")
        raise StructuredDataDecodeError(f"解析 YAML 失败: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise StructuredDataDecodeError(f"YAML 顶层应为列表，实际为 {type(data).__name__}")
    return data


def parse_llm_records(raw_text: str) -> List[Any]:
    """
    解析 LLM 原始响应为记录列表

    空响应直接返回空列表，不做代码块匹配
    """
    if not raw_text or not raw_text.strip():
        logger.warning("LLM 返回空内容。")
        return []

    try:
        yaml_text = extract_yaml_block(raw_text)
    except MissingStructuredBlockError:
        logger.warning("未找到 YAML 代码块，无法解析。")
        raise

    records = decode_yaml_records(repair_yaml(yaml_text))
    logger.info(f"成功解析 {len(records)} 条数据。")
    return records


def get_text_field(record: Dict[str, Any], key: str) -> str:
    """读取记录中的文本字段，非字符串值转为字符串"""
    value = record.get(key)
    if value is None:
        return ""
    return str(value).strip()
