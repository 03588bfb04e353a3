"""各类 LLM 分析器"""
