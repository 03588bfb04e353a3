"""LLM 调用与响应解析工具"""
