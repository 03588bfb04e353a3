"""配置、消息缓存与消息处理"""
