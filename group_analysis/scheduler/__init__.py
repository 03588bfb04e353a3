"""后台定时任务"""
