"""格式化输出模块"""
