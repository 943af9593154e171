"""交互式工具函数模块"""

import typer
from loguru import logger


def confirm_action(message: str = "确认执行此操作?", default: bool = False) -> bool:
    """
    请求用户确认操作，中断输入视为不确认

    Args:
        message: 提示消息
        default: 默认选项，删除等危险操作默认为否

    Returns:
        bool: 用户是否确认
    """
    try:
        return typer.confirm(message, default=default)
    except (KeyboardInterrupt, EOFError, typer.Abort):
        logger.warning("\n操作已取消")
        return False
