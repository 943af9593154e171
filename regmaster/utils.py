"""工具函数模块"""

from datetime import datetime


def format_size(size_bytes: int) -> str:
    """
    将字节数格式化为易读的字符串

    Args:
        size_bytes: 字节数

    Returns:
        str: 例如 "512 B"、"1.50 KB"、"2.00 GB"
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    if size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.2f} MB"
    return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def format_date(date_string: str) -> str:
    """
    将ISO时间字符串格式化为本地时间，无法解析时原样返回

    Args:
        date_string: ISO 8601 时间，例如 2024-01-01T12:00:00.123456789Z

    Returns:
        str: 本地时间字符串
    """
    value = date_string.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # 仓库返回的时间可能带纳秒，datetime只支持到微秒
    if "." in value:
        head, _, tail = value.partition(".")
        digits = ""
        while tail and tail[0].isdigit():
            digits, tail = digits + tail[0], tail[1:]
        value = f"{head}.{digits[:6].ljust(6, '0')}{tail}"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return date_string

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def truncate_string(text: str, max_length: int) -> str:
    """超过最大长度时截断并追加省略号"""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."
