"""镜像仓库工具函数"""

import math
from functools import cmp_to_key
from typing import Iterable, List, Optional

from .base import Image


def _parse_number(tag: str) -> Optional[float]:
    """把形如数字的标签解析为数值，否则返回None"""
    try:
        value = float(tag)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return value


def compare_tags(a: str, b: str) -> int:
    """
    标签比较函数：两个标签都是数字时按数值降序，否则按字典序降序

    Args:
        a: 标签a
        b: 标签b

    Returns:
        int: 负数表示a排在b前面
    """
    num_a = _parse_number(a)
    num_b = _parse_number(b)
    if num_a is not None and num_b is not None:
        return (num_b > num_a) - (num_b < num_a)
    return (b > a) - (b < a)


def sort_tags(tags: Iterable[str]) -> List[str]:
    """按展示顺序排列标签，返回新列表"""
    return sorted(tags, key=cmp_to_key(compare_tags))


def filter_images(images: Iterable[Image], keyword: str) -> List[Image]:
    """
    按关键字过滤镜像，镜像名称或任一标签包含关键字即保留，不区分大小写

    Args:
        images: 镜像列表
        keyword: 关键字，为空时返回全部镜像

    Returns:
        List[Image]: 过滤后的镜像列表
    """
    term = keyword.strip().lower()
    if not term:
        return list(images)
    return [
        image for image in images
        if term in image["name"].lower() or any(term in tag.lower() for tag in image["tags"])
    ]


def catalog_path() -> str:
    return "/v2/_catalog"


def tags_path(repository: str) -> str:
    return f"/v2/{repository}/tags/list"


def manifest_path(repository: str, reference: str) -> str:
    return f"/v2/{repository}/manifests/{reference}"


def cumulative_size_path(repository: str) -> str:
    return f"/v2/{repository}/cumulative-size"


def gc_path() -> str:
    return "/v2/_gc"
