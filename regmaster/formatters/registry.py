"""仓库信息格式化模块"""

from typing import List

from loguru import logger
from rich.console import Console
from rich.table import Table

from ..constants import COLORS
from ..managers.registry.base import CumulativeSizeResult, Image, Manifest
from ..managers.registry.size import size_of
from ..utils import format_date, format_size, truncate_string

console = Console()

# 列表中每个镜像最多显示的标签数
MAX_TAGS_SHOWN = 8


def format_images(images: List[Image]) -> None:
    """格式化并显示镜像列表

    Args:
        images: 镜像列表
    """
    if not images:
        logger.info("仓库中没有镜像")
        return

    table = Table(title=f"镜像列表（共 {len(images)} 个）")
    table.add_column("镜像", style="cyan", no_wrap=True)
    table.add_column("标签数", justify="right")
    table.add_column("标签")

    for image in images:
        tags = image["tags"]
        shown = ", ".join(tags[:MAX_TAGS_SHOWN])
        if len(tags) > MAX_TAGS_SHOWN:
            shown += f" ... 还有 {len(tags) - MAX_TAGS_SHOWN} 个"
        table.add_row(
            image["name"],
            str(len(tags)),
            shown or f"[{COLORS['warning']}]无标签[/{COLORS['warning']}]",
        )

    console.print(table)


def format_tags(repository: str, tags: List[str]) -> None:
    """格式化并显示标签列表

    Args:
        repository: 镜像名称
        tags: 已排序的标签列表
    """
    logger.info(f"\n{repository} 的标签（共 {len(tags)} 个）:")
    if not tags:
        logger.info("  无标签")
        return
    for tag in tags:
        logger.info(f"  - {tag}")


def format_manifest(repository: str, tag: str, manifest: Manifest) -> None:
    """格式化并显示镜像清单

    Args:
        repository: 镜像名称
        tag: 标签
        manifest: 镜像清单
    """
    logger.info(f"\n清单 {repository}:{tag}")
    logger.info(f"  Schema版本: {manifest.schema_version}")
    if manifest.media_type:
        logger.info(f"  媒体类型: {manifest.media_type}")
    if manifest.digest:
        logger.info(f"  Digest: {manifest.digest}")
    logger.info(f"  总大小: {format_size(size_of(manifest))}")

    if manifest.config is not None:
        logger.info(f"  配置: {manifest.config.digest} ({format_size(manifest.config.size)})")

    if manifest.layers:
        table = Table(title=f"镜像层（共 {len(manifest.layers)} 层）")
        table.add_column("#", justify="right")
        table.add_column("Digest", style="cyan")
        table.add_column("大小", justify="right")
        for index, layer in enumerate(manifest.layers, start=1):
            table.add_row(str(index), truncate_string(layer.digest or "-", 32), format_size(layer.size))
        console.print(table)

    if manifest.history:
        logger.info("  构建历史:")
        for entry in manifest.history:
            created = format_date(entry.created) if entry.created else "未知时间"
            command = truncate_string(entry.created_by or entry.comment or "", 80)
            logger.info(f"    - [{created}] {command}")

    for key, value in manifest.annotations.items():
        logger.info(f"  注解 {key}: {value}")


def format_cumulative_size(repository: str, result: CumulativeSizeResult) -> None:
    """格式化并显示镜像累计大小

    Args:
        repository: 镜像名称
        result: 累计大小计算结果
    """
    table = Table(title=f"{repository} 各标签大小")
    table.add_column("标签", style="cyan")
    table.add_column("大小", justify="right")
    for tag, size in result["tag_sizes"].items():
        table.add_row(tag, format_size(size))
    console.print(table)

    logger.info(f"  总大小（重复计算共享层）: {format_size(result['total_size'])}")
    logger.info(f"  实际占用（共享层只计算一次）: {format_size(result['unique_size'])}")
    if result["layer_digests"]:
        logger.info(f"  不同镜像层数量: {len(result['layer_digests'])}")
        saved = result["total_size"] - result["unique_size"]
        if saved > 0:
            logger.success(f"  共享层节省空间: {format_size(saved)}")
