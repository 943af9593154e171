"""交互式命令模块"""

from typing import Any, Dict, List, Optional

import questionary
from loguru import logger

from .formatters.registry import format_cumulative_size, format_images, format_manifest
from .managers.registry.base import DeletionDisabledError, OperationCancelled, RegistryError
from .managers.registry.utils import filter_images, sort_tags
from .managers.registry_manager import RegistryManager

# 浏览菜单中的特殊选项
REFRESH = "↻ 刷新（清空缓存）"
BACK = "← 返回"
QUIT = "退出"
FILTER = "过滤镜像"


def configure_registry(config: Dict[str, Any]) -> Dict[str, Any]:
    """交互式配置仓库连接信息

    注意：密码不会保存到配置文件，请通过环境变量 REGMASTER_PASSWORD 提供。

    Args:
        config: 当前配置

    Returns:
        更新后的配置（仅包含用户交互式配置的项）
    """
    # 确保配置包含必要的结构
    registry = config.get("registry", {})

    print("\n--- 镜像仓库配置 ---")
    print("注意：密码不会保存到配置文件，请设置环境变量 REGMASTER_PASSWORD 或 REGMASTER_PASSWORD_<用户名>。\n")

    updated_config: Dict[str, Any] = {"registry": {}}

    updated_config["registry"]["url"] = questionary.text(
        "仓库地址", default=registry.get("url", "http://localhost:5000")
    ).ask()

    updated_config["registry"]["username"] = questionary.text(
        "仓库用户名（可选）", default=registry.get("username", "")
    ).ask()

    updated_config["registry"]["api_prefix"] = questionary.text(
        "API前缀（通过反向代理访问时填写，例如 /api）", default=registry.get("api_prefix", "")
    ).ask()

    timeout = questionary.text("请求超时（秒）", default=str(registry.get("timeout", 30))).ask()
    try:
        updated_config["registry"]["timeout"] = int(timeout)
    except (TypeError, ValueError):
        print("输入无效，使用默认值30")
        updated_config["registry"]["timeout"] = 30

    return updated_config


async def browse_registry(manager: RegistryManager) -> None:
    """交互式浏览镜像仓库

    依次选择镜像和标签查看清单，可以统计累计大小或删除标签。
    选择刷新会清空缓存并重新获取，选择过滤可按名称或标签关键字筛选镜像。

    Args:
        manager: 镜像仓库管理器
    """
    keyword = ""
    while True:
        try:
            images = await manager.fetch_all_images()
        except OperationCancelled:
            return
        except RegistryError as e:
            logger.error(f"获取镜像列表失败: {e}")
            if not await questionary.confirm("是否重试?", default=True).ask_async():
                return
            continue

        images = filter_images(images, keyword)
        format_images(images)
        choices = [image["name"] for image in images] + [FILTER, REFRESH, QUIT]
        selected = await questionary.select("选择镜像", choices=choices).ask_async()

        if selected is None or selected == QUIT:
            return
        if selected == REFRESH:
            manager.clear_cache()
            continue
        if selected == FILTER:
            keyword = await questionary.text("过滤关键字（留空显示全部）", default=keyword).ask_async() or ""
            continue

        image = next(image for image in images if image["name"] == selected)
        if await _browse_image(manager, image["name"], image["tags"]) is False:
            return


async def _browse_image(manager: RegistryManager, repository: str, tags: List[str]) -> Optional[bool]:
    """浏览单个镜像，返回False表示退出整个浏览"""
    size_choice = "统计累计大小"
    delete_choice = "删除标签"

    while True:
        choices = list(tags) + [size_choice, delete_choice, REFRESH, BACK, QUIT]
        selected = await questionary.select(f"{repository} - 选择标签或操作", choices=choices).ask_async()

        if selected is None or selected == QUIT:
            return False
        if selected == BACK:
            return None
        if selected == REFRESH:
            manager.clear_cache()
            try:
                tags = sort_tags(await manager.fetch_image_tags(repository))
            except RegistryError as e:
                logger.error(f"获取 {repository} 的标签失败: {e}")
            continue

        try:
            if selected == size_choice:
                result = await manager.calculate_cumulative_image_size(repository, tags)
                format_cumulative_size(repository, result)
            elif selected == delete_choice:
                if await _delete_tag(manager, repository, tags):
                    tags = sort_tags(await manager.fetch_image_tags(repository))
            else:
                manifest = await manager.fetch_image_manifest(repository, selected)
                format_manifest(repository, selected, manifest)
        except OperationCancelled:
            continue
        except RegistryError as e:
            logger.error(f"操作失败: {e}")


async def _delete_tag(manager: RegistryManager, repository: str, tags: List[str]) -> bool:
    """交互式删除标签"""
    if not tags:
        logger.warning(f"{repository} 没有可删除的标签")
        return False

    tag = await questionary.select("选择要删除的标签", choices=tags).ask_async()
    if tag is None:
        return False

    force = await questionary.confirm("清单获取或删除失败时是否仍强制移除?", default=False).ask_async()
    if not await questionary.confirm(f"确定删除 {repository}:{tag} ?", default=False).ask_async():
        logger.warning("操作已取消")
        return False

    try:
        return await manager.delete_image_tag(repository, tag, force_remove=bool(force))
    except DeletionDisabledError as e:
        logger.error(e.message)
        return False
