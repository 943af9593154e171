"""CLI命令行接口模块"""

import asyncio
import sys
from typing import List, Optional

import typer
from dotenv import load_dotenv
from loguru import logger

from regmaster import setup_logger
from regmaster.cli_utils import (
    RegistryContext,
    get_config_manager,
    get_registry_manager,
    registry_command,
)
from regmaster.constants import GC_INSTRUCTIONS
from regmaster.formatters.registry import (
    format_cumulative_size,
    format_images,
    format_manifest,
    format_tags,
)
from regmaster.interactive import browse_registry, configure_registry
from regmaster.interactive_utils import confirm_action
from regmaster.managers.config_manager import ConfigError, ConfigManager
from regmaster.managers.registry.base import RegistryApiError
from regmaster.managers.registry.utils import filter_images, sort_tags

# 创建CLI应用
app = typer.Typer(
    help="Docker镜像仓库浏览工具",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich"
)


@app.callback()
def main_callback(
    url: Optional[str] = typer.Option(None, "--url", help="仓库地址，优先于配置文件和环境变量"),
    username: Optional[str] = typer.Option(None, "-u", "--username", help="仓库用户名"),
    config_dir: Optional[str] = typer.Option(None, "--config-dir", help="配置目录，默认为 ~/.regmaster"),
    debug: bool = typer.Option(False, "--debug", help="显示调试日志"),
):
    """Docker镜像仓库浏览工具"""
    if debug:
        setup_logger("DEBUG")

    ctx = RegistryContext.get_instance()
    ctx.registry_url = url
    ctx.username = username
    ctx.config_dir = config_dir


@app.command("config")
def config_registry():
    """交互式配置镜像仓库"""
    try:
        ctx = RegistryContext.get_instance()
        try:
            config_manager = get_config_manager()
        except ConfigError as e:
            logger.warning(f"现有配置无效，将使用默认配置: {e}")
            config_manager = ConfigManager(ctx.config_dir)
            config_manager.create_default_config()

        # 使用交互式配置模块获取用户输入的基本配置
        updated_fields = configure_registry(dict(config_manager.get_config()))

        # 保存配置
        config_manager.update_config(updated_fields)
        logger.success(f"配置已保存到 {config_manager.config_file}")
    except ConfigError as e:
        logger.error(f"配置更新失败: {str(e)}")
        sys.exit(1)

    # 检查仓库连接
    manager = get_registry_manager()

    async def check() -> bool:
        async with manager:
            return await manager._check_registry_connection()

    if asyncio.run(check()):
        logger.success("仓库连接正常")
    else:
        logger.warning("无法访问仓库，请检查地址和凭证")


@app.command("images")
@registry_command
async def list_images(
    keyword: Optional[str] = typer.Option(None, "--filter", help="只显示名称或标签包含关键字的镜像，不区分大小写"),
):
    """列出所有镜像及其标签"""
    async with get_registry_manager() as manager:
        images = await manager.fetch_all_images()
    if keyword:
        images = filter_images(images, keyword)
    format_images(images)


@app.command("tags")
@registry_command
async def list_tags(name: str = typer.Argument(..., help="镜像名称")):
    """列出镜像的所有标签"""
    async with get_registry_manager() as manager:
        tags = await manager.fetch_image_tags(name)
    format_tags(name, sort_tags(tags))


@app.command("manifest")
@registry_command
async def show_manifest(
    name: str = typer.Argument(..., help="镜像名称"),
    tag: str = typer.Argument("latest", help="标签"),
):
    """查看镜像标签的清单"""
    async with get_registry_manager() as manager:
        manifest = await manager.fetch_image_manifest(name, tag)
    format_manifest(name, tag, manifest)


@app.command("size")
@registry_command
async def show_size(
    name: str = typer.Argument(..., help="镜像名称"),
    tags: List[str] = typer.Option([], "-t", "--tag", help="只统计指定标签，可多次指定"),
    shared: bool = typer.Option(True, "--shared/--no-shared", help="是否按共享层去重计算实际占用"),
):
    """统计镜像所有标签的累计大小"""
    async with get_registry_manager() as manager:
        if not tags:
            tags = sort_tags(await manager.fetch_image_tags(name))
        if not tags:
            logger.warning(f"{name} 没有任何标签")
            return
        result = await manager.calculate_cumulative_image_size(name, tags, shared)
    format_cumulative_size(name, result)


@app.command("delete")
@registry_command
async def delete_tag(
    name: str = typer.Argument(..., help="镜像名称"),
    tag: str = typer.Argument(..., help="要删除的标签"),
    force: bool = typer.Option(False, "-f", "--force", help="清单获取或删除失败时仍然移除标签引用"),
    yes: bool = typer.Option(False, "-y", "--yes", help="跳过确认"),
):
    """删除镜像标签（需要仓库开启删除功能）"""
    if not yes and not confirm_action(f"确定删除 {name}:{tag} ?"):
        logger.warning("操作已取消")
        return

    async with get_registry_manager() as manager:
        await manager.delete_image_tag(name, tag, force_remove=force)
    logger.info("提示：删除标签不会立即释放存储空间，请运行 'rgm gc' 进行垃圾回收")


@app.command("gc")
@registry_command
async def garbage_collect():
    """触发仓库垃圾回收，不支持时显示手动执行方法"""
    async with get_registry_manager() as manager:
        try:
            await manager.run_garbage_collection()
        except RegistryApiError as e:
            logger.warning(f"垃圾回收请求失败: {e}")
            for line in GC_INSTRUCTIONS:
                logger.info(line)


@app.command("browse")
@registry_command
async def browse():
    """交互式浏览镜像仓库"""
    async with get_registry_manager() as manager:
        await browse_registry(manager)


def main():
    """主入口函数"""
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
