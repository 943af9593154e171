"""配置管理器类"""

import copy
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union, cast

from loguru import logger

from ..constants import (
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_REGISTRY_CONFIG,
    ENV_CONFIG_DIR,
    ENV_PASSWORD,
    ENV_REGISTRY_URL,
    ENV_USERNAME,
    ERROR_MESSAGES,
    REGISTRY_URL_PATTERN,
    DefaultRegistryConfig,
)


class ConfigError(Exception):
    """配置错误"""

    pass


ValidationStructure = Dict[str, Union[Type[Any], 'ValidationStructure']]

def generate_validation_structure(config_template: Dict[str, Any]) -> ValidationStructure:
    """
    从配置模板生成验证结构

    Args:
        config_template: 配置模板

    Returns:
        ValidationStructure: 验证结构
    """
    validation_structure: ValidationStructure = {}

    for key, value in config_template.items():
        if isinstance(value, dict):
            validation_structure[key] = generate_validation_structure(value)
        elif isinstance(value, list):
            validation_structure[key] = list
        elif value is None:
            validation_structure[key] = str
        else:
            validation_structure[key] = type(value)

    return validation_structure


def default_config_dir() -> Path:
    """配置目录，优先使用环境变量 REGMASTER_CONFIG_DIR"""
    env_dir = os.environ.get(ENV_CONFIG_DIR)
    if env_dir:
        return Path(env_dir)
    return Path.home() / CONFIG_DIR_NAME


class ConfigManager:
    """配置管理器类，用于管理仓库连接和缓存配置

    密码不会写入配置文件，只从环境变量读取。
    """

    config_dir: Path
    config: DefaultRegistryConfig
    REQUIRED_CONFIG_FIELDS: ValidationStructure

    def __init__(self, config_dir: Optional[Union[str, Path]] = None, config: Optional[DefaultRegistryConfig] = None) -> None:
        """
        初始化配置管理器

        Args:
            config_dir: 配置目录，默认为 ~/.regmaster
            config: 仓库配置，默认为None
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config = config or cast(DefaultRegistryConfig, {})

        # 初始化验证结构
        self.REQUIRED_CONFIG_FIELDS = generate_validation_structure(cast(Dict[str, Any], DEFAULT_REGISTRY_CONFIG))

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def exists(self) -> bool:
        return self.config_file.exists()

    def create_default_config(self) -> DefaultRegistryConfig:
        """
        创建默认配置

        Returns:
            DefaultRegistryConfig: 默认配置
        """
        config = cast(DefaultRegistryConfig, copy.deepcopy(DEFAULT_REGISTRY_CONFIG))
        self.config = config
        return config

    def load_config(self) -> DefaultRegistryConfig:
        """
        加载配置文件，配置文件不存在时使用默认配置

        Returns:
            DefaultRegistryConfig: 加载的配置

        Raises:
            ConfigError: 配置加载失败时抛出
        """
        if not self.exists():
            logger.debug(ERROR_MESSAGES["config_not_found"].format(self.config_file))
            return self.create_default_config()

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"读取配置文件失败: {e}")

        # 旧版本配置缺少的项使用默认值补齐
        config = self.create_default_config()
        self._recursive_update(cast(Dict[str, Any], config), loaded)
        self.config = config
        self.validate_config()
        return config

    def update_config(self, config_updates: Dict[str, Any]) -> DefaultRegistryConfig:
        """
        更新配置

        Args:
            config_updates: 要更新的配置项

        Returns:
            DefaultRegistryConfig: 更新后的配置

        Raises:
            ConfigError: 配置更新失败时抛出
        """
        if not self.config:
            self.create_default_config()

        self._recursive_update(cast(Dict[str, Any], self.config), config_updates)

        # 验证新配置
        self.validate_config()

        # 保存配置
        self.save_config()

        return self.config

    @staticmethod
    def _recursive_update(current: Dict[str, Any], updates: Dict[str, Any]) -> None:
        for key, value in updates.items():
            if key in current and isinstance(value, dict) and isinstance(current[key], dict):
                ConfigManager._recursive_update(current[key], value)
            else:
                current[key] = value

    def validate_config(self) -> None:
        """
        验证配置的完整性和正确性

        Raises:
            ConfigError: 配置验证失败时抛出
        """
        try:
            self._validate_config_structure(cast(Dict[str, Any], self.config), self.REQUIRED_CONFIG_FIELDS)
            self._validate_registry_url(self.config["registry"]["url"])
        except ConfigError as e:
            raise ConfigError(ERROR_MESSAGES["config_validation"].format(e))

    def _validate_config_structure(self, config: Dict[str, Any], required: ValidationStructure) -> None:
        """
        递归验证配置结构

        Args:
            config: 要验证的配置
            required: 必需的配置结构

        Raises:
            ConfigError: 配置结构验证失败时抛出
        """
        for key, value_type in required.items():
            if key not in config:
                raise ConfigError(f"缺少必需的配置项: {key}")

            if isinstance(value_type, dict):
                if not isinstance(config[key], dict):
                    raise ConfigError(f"配置项类型错误: {key} 应为字典")
                self._validate_config_structure(config[key], value_type)
            elif not isinstance(config[key], value_type):
                raise ConfigError(f"配置项类型错误: {key} 应为 {value_type.__name__}")

    @staticmethod
    def _validate_registry_url(url: str) -> None:
        if not url:
            raise ConfigError(ERROR_MESSAGES["registry_url_empty"])
        if not re.match(REGISTRY_URL_PATTERN, url):
            raise ConfigError(ERROR_MESSAGES["registry_url_invalid"])

    def save_config(self) -> None:
        """
        保存配置到文件

        Raises:
            ConfigError: 配置保存失败时抛出
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self.config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ConfigError(f"保存配置失败: {str(e)}")

    def get_config(self) -> DefaultRegistryConfig:
        """
        获取当前配置

        Returns:
            DefaultRegistryConfig: 当前配置
        """
        return self.config

    def get_registry_url(self) -> str:
        """仓库地址，环境变量 REGMASTER_URL 优先"""
        return os.environ.get(ENV_REGISTRY_URL) or self.config["registry"]["url"]

    def get_username(self) -> Optional[str]:
        """仓库用户名，环境变量 REGMASTER_USERNAME 优先"""
        return os.environ.get(ENV_USERNAME) or self.config["registry"]["username"] or None

    def get_password(self, username: Optional[str]) -> Optional[str]:
        """
        从环境变量获取密码

        Args:
            username: 用户名

        Returns:
            Optional[str]: 依次读取 REGMASTER_PASSWORD_<用户名> 和 REGMASTER_PASSWORD，未找到则返回None
        """
        if not username:
            return None

        env_var_name = f"{ENV_PASSWORD}_{username.upper()}"
        password = os.environ.get(env_var_name) or os.environ.get(ENV_PASSWORD)
        if password:
            logger.debug("已从环境变量获取密码")
        else:
            logger.warning(f"未找到密码，请设置环境变量 {env_var_name} 或 {ENV_PASSWORD}")
        return password
