"""
配置加载模块：支持 .env、环境变量、工作目录 config.json（或 CONFIG_FILE 指定）多来源合并。
公开接口：
- Config: 读取配置的设置类
- configure_logging: 按 log_level 配置 loguru
- config: Config 的单例实例
内部方法：
- Config.settings_customise_sources: 自定义配置来源顺序
- Config.decode_function_arn: 对 URL 编码的函数 ARN 解码
- Config.normalize_prefix: 规范化 S3 键前缀
- Config.normalize_log_level: 日志级别统一为大写
- JsonFileSettingsSource: config.json 配置来源
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Tuple
from urllib.parse import unquote

from loguru import logger
from pydantic import AliasChoices, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource


class Config(BaseSettings):
    bucket_name: str = Field(default="", validation_alias=AliasChoices("BUCKET_NAME", "bucket_name"))
    bucket_prefix: str = Field(default="", validation_alias=AliasChoices("BUCKET_PREFIX", "bucket_prefix"))
    # 兼容旧部署中拼错的 DEIVCE_* 变量名
    device_activator_queue_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "DEVICE_ACTIVATOR_QUEUE_URL", "DEIVCE_ACTIVATOR_QUEUE_URL", "device_activator_queue_url"
        ),
    )
    device_activator_role_arn: str = Field(
        default="",
        validation_alias=AliasChoices(
            "DEVICE_ACTIVATOR_ROLE_ARN", "DEIVCE_ACTIVATOR_ROLE_ARN", "device_activator_role_arn"
        ),
    )
    aws_region: str = Field(default="", validation_alias=AliasChoices("AWS_REGION", "aws_region"))
    fetch_all_verifier_http_function_arn: str = Field(
        default="",
        validation_alias=AliasChoices("FETCH_ALL_VERIFIER_HTTP_FUNCTION_ARN", "fetch_all_verifier_http_function_arn"),
    )
    ca_key_size: int = 2048
    ca_validity_days: int = 3650
    verification_validity_days: int = 365
    log_level: str = "INFO"

    # pydantic v2 风格配置（等价于旧版的 class Config）
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("fetch_all_verifier_http_function_arn", mode="after")
    @classmethod
    def decode_function_arn(cls, value: str) -> str:
        """部署时函数 ARN 可能以 URL 编码形式注入。"""
        return unquote(value)

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("bucket_prefix", mode="before")
    @classmethod
    def normalize_prefix(cls, value: Any) -> str:
        """未设置前缀时退化为无前缀。"""
        if value is None:
            return ""
        return str(value).strip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """自定义配置来源顺序：入参 > 环境变量 > .env > config.json > secrets。"""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls),
            file_secret_settings,
        )


class JsonFileSettingsSource(PydanticBaseSettingsSource):
    """从工作目录的 config.json（或 CONFIG_FILE 指定路径）加载配置。"""

    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self._data: Dict[str, Any] | None = None

    def _load(self) -> Dict[str, Any]:
        if self._data is None:
            cfg_path = os.environ.get("CONFIG_FILE")
            path = Path(cfg_path) if cfg_path else Path.cwd() / "config.json"
            self._data = {}
            if path.exists():
                try:
                    with path.open("r", encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, ValueError) as e:
                    logger.warning(f"读取配置文件 {path} 失败，已忽略: {e}")
                else:
                    if isinstance(data, dict):
                        self._data = data
        return self._data

    def __call__(self) -> Dict[str, Any]:
        return dict(self._load())

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        data = self._load()
        if field_name in data:
            return data[field_name], field_name, False
        return None, field_name, False


def configure_logging(settings: Config) -> int:
    """按配置的 log_level 重建 loguru 的 stderr 输出，返回新 handler 的 id。"""
    logger.remove()
    return logger.add(sys.stderr, level=settings.log_level)


config = Config()
