# jetson_setup/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the installer,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from typing import Dict, List, Union

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from jetson_setup import config as static_config

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "reboot": "🔄",
}


class GlibSettings(BaseModel):
    """GLib source build settings."""

    target_version: str = Field(
        default=static_config.GLIB_TARGET_VERSION_DEFAULT,
        description="Minimum GLib version; older or missing installs are rebuilt from source.",
    )
    repo_url: str = Field(default=static_config.GLIB_REPO_URL_DEFAULT)
    source_dir: str = Field(
        default=static_config.GLIB_SOURCE_DIR_DEFAULT,
        description="Checkout directory, relative to source_root unless absolute.",
    )
    install_prefix: str = Field(default=static_config.GLIB_INSTALL_PREFIX_DEFAULT)


class DeepStreamSettings(BaseModel):
    """DeepStream SDK settings."""

    apt_package: str = Field(default=static_config.DEEPSTREAM_APT_PACKAGE_DEFAULT)
    tarball_name: str = Field(default=static_config.DEEPSTREAM_TARBALL_DEFAULT)
    download_url: Union[HttpUrl, str] = Field(
        default=static_config.DEEPSTREAM_DOWNLOAD_URL_DEFAULT
    )
    install_dir: str = Field(default=static_config.DEEPSTREAM_INSTALL_DIR_DEFAULT)
    dependency_packages: List[str] = Field(
        default_factory=lambda: list(static_config.DEEPSTREAM_DEPENDENCY_PACKAGES)
    )
    upgrade_system: bool = Field(
        default=True,
        description="Run 'apt-get upgrade' in the apt-based plan.",
    )


class KafkaSettings(BaseModel):
    """librdkafka build settings for the DeepStream Kafka protocol adaptor."""

    repo_url: str = Field(default=static_config.KAFKA_REPO_URL_DEFAULT)
    ref: str = Field(default=static_config.KAFKA_REF_DEFAULT)
    source_dir: str = Field(default=static_config.KAFKA_SOURCE_DIR_DEFAULT)
    lib_glob: str = Field(default=static_config.KAFKA_LIB_GLOB)


class UltralyticsSettings(BaseModel):
    """Ultralytics and Jetson ML wheel settings."""

    pip_spec: str = Field(default=static_config.ULTRALYTICS_PIP_SPEC_DEFAULT)
    editable_spec: str = Field(
        default=static_config.ULTRALYTICS_EDITABLE_SPEC_DEFAULT,
        description="Spec installed with 'pip install -e' inside the source checkout.",
    )
    torch_wheel_url: Union[HttpUrl, str] = Field(
        default=static_config.TORCH_WHL_URL_DEFAULT
    )
    torchvision_wheel_url: Union[HttpUrl, str] = Field(
        default=static_config.TORCHVISION_WHL_URL_DEFAULT
    )
    onnxruntime_gpu_wheel_url: Union[HttpUrl, str] = Field(
        default=static_config.ONNXRUNTIME_GPU_WHL_URL_DEFAULT
    )
    cuda_keyring_url: Union[HttpUrl, str] = Field(
        default=static_config.CUDA_KEYRING_URL_DEFAULT
    )
    numpy_pin: str = Field(default=static_config.NUMPY_PIN_DEFAULT)
    numpy_native_constraint: str = Field(
        default=static_config.NUMPY_NATIVE_CONSTRAINT_DEFAULT
    )
    repo_url: str = Field(default=static_config.ULTRALYTICS_REPO_URL_DEFAULT)
    source_dir: str = Field(default=static_config.ULTRALYTICS_SOURCE_DIR_DEFAULT)
    native_system_packages: List[str] = Field(
        default_factory=lambda: list(
            static_config.ULTRALYTICS_NATIVE_SYSTEM_PACKAGES
        )
    )
    require_cuda: bool = Field(
        default=False,
        description="Fail verification when torch reports CUDA unavailable instead of warning.",
    )


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="JETSON_", env_nested_delimiter="__", extra="ignore"
    )

    log_file: str = Field(
        default=static_config.LOG_FILE_DEFAULT,
        description="Progress log, appended across the reboot boundary.",
    )
    log_prefix: str = Field(default=static_config.LOG_PREFIX_DEFAULT)
    state_dir: str = Field(
        default=static_config.STATE_DIR_DEFAULT,
        description="Directory holding Run State records (mode 0750).",
    )
    systemd_unit_dir: str = Field(default=static_config.SYSTEMD_UNIT_DIR_DEFAULT)
    download_dir: str = Field(default=static_config.DOWNLOAD_DIR_DEFAULT)
    source_root: str = Field(
        default=static_config.SOURCE_ROOT_DEFAULT,
        description="Base directory for relative source checkout paths.",
    )
    download_timeout: int = Field(
        default=static_config.DOWNLOAD_TIMEOUT_DEFAULT,
        description="Connect/read timeout in seconds for HTTP downloads.",
    )
    pip_command: List[str] = Field(
        default_factory=lambda: list(static_config.PIP_COMMAND_DEFAULT),
        description="Command prefix used to invoke pip (e.g. ['python3.10', '-m', 'pip']).",
    )
    python_command: str = Field(default=static_config.PYTHON_COMMAND_DEFAULT)
    extra_path_dirs: List[str] = Field(
        default_factory=lambda: ["~/.local/bin"],
        description="Directories prepended to PATH for commands run by steps.",
    )
    require_root: bool = Field(
        default=True,
        description="Fail fast unless the installer runs with euid 0.",
    )

    glib: GlibSettings = Field(default_factory=GlibSettings)
    deepstream: DeepStreamSettings = Field(default_factory=DeepStreamSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    ultralytics: UltralyticsSettings = Field(default_factory=UltralyticsSettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )
