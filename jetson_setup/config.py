# jetson_setup/config.py
"""
Centralized constants and default values for the Jetson stack installer.

This module defines default paths, download locations, version targets and
package lists for apt and pip installation. Values here are the defaults
behind the Pydantic models in config_models.py; they can be overridden by
config file, environment or command-line arguments.
"""

from pathlib import Path

# Represents the version of the installer logic.
SCRIPT_VERSION: str = "2.0.0"

# Root directory of the project, used as the working directory of the
# resume unit. This assumes config.py is in <root>/jetson_setup/
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent

# --- Logging ---
LOG_FILE_DEFAULT: str = "/var/log/jetson-stack-installer.log"
LOG_PREFIX_DEFAULT: str = "[JETSON-SETUP]"

# --- Run State and Resume Trigger ---
STATE_DIR_DEFAULT: str = "/var/lib/jetson-stack-installer"
SYSTEMD_UNIT_DIR_DEFAULT: str = "/etc/systemd/system"
RESUME_UNIT_TEMPLATE: str = "jetson-stack-{plan}-resume.service"
DOWNLOAD_DIR_DEFAULT: str = "/tmp/jetson-stack-installer"
# Source checkouts; editable installs point here, so it must survive reboots.
SOURCE_ROOT_DEFAULT: str = "/usr/local/src/jetson-stack"
DOWNLOAD_TIMEOUT_DEFAULT: int = 300

# --- Python tooling ---
# JetPack 6.x ships Python 3.10.
PIP_COMMAND_DEFAULT: list[str] = ["pip3"]
PYTHON_COMMAND_DEFAULT: str = "python3"

# --- GLib (DeepStream 7.1 needs >= 2.76.6) ---
GLIB_TARGET_VERSION_DEFAULT: str = "2.76.6"
GLIB_REPO_URL_DEFAULT: str = "https://github.com/GNOME/glib.git"
GLIB_SOURCE_DIR_DEFAULT: str = "glib"
GLIB_INSTALL_PREFIX_DEFAULT: str = "/usr"
GLIB_BUILD_PACKAGES: list[str] = ["python3-pip", "git", "build-essential"]
GLIB_BUILD_PIP_PACKAGES: list[str] = ["meson", "ninja"]

# --- DeepStream ---
DEEPSTREAM_APT_PACKAGE_DEFAULT: str = "deepstream-7.1"
DEEPSTREAM_TARBALL_DEFAULT: str = "deepstream_sdk_v7.1.0_jetson.tbz2"
DEEPSTREAM_DOWNLOAD_URL_DEFAULT: str = (
    "https://api.ngc.nvidia.com/v2/resources/nvidia/deepstream/versions/7.1/files/"
    + DEEPSTREAM_TARBALL_DEFAULT
)
DEEPSTREAM_INSTALL_DIR_DEFAULT: str = "/opt/nvidia/deepstream/deepstream-7.1"

DEEPSTREAM_DEPENDENCY_PACKAGES: list[str] = [
    "libssl3",
    "libssl-dev",
    "libgstreamer1.0-0",
    "gstreamer1.0-tools",
    "gstreamer1.0-plugins-good",
    "gstreamer1.0-plugins-bad",
    "gstreamer1.0-plugins-ugly",
    "gstreamer1.0-libav",
    "libgstreamer-plugins-base1.0-dev",
    "libgstrtspserver-1.0-0",
    "libjansson4",
    "libyaml-cpp-dev",
]

# --- librdkafka (Kafka protocol adaptor) ---
KAFKA_REPO_URL_DEFAULT: str = "https://github.com/confluentinc/librdkafka.git"
KAFKA_REF_DEFAULT: str = "v2.2.0"
KAFKA_SOURCE_DIR_DEFAULT: str = "librdkafka"
KAFKA_LIB_GLOB: str = "/usr/local/lib/librdkafka*"

# --- Ultralytics / ML stack (wheels from the Ultralytics Jetson guide) ---
_ULTRALYTICS_ASSETS: str = (
    "https://github.com/ultralytics/assets/releases/download/v0.0.0"
)
TORCH_WHL_URL_DEFAULT: str = (
    f"{_ULTRALYTICS_ASSETS}/torch-2.5.0a0+872d972e41.nv24.08-cp310-cp310-linux_aarch64.whl"
)
TORCHVISION_WHL_URL_DEFAULT: str = (
    f"{_ULTRALYTICS_ASSETS}/torchvision-0.20.0a0+afc54f7-cp310-cp310-linux_aarch64.whl"
)
ONNXRUNTIME_GPU_WHL_URL_DEFAULT: str = (
    f"{_ULTRALYTICS_ASSETS}/onnxruntime_gpu-1.20.0-cp310-cp310-linux_aarch64.whl"
)
# CUDA keyring for Ubuntu 22.04 arm64, compatible with JetPack 6.x
CUDA_KEYRING_URL_DEFAULT: str = (
    "https://developer.download.nvidia.com/compute/cuda/repos/ubuntu2204/arm64/cuda-keyring_1.1-1_all.deb"
)
ULTRALYTICS_REPO_URL_DEFAULT: str = (
    "https://github.com/ultralytics/ultralytics.git"
)
ULTRALYTICS_SOURCE_DIR_DEFAULT: str = "ultralytics"
ULTRALYTICS_PIP_SPEC_DEFAULT: str = "ultralytics[export]"
ULTRALYTICS_EDITABLE_SPEC_DEFAULT: str = ".[export]"
NUMPY_PIN_DEFAULT: str = "numpy==1.23.5"
NUMPY_NATIVE_CONSTRAINT_DEFAULT: str = "numpy<2"

CUSPARSELT_PACKAGES: list[str] = ["libcusparselt0", "libcusparselt-dev"]

ULTRALYTICS_NATIVE_SYSTEM_PACKAGES: list[str] = [
    "git",
    "python3-pip",
    "libopenmpi-dev",
    "libopenblas-base",
    "libomp-dev",
    "libcusparselt0",
    "libcusparselt-dev",
    "libjpeg-dev",
    "zlib1g-dev",
    "libpython3-dev",
    "libavcodec-dev",
    "libavformat-dev",
    "libswscale-dev",
    "build-essential",
]
