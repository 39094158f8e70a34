"""
Installer for the NVIDIA DeepStream SDK and the Ultralytics ML stack on
Jetson Orin devices.
"""

from jetson_setup.config import SCRIPT_VERSION as __version__

__all__ = ["__version__"]
