# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions: fetching installer artefacts over HTTP.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import requests

from jetson_setup.config_models import AppSettings

from .command_utils import get_symbols, log_message

module_logger = logging.getLogger(__name__)


def download_file(
    url: str,
    destination: Union[str, Path],
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    timeout: Optional[int] = None,
) -> bool:
    """
    Download a URL to a local path, replacing any existing file.

    Args:
        url: The URL to fetch.
        destination: The file path where the download will be saved. Parent
                     directories are created as needed.
        app_settings: Settings providing symbols and the default timeout.
        current_logger: Optional logger to use instead of the module logger.
        timeout: Connect/read timeout in seconds. Defaults to
                 app_settings.download_timeout.

    Returns:
        True if the download was successful, False otherwise.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    download_path = Path(destination)
    if timeout is None:
        timeout = app_settings.download_timeout if app_settings else 300

    log_message(
        f"{symbols.get('package', '📦')} Downloading {url} -> {download_path}",
        "info",
        logger_to_use,
        app_settings,
    )
    response: Optional[requests.Response] = None
    partial_path = download_path.with_name(download_path.name + ".part")

    try:
        download_path.parent.mkdir(parents=True, exist_ok=True)
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        with open(partial_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    f.write(chunk)
        partial_path.replace(download_path)
        log_message(
            f"{symbols.get('success', '✅')} Downloaded to: {download_path}",
            "success",
            logger_to_use,
            app_settings,
        )
        return True
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        log_message(
            f"{symbols.get('error', '❌')} HTTP error downloading {url}: {http_err} - Status code: {status_code}",
            "error",
            logger_to_use,
            app_settings,
        )
    except requests.exceptions.ConnectionError as conn_err:
        log_message(
            f"{symbols.get('error', '❌')} Connection error downloading {url}: {conn_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    except requests.exceptions.Timeout as timeout_err:
        log_message(
            f"{symbols.get('error', '❌')} Timeout downloading {url}: {timeout_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    except requests.exceptions.RequestException as req_err:
        log_message(
            f"{symbols.get('error', '❌')} Unexpected error downloading {url}: {req_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    except OSError as io_err:
        log_message(
            f"{symbols.get('error', '❌')} File I/O error when saving {download_path}: {io_err}",
            "error",
            logger_to_use,
            app_settings,
        )
    finally:
        if response is not None:
            response.close()

    if partial_path.exists():
        partial_path.unlink()
    return False
