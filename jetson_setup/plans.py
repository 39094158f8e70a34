# jetson_setup/plans.py
# -*- coding: utf-8 -*-
"""
Registry of installation plans.

A plan is a named, ordered list of steps. Each plan registers a builder
function that produces its step list from the application settings; the
lists are built once at startup and not changed during a run. The
post-reboot payload of the two-phase Ultralytics plan and the body of the
native plan are configured independently.
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional

from sequencer.step import Step, validate_steps

from .config_models import AppSettings
from .steps import deepstream, glib, librdkafka, system, ultralytics

PlanBuilder = Callable[[AppSettings], List[Step]]


@dataclass(frozen=True)
class PlanDefinition:
    name: str
    description: str
    builder: PlanBuilder


class PlanRegistry:
    """
    Registry for installation plans.

    Builders register themselves with the `register` decorator and are looked
    up by plan name.
    """

    _registry: Dict[str, PlanDefinition] = {}

    @classmethod
    def register(cls, name: str, description: str):
        """
        Decorator for registering plan builder functions.

        Args:
            name: The name of the plan, as given on the command line.
            description: One-line summary shown by the 'list' command.

        Returns:
            A decorator function that registers the builder.
        """

        def decorator(builder: PlanBuilder) -> PlanBuilder:
            if name in cls._registry:
                raise ValueError(f"Plan with name '{name}' already registered")
            cls._registry[name] = PlanDefinition(
                name=name,
                description=description,
                builder=builder,
            )
            return builder

        return decorator

    @classmethod
    def get_plan(cls, name: str) -> PlanDefinition:
        """
        Raises:
            KeyError: If no plan with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No plan registered with name '{name}'")
        return cls._registry[name]

    @classmethod
    def get_all_plans(cls) -> Dict[str, PlanDefinition]:
        return cls._registry.copy()

    @classmethod
    def build_steps(cls, name: str, app_settings: AppSettings) -> List[Step]:
        """Build and validate the step list of a registered plan."""
        return validate_steps(cls.get_plan(name).builder(app_settings))


def build_plan(name: str, app_settings: Optional[AppSettings] = None) -> List[Step]:
    """
    Return the steps of plan `name`.

    Raises:
        KeyError: If the plan is unknown.
    """
    return PlanRegistry.build_steps(name, app_settings or AppSettings())


def _deepstream_preamble(upgrade: bool) -> List[Step]:
    return [
        Step(
            "update-system",
            "Update apt package lists" + (" and upgrade packages" if upgrade else ""),
            partial(system.update_system, upgrade=upgrade),
        ),
        Step(
            "ensure-local-bin-path",
            "Ensure ~/.local/bin is on PATH",
            system.ensure_local_bin_on_path,
        ),
        Step("ensure-glib", "Check and update GLib", glib.ensure_glib),
        Step(
            "install-deepstream-dependencies",
            "Install DeepStream dependencies",
            deepstream.install_dependencies,
        ),
    ]


@PlanRegistry.register(
    "deepstream",
    "DeepStream SDK from NVIDIA's apt repository",
)
def deepstream_apt_plan(app_settings: AppSettings) -> List[Step]:
    return _deepstream_preamble(app_settings.deepstream.upgrade_system) + [
        Step(
            "install-deepstream",
            "Install DeepStream SDK via apt",
            deepstream.install_deepstream_apt,
        ),
        Step("verify-deepstream", "Report installed DeepStream version", deepstream.verify_deepstream),
    ]


@PlanRegistry.register(
    "deepstream-tarball",
    "DeepStream SDK from the Jetson tarball, with librdkafka for the Kafka adaptor",
)
def deepstream_tarball_plan(app_settings: AppSettings) -> List[Step]:
    return _deepstream_preamble(upgrade=False) + [
        Step("build-librdkafka", "Build and install librdkafka", librdkafka.build_librdkafka),
        Step(
            "fetch-deepstream-tarball",
            "Download and extract DeepStream SDK tarball",
            deepstream.fetch_and_extract_tarball,
        ),
        Step(
            "run-deepstream-installer",
            "Run DeepStream install.sh",
            deepstream.run_deepstream_installer,
        ),
        Step("update-rtpmanager", "Run update_rtpmanager.sh", deepstream.update_rtpmanager),
        Step(
            "copy-kafka-libraries",
            "Copy librdkafka libraries into DeepStream",
            deepstream.copy_kafka_libraries,
        ),
        Step("verify-deepstream", "Report installed DeepStream version", deepstream.verify_deepstream),
    ]


@PlanRegistry.register(
    "ultralytics",
    "Ultralytics pip package, then Jetson ML wheels after a reboot",
)
def ultralytics_plan(app_settings: AppSettings) -> List[Step]:
    return [
        Step("bootstrap-pip", "Update package lists and install/upgrade pip", ultralytics.bootstrap_pip),
        Step(
            "install-ultralytics",
            "Install ultralytics pip package with export dependencies",
            ultralytics.install_ultralytics_package,
            requires_reboot_after=True,
        ),
        Step(
            "remove-incompatible-torch",
            "Uninstall generic PyTorch and Torchvision",
            ultralytics.remove_incompatible_torch,
        ),
        Step(
            "install-torch",
            "Install Jetson PyTorch wheel",
            partial(ultralytics.install_wheel, url_field="torch_wheel_url"),
        ),
        Step(
            "install-torchvision",
            "Install Jetson Torchvision wheel",
            partial(ultralytics.install_wheel, url_field="torchvision_wheel_url"),
        ),
        Step("install-cusparselt", "Install cuSPARSELt", ultralytics.install_cusparselt),
        Step(
            "install-onnxruntime-gpu",
            "Install Jetson onnxruntime-gpu wheel",
            partial(ultralytics.install_wheel, url_field="onnxruntime_gpu_wheel_url"),
        ),
        Step("pin-numpy", "Reinstall pinned numpy", ultralytics.pin_numpy),
    ]


@PlanRegistry.register(
    "ultralytics-native",
    "Jetson ML wheels and Ultralytics from source, no reboot",
)
def ultralytics_native_plan(app_settings: AppSettings) -> List[Step]:
    return [
        Step("install-cuda-keyring", "Install CUDA keyring and update APT", ultralytics.install_cuda_keyring),
        Step(
            "install-system-dependencies",
            "Install system dependencies",
            ultralytics.install_system_dependencies,
        ),
        Step("upgrade-pip-numpy", "Upgrade pip and install compatible numpy", ultralytics.upgrade_pip_and_numpy),
        Step(
            "install-ml-wheels",
            "Install PyTorch, TorchVision and ONNX Runtime GPU wheels",
            ultralytics.install_ml_wheels,
        ),
        Step("verify-ml-stack", "Verify PyTorch, TorchVision and ONNX Runtime", ultralytics.verify_ml_stack),
        Step("clone-ultralytics", "Clone Ultralytics repository", ultralytics.clone_ultralytics),
        Step(
            "install-ultralytics-editable",
            "Install Ultralytics with export dependencies",
            ultralytics.install_ultralytics_editable,
        ),
        Step("prepare-fonts-dir", "Prepare Ultralytics fonts directory", ultralytics.prepare_fonts_dir),
    ]
