# jetson_setup/steps/librdkafka.py
# -*- coding: utf-8 -*-
"""
Builds librdkafka, needed by the DeepStream Kafka protocol adaptor.
"""

from common.command_utils import run_command, run_elevated_command
from common.git_utils import checkout, clone_or_update
from common.system_utils import refresh_library_cache
from sequencer.step import StepContext

from .helpers import command_failures, log, source_path, symbol


def build_librdkafka(ctx: StepContext) -> None:
    app_settings = ctx.app_settings
    settings = app_settings.kafka
    env = ctx.env or None
    source_dir = source_path(ctx, settings.source_dir)

    log(ctx, f"{symbol(ctx, 'step', '➡️')} Installing librdkafka {settings.ref} (for Kafka protocol adaptor)...")
    with command_failures("Fetching librdkafka sources"):
        clone_or_update(settings.repo_url, source_dir, app_settings, ctx.logger, clean=True, env=env)
        checkout(source_dir, settings.ref, app_settings, ctx.logger, env=env)

    with command_failures("Building librdkafka"):
        for command in (["./configure", "--enable-ssl"], ["make"]):
            run_command(
                command,
                app_settings,
                current_logger=ctx.logger,
                cwd=str(source_dir),
                env=env,
            )
    with command_failures("Installing librdkafka"):
        run_elevated_command(
            ["make", "install"],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(source_dir),
            env=env,
        )
        refresh_library_cache(app_settings, ctx.logger)
    log(ctx, f"{symbol(ctx, 'success', '✅')} librdkafka {settings.ref} installed.", "success")
